# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Package identity extraction from wheel archives."""

import logging
import lzma
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

logger = logging.getLogger(__name__)

DESCRIPTOR_MARKER: str = ".dist-info"
DESCRIPTOR_FILENAME: str = "METADATA"

_NAME_PREFIX = "Name: "
_VERSION_PREFIX = "Version: "

ExtractFailureKind = Literal["malformed_archive", "missing_descriptor", "missing_field"]


@dataclass(frozen=True)
class PackageIdentity:
    """Represent the identity declared by one archive.

    Attributes:
        name: Project name exactly as declared in the descriptor.
        version: Version string exactly as declared in the descriptor.
    """

    name: str
    version: str


class ExtractError(RuntimeError):
    """Represent a failure to extract identity from one archive."""

    kind: ExtractFailureKind = "malformed_archive"


class MalformedArchiveError(ExtractError):
    """Represent an archive that cannot be opened or read."""

    kind: ExtractFailureKind = "malformed_archive"


class MissingDescriptorError(ExtractError):
    """Represent an archive without a descriptor entry."""

    kind: ExtractFailureKind = "missing_descriptor"


class MissingFieldError(ExtractError):
    """Represent a descriptor lacking a required field."""

    kind: ExtractFailureKind = "missing_field"

    def __init__(self, field: str) -> None:
        super().__init__(f"Descriptor has no {field!r} field.")
        self.field = field


def open_archive(path: Path) -> zipfile.ZipFile:
    """Open a file read-only as a zip archive.

    Args:
        path: Archive file path.

    Returns:
        Open archive handle; the caller owns closing it.

    Raises:
        MalformedArchiveError: If the file cannot be opened as a zip archive.
    """
    try:
        return zipfile.ZipFile(path, mode="r")
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, EOFError, ValueError) as exc:
        raise MalformedArchiveError(str(exc)) from exc


def find_descriptor(archive: zipfile.ZipFile) -> str:
    """Locate the descriptor entry name inside an archive.

    Args:
        archive: Open archive.

    Returns:
        Internal entry name of the descriptor.

    Raises:
        MissingDescriptorError: If no entry matches.
    """
    candidates = sorted(
        name
        for name in archive.namelist()
        if DESCRIPTOR_MARKER in name and name.endswith(f"/{DESCRIPTOR_FILENAME}")
    )
    if not candidates:
        raise MissingDescriptorError(
            f"No '*{DESCRIPTOR_MARKER}/{DESCRIPTOR_FILENAME}' entry in archive."
        )
    if len(candidates) > 1:
        logger.debug(
            f"Several descriptor entries found; using the first (entries={candidates})"
        )
    return candidates[0]


def parse_descriptor(text: str) -> PackageIdentity:
    """Parse ``Name``/``Version`` from descriptor text.

    The first occurrence of each field wins; all other lines are ignored.

    Args:
        text: Descriptor content.

    Returns:
        Declared package identity.

    Raises:
        MissingFieldError: If either field is absent.
    """
    name: str | None = None
    version: str | None = None
    for line in text.split("\n"):
        line = line.removesuffix("\r")
        if name is None and line.startswith(_NAME_PREFIX):
            name = line[len(_NAME_PREFIX) :]
        elif version is None and line.startswith(_VERSION_PREFIX):
            version = line[len(_VERSION_PREFIX) :]
    if name is None:
        raise MissingFieldError("name")
    if version is None:
        raise MissingFieldError("version")
    return PackageIdentity(name=name, version=version)


def extract_identity(archive: zipfile.ZipFile) -> PackageIdentity:
    """Extract the declared package identity from an open archive.

    Args:
        archive: Open archive with random access to its entries.

    Returns:
        Declared package identity.

    Raises:
        MissingDescriptorError: If the archive has no descriptor entry.
        MissingFieldError: If the descriptor lacks ``Name`` or ``Version``.
        MalformedArchiveError: If the archive or the entry cannot be read.
    """
    entry_name = find_descriptor(archive)
    try:
        payload = archive.read(entry_name)
    except (
        zipfile.BadZipFile,
        OSError,
        EOFError,
        ValueError,
        RuntimeError,
        zlib.error,
        lzma.LZMAError,
    ) as exc:
        # Encrypted entries raise RuntimeError, unknown methods NotImplementedError.
        raise MalformedArchiveError(str(exc)) from exc
    return parse_descriptor(payload.decode("utf-8", errors="replace"))
