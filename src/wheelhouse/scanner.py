# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Flat directory scanning for wheel archives."""

import logging
import os
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from wheelhouse.archive import MalformedArchiveError, open_archive

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION: str = ".whl"


class DirectoryUnreadableError(RuntimeError):
    """Represent a base directory whose listing cannot be obtained."""


@dataclass(frozen=True)
class ArtifactFailure:
    """Represent one archive excluded from a rebuild.

    Attributes:
        path: Archive file path.
        kind: Failure category, e.g. ``malformed_archive``.
        message: Human readable failure detail.
    """

    path: Path
    kind: str
    message: str


@dataclass(frozen=True)
class ScannedArchive:
    """Represent one candidate file opened as an archive."""

    path: Path
    archive: zipfile.ZipFile


@dataclass
class ScanResult:
    """Collect the outcome of one directory scan.

    Candidates are opened lazily by ``iter_archives``, one at a time, so the
    number of open handles does not grow with the directory size.

    Attributes:
        directory: Scanned directory.
        candidates: Files matching the extension, in file name order.
        failures: Candidates that failed to open; filled while iterating.
        skipped_count: Entries ignored as non-files or wrong extension.
    """

    directory: Path
    candidates: list[Path] = field(default_factory=list)
    failures: list[ArtifactFailure] = field(default_factory=list)
    skipped_count: int = 0

    def iter_archives(self) -> Iterator[ScannedArchive]:
        """Yield each candidate opened as an archive.

        The previous archive is closed before the next one is opened. Files
        that cannot be opened are logged, recorded in ``failures`` and skipped.

        Yields:
            One open archive per readable candidate.
        """
        for path in self.candidates:
            try:
                archive = open_archive(path)
            except MalformedArchiveError as exc:
                logger.warning(
                    f"Skipping file that is not a valid archive (path={path} error={exc})"
                )
                self.failures.append(
                    ArtifactFailure(path=path, kind=exc.kind, message=str(exc))
                )
                continue
            with archive:
                yield ScannedArchive(path=path, archive=archive)


class ArtifactScanner:
    """List a single directory and select archive candidates."""

    def __init__(self, extension: str = DEFAULT_EXTENSION) -> None:
        """Initialize scanner.

        Args:
            extension: File suffix candidates must match exactly, dot included.
        """
        self._extension = extension

    def scan(self, directory: Path) -> ScanResult:
        """Scan the immediate entries of a directory.

        Args:
            directory: Base directory holding archives.

        Returns:
            Candidates in file name order plus the skip count; archives are
            opened later through ``ScanResult.iter_archives``.

        Raises:
            DirectoryUnreadableError: If the directory cannot be listed.
        """
        try:
            with os.scandir(directory) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError as exc:
            logger.error(
                f"Cannot list package directory (directory={directory} error={exc})"
            )
            raise DirectoryUnreadableError(str(exc)) from exc

        result = ScanResult(directory=Path(directory))
        for entry in entries:
            path = Path(entry.path).absolute()
            if not self._is_regular_file(entry):
                logger.debug(f"Skipping non-file entry (path={path})")
                result.skipped_count += 1
                continue
            if path.suffix != self._extension:
                logger.info(
                    f"Skipping file with unexpected extension (path={path} "
                    f"expected={self._extension})"
                )
                result.skipped_count += 1
                continue
            result.candidates.append(path)

        logger.debug(
            f"Directory scan finished (directory={directory} "
            f"candidates={len(result.candidates)} skipped={result.skipped_count})"
        )
        return result

    def _is_regular_file(self, entry: os.DirEntry[str]) -> bool:
        try:
            return entry.is_file()
        except OSError:
            return False
