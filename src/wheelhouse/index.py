# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Immutable index snapshots and the store publishing them."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from wheelhouse.archive import PackageIdentity
from wheelhouse.normalize import normalize_name

logger = logging.getLogger(__name__)


class UnknownProjectError(LookupError):
    """Represent a lookup of a project absent from the index."""


class UnknownFileError(LookupError):
    """Represent a lookup of a file absent from a project."""


@dataclass(frozen=True)
class ProjectEntry:
    """Represent one project and the archives that declare it.

    Attributes:
        canonical_name: Declared project name used for display.
        files: Archive paths in scan order, without duplicates.
    """

    canonical_name: str
    files: tuple[Path, ...]


def _empty_mapping() -> Mapping:
    return MappingProxyType({})


@dataclass(frozen=True)
class IndexSnapshot:
    """Represent one complete, published version of the index.

    Attributes:
        normalized_names: Normalized name to canonical name.
        projects: Canonical name to project entry.
        generation: Number of the rebuild pass that produced this snapshot;
            ``0`` for the initial empty index.
        built_at: UTC completion time of that pass, ``None`` when empty.
    """

    normalized_names: Mapping[str, str] = field(default_factory=_empty_mapping)
    projects: Mapping[str, ProjectEntry] = field(default_factory=_empty_mapping)
    generation: int = 0
    built_at: datetime | None = None

    @property
    def project_count(self) -> int:
        return len(self.projects)

    @property
    def artifact_count(self) -> int:
        return sum(len(entry.files) for entry in self.projects.values())

    def list_projects(self) -> list[tuple[str, str]]:
        """Return ``(normalized_name, canonical_name)`` pairs sorted by key."""
        return sorted(self.normalized_names.items())

    def get_project(self, normalized_name: str) -> ProjectEntry:
        """Return the project entry for a normalized name.

        Raises:
            UnknownProjectError: If the name is not indexed.
        """
        canonical_name = self.normalized_names.get(normalized_name)
        if canonical_name is None:
            raise UnknownProjectError(normalized_name)
        entry = self.projects.get(canonical_name)
        if entry is None:
            raise UnknownProjectError(normalized_name)
        return entry

    def list_files(self, normalized_name: str) -> list[str]:
        """Return archive file names of one project.

        Raises:
            UnknownProjectError: If the name is not indexed.
        """
        return [path.name for path in self.get_project(normalized_name).files]

    def resolve_file(self, normalized_name: str, file_name: str) -> Path:
        """Resolve a project file name to its path on disk.

        Args:
            normalized_name: Normalized project name.
            file_name: Archive file name as listed for the project.

        Returns:
            Absolute archive path.

        Raises:
            UnknownProjectError: If the project is not indexed.
            UnknownFileError: If the project has no such file.
        """
        for path in self.get_project(normalized_name).files:
            if path.name == file_name:
                return path
        raise UnknownFileError(f"{normalized_name}/{file_name}")


class IndexBuilder:
    """Accumulate one rebuild pass before it is published.

    Archives are grouped by normalized name. When declared names disagree on
    spelling within a pass, the lexicographically smallest one becomes the
    canonical name, independent of scan order.
    """

    def __init__(self) -> None:
        self._canonical: dict[str, str] = {}
        self._files: dict[str, list[Path]] = {}

    def add(self, identity: PackageIdentity, path: Path) -> None:
        """Record one successfully extracted archive.

        Args:
            identity: Declared package identity.
            path: Archive file path.
        """
        normalized_name = normalize_name(identity.name)
        current = self._canonical.get(normalized_name)
        if current is None:
            self._canonical[normalized_name] = identity.name
        elif identity.name != current:
            kept = min(current, identity.name)
            logger.info(
                f"Project declared with different spellings (normalized={normalized_name} "
                f"kept={kept} dropped={max(current, identity.name)})"
            )
            self._canonical[normalized_name] = kept
        files = self._files.setdefault(normalized_name, [])
        if path not in files:
            files.append(path)

    def build(self, generation: int) -> IndexSnapshot:
        """Freeze accumulated entries into a snapshot.

        Args:
            generation: Pass number assigned to the snapshot.

        Returns:
            Immutable snapshot satisfying the index invariants.
        """
        normalized_names: dict[str, str] = {}
        projects: dict[str, ProjectEntry] = {}
        for normalized_name, canonical_name in self._canonical.items():
            normalized_names[normalized_name] = canonical_name
            projects[canonical_name] = ProjectEntry(
                canonical_name=canonical_name,
                files=tuple(self._files[normalized_name]),
            )
        return IndexSnapshot(
            normalized_names=MappingProxyType(normalized_names),
            projects=MappingProxyType(projects),
            generation=generation,
            built_at=datetime.now(tz=timezone.utc),
        )


class IndexStore:
    """Hold the current snapshot; readers never block."""

    def __init__(self, initial: IndexSnapshot | None = None) -> None:
        self._snapshot = initial if initial is not None else IndexSnapshot()
        self._publish_lock = threading.Lock()

    def snapshot(self) -> IndexSnapshot:
        """Return the currently published snapshot."""
        return self._snapshot

    def replace(self, snapshot: IndexSnapshot) -> IndexSnapshot:
        """Publish a new snapshot in a single reference swap.

        Readers holding the previous snapshot may keep using it.

        Args:
            snapshot: Complete snapshot to publish.

        Returns:
            The snapshot that was replaced.
        """
        with self._publish_lock:
            previous = self._snapshot
            self._snapshot = snapshot
        logger.debug(
            f"Index snapshot published (generation={snapshot.generation} "
            f"previous_generation={previous.generation} projects={snapshot.project_count})"
        )
        return previous
