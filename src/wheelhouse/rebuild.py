# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Rebuild orchestration: one worker turning triggers into published snapshots."""

import enum
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal

from wheelhouse.archive import ExtractError, MalformedArchiveError, extract_identity
from wheelhouse.index import IndexBuilder, IndexStore
from wheelhouse.scanner import (
    ArtifactFailure,
    ArtifactScanner,
    DirectoryUnreadableError,
    ScannedArchive,
)
from wheelhouse.triggers import TriggerEvent, TriggerQueue

logger = logging.getLogger(__name__)

RebuildStatus = Literal["completed", "completed_with_errors", "aborted"]


class RebuildState(enum.Enum):
    """Phases of the rebuild state machine."""

    IDLE = "idle"
    SCANNING = "scanning"
    BUILDING = "building"
    PUBLISHING = "publishing"


@dataclass(frozen=True)
class RebuildReport:
    """Summarize one rebuild cycle.

    Attributes:
        trigger: Event that started the cycle.
        status: ``aborted`` when the directory could not be listed; otherwise
            ``completed`` or ``completed_with_errors``.
        generation: Generation of the snapshot visible after the cycle.
        project_count: Projects in that snapshot.
        artifact_count: Archives in that snapshot.
        skipped_count: Directory entries ignored by extension or type.
        failures: Archives excluded because they could not be read.
        duration_ms: Wall time of the cycle.
    """

    trigger: TriggerEvent
    status: RebuildStatus
    generation: int
    project_count: int
    artifact_count: int
    skipped_count: int
    failures: tuple[ArtifactFailure, ...]
    duration_ms: int


class RebuildOrchestrator:
    """Run full rescans of a package directory and publish the results."""

    def __init__(
        self,
        base_dir: Path,
        store: IndexStore,
        triggers: TriggerQueue,
        scanner: ArtifactScanner | None = None,
        on_published: Callable[[RebuildReport], None] | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            base_dir: Directory holding the archives.
            store: Store receiving each completed snapshot.
            triggers: Queue the worker consumes.
            scanner: Directory scanner; defaults to a ``.whl`` scanner.
            on_published: Optional callback invoked with every cycle report.
        """
        self._base_dir = base_dir
        self._store = store
        self._triggers = triggers
        self._scanner = scanner or ArtifactScanner()
        self._on_published = on_published
        self._state = RebuildState.IDLE
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> RebuildState:
        return self._state

    def start(self) -> None:
        """Run the trigger loop on one dedicated daemon thread."""
        if self._thread is not None:
            raise RuntimeError("RebuildOrchestrator already started")
        self._thread = threading.Thread(
            target=self._run_guarded, name="wheelhouse-rebuild", daemon=True
        )
        self._thread.start()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the worker thread.

        Returns:
            ``True`` if the worker has finished.
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def run(self) -> None:
        """Process triggers in arrival order until the queue is closed."""
        logger.info(f"Rebuild worker started (base_dir={self._base_dir})")
        while True:
            trigger = self._triggers.get()
            if trigger is None:
                logger.info("Trigger queue closed; rebuild worker stopping")
                return
            report = self.run_cycle(trigger)
            if self._on_published is not None:
                self._on_published(report)

    def run_cycle(self, trigger: TriggerEvent) -> RebuildReport:
        """Perform one Scan, Build, Publish pass.

        Args:
            trigger: Event that requested the pass.

        Returns:
            Summary of the cycle.
        """
        started = time.monotonic()
        logger.info(
            f"Rebuild started (source={trigger.source} base_dir={self._base_dir})"
        )
        self._state = RebuildState.SCANNING
        try:
            scan = self._scanner.scan(self._base_dir)
        except DirectoryUnreadableError as exc:
            self._state = RebuildState.IDLE
            current = self._store.snapshot()
            logger.error(
                f"Rebuild aborted; keeping previous index (source={trigger.source} "
                f"generation={current.generation} error={exc})"
            )
            return RebuildReport(
                trigger=trigger,
                status="aborted",
                generation=current.generation,
                project_count=current.project_count,
                artifact_count=current.artifact_count,
                skipped_count=0,
                failures=(),
                duration_ms=_elapsed_ms(started),
            )

        self._state = RebuildState.BUILDING
        builder = IndexBuilder()
        extract_failures: list[ArtifactFailure] = []
        for scanned in scan.iter_archives():
            failure = self._index_archive(builder, scanned)
            if failure is not None:
                extract_failures.append(failure)
        failures = sorted(
            [*scan.failures, *extract_failures], key=lambda item: item.path
        )

        self._state = RebuildState.PUBLISHING
        snapshot = builder.build(generation=self._store.snapshot().generation + 1)
        self._store.replace(snapshot)
        self._state = RebuildState.IDLE

        report = RebuildReport(
            trigger=trigger,
            status="completed_with_errors" if failures else "completed",
            generation=snapshot.generation,
            project_count=snapshot.project_count,
            artifact_count=snapshot.artifact_count,
            skipped_count=scan.skipped_count,
            failures=tuple(failures),
            duration_ms=_elapsed_ms(started),
        )
        logger.info(
            f"Rebuild published (source={trigger.source} generation={report.generation} "
            f"projects={report.project_count} artifacts={report.artifact_count} "
            f"failures={len(report.failures)} skipped={report.skipped_count} "
            f"duration_ms={report.duration_ms})"
        )
        return report

    def _index_archive(
        self, builder: IndexBuilder, scanned: ScannedArchive
    ) -> ArtifactFailure | None:
        """Extract one archive into the builder.

        Returns:
            The failure that excluded the archive, or ``None`` once indexed.
        """
        try:
            identity = extract_identity(scanned.archive)
        except ExtractError as exc:
            logger.warning(
                f"Excluding archive from index (path={scanned.path} "
                f"kind={exc.kind} error={exc})"
            )
            return ArtifactFailure(path=scanned.path, kind=exc.kind, message=str(exc))
        except Exception as exc:
            logger.exception(
                f"Excluding archive after unexpected read error (path={scanned.path})"
            )
            return ArtifactFailure(
                path=scanned.path,
                kind=MalformedArchiveError.kind,
                message=f"{type(exc).__name__}: {exc}",
            )
        logger.debug(
            f"Indexed archive (path={scanned.path} name={identity.name} "
            f"version={identity.version})"
        )
        builder.add(identity, scanned.path)
        return None

    def _run_guarded(self) -> None:
        try:
            self.run()
        except Exception:
            self._state = RebuildState.IDLE
            logger.exception("Rebuild worker crashed")
            raise


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
