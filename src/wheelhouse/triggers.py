# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Rebuild trigger events, their queue and the periodic timer source."""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import cast

logger = logging.getLogger(__name__)

_CLOSED = object()


@dataclass(frozen=True)
class TriggerEvent:
    """Represent one request for a full rescan.

    Attributes:
        source: Label of the producer, e.g. ``timer`` or ``http``.
    """

    source: str


class TriggerQueueClosedError(RuntimeError):
    """Represent a put on a queue that no longer accepts triggers."""


class TriggerQueue:
    """Unbounded FIFO of trigger events with explicit closure.

    Events are delivered in arrival order without deduplication. After
    ``close`` the queue still hands out events already enqueued, then ``get``
    returns ``None``.
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[object] = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, event: TriggerEvent) -> None:
        """Enqueue a trigger event.

        Args:
            event: Event to deliver.

        Raises:
            TriggerQueueClosedError: If the queue has been closed.
        """
        with self._lock:
            if self._closed:
                raise TriggerQueueClosedError(
                    f"Trigger queue is closed (source={event.source})"
                )
            self._queue.put(event)

    def get(self) -> TriggerEvent | None:
        """Block until the next event; return ``None`` once closed and drained."""
        item = self._queue.get()
        if item is _CLOSED:
            # Keep the marker for any other consumer.
            self._queue.put(_CLOSED)
            return None
        return cast(TriggerEvent, item)

    def close(self) -> None:
        """Stop accepting events and release blocked consumers."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)
        logger.debug("Trigger queue closed")


class PeriodicTrigger:
    """Emit a trigger immediately and then on a fixed interval."""

    def __init__(
        self,
        triggers: TriggerQueue,
        interval_seconds: float,
        source: str = "timer",
    ) -> None:
        """Initialize timer source.

        Args:
            triggers: Queue receiving the events.
            interval_seconds: Delay between two events.
            source: Label attached to emitted events.

        Raises:
            ValueError: If ``interval_seconds`` is not greater than zero.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._triggers = triggers
        self._interval_seconds = interval_seconds
        self._source = source
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start emitting on a daemon thread."""
        if self._thread is not None:
            raise RuntimeError("PeriodicTrigger already started")
        self._thread = threading.Thread(
            target=self._run, name="wheelhouse-timer", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop emitting and wait for the thread to finish."""
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            try:
                self._triggers.put(TriggerEvent(source=self._source))
            except TriggerQueueClosedError:
                logger.info(f"Trigger queue closed; timer stopping (source={self._source})")
                return
            if self._stopped.wait(self._interval_seconds):
                logger.debug(f"Timer stopped (source={self._source})")
                return
