# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Local wheel directory index served as a PEP-503 simple repository."""

from wheelhouse.index import IndexSnapshot, IndexStore
from wheelhouse.normalize import normalize_name
from wheelhouse.rebuild import RebuildOrchestrator
from wheelhouse.triggers import TriggerEvent, TriggerQueue

__all__ = [
    "IndexSnapshot",
    "IndexStore",
    "RebuildOrchestrator",
    "TriggerEvent",
    "TriggerQueue",
    "normalize_name",
]
