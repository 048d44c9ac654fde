"""
strata Build Event Log

Audit trail of build runs: stage starts, per-unit outcomes and aborts.
Queryable by run, unit and event type; exportable to JSON for debugging.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union
import json
import logging
import threading
import uuid

from strata.core.results import utc_now

logger = logging.getLogger(__name__)


class BuildEventType(Enum):
    """Type of build event."""
    RUN_STARTED = "run_started"
    STAGE_STARTED = "stage_started"
    UNIT_SUCCEEDED = "unit_succeeded"
    UNIT_FAILED = "unit_failed"
    UNIT_SKIPPED = "unit_skipped"
    RUN_ABORTED = "run_aborted"
    RUN_COMPLETED = "run_completed"


@dataclass
class BuildEvent:
    """A single entry in the build event log."""
    event_type: BuildEventType
    run_id: str
    unit: Optional[str] = None
    stage: Optional[int] = None
    message: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "run_id": self.run_id,
            "unit": self.unit,
            "stage": self.stage,
            "message": self.message,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildEvent":
        return cls(
            event_id=data.get("event_id", str(uuid.uuid4())[:12]),
            timestamp=datetime.fromisoformat(data["timestamp"]) if data.get("timestamp") else utc_now(),
            event_type=BuildEventType(data["event_type"]),
            run_id=data["run_id"],
            unit=data.get("unit"),
            stage=data.get("stage"),
            message=data.get("message", ""),
            metadata=data.get("metadata", {}),
        )


class BuildEventLog:
    """Bounded, indexed log of build events."""

    DEFAULT_MAX_ENTRIES = 10000

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self._entries: List[BuildEvent] = []
        self._max_entries = max_entries
        self._lock = threading.Lock()

        # Indexes for fast lookup
        self._by_unit: Dict[str, List[BuildEvent]] = {}
        self._by_run: Dict[str, List[BuildEvent]] = {}

    def log(self, event: BuildEvent) -> str:
        """
        Add an event to the log.

        Returns:
            Event ID
        """
        with self._lock:
            self._entries.append(event)
            self._index(event)

            if len(self._entries) > self._max_entries:
                self._entries = self._entries[-self._max_entries:]
                self._rebuild_indexes()

        return event.event_id

    def record(
        self,
        event_type: BuildEventType,
        run_id: str,
        unit: Optional[str] = None,
        stage: Optional[int] = None,
        message: str = "",
        **metadata: Any,
    ) -> str:
        """Convenience method to build and log an event."""
        return self.log(BuildEvent(
            event_type=event_type,
            run_id=run_id,
            unit=unit,
            stage=stage,
            message=message,
            metadata=metadata,
        ))

    def query(
        self,
        unit: Optional[str] = None,
        run_id: Optional[str] = None,
        event_types: Optional[Set[BuildEventType]] = None,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[BuildEvent]:
        """
        Query the log.

        Returns:
            Matching events, newest first
        """
        with self._lock:
            if unit is not None:
                entries = list(self._by_unit.get(unit, []))
            elif run_id is not None:
                entries = list(self._by_run.get(run_id, []))
            else:
                entries = list(self._entries)

        filtered = []
        for event in reversed(entries):
            if since and event.timestamp < since:
                continue
            if run_id is not None and event.run_id != run_id:
                continue
            if event_types and event.event_type not in event_types:
                continue
            filtered.append(event)
            if len(filtered) >= limit:
                break

        return filtered

    def get_run(self, run_id: str) -> List[BuildEvent]:
        """All events for a run, oldest first."""
        with self._lock:
            return list(self._by_run.get(run_id, []))

    def get_for_unit(self, unit: str, limit: int = 100) -> List[BuildEvent]:
        with self._lock:
            entries = self._by_unit.get(unit, [])
            return list(reversed(entries[-limit:]))

    def export_to_json(self, path: Union[str, Path], limit: int = 10000) -> int:
        """
        Export events to a JSON file.

        Returns:
            Number of events exported
        """
        events = self.query(limit=limit)
        data = {
            "exported_at": utc_now().isoformat(),
            "event_count": len(events),
            "events": [e.to_dict() for e in events],
        }

        with open(path, "w") as f:
            json.dump(data, f, indent=2)

        logger.info(f"Exported {len(events)} build events to {path}")
        return len(events)

    def import_from_json(self, path: Union[str, Path]) -> int:
        with open(path, "r") as f:
            data = json.load(f)

        # Exports are newest first
        events = [BuildEvent.from_dict(e) for e in reversed(data.get("events", []))]
        for event in events:
            self.log(event)

        logger.info(f"Imported {len(events)} build events from {path}")
        return len(events)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._by_unit.clear()
            self._by_run.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _index(self, event: BuildEvent) -> None:
        if event.unit:
            self._by_unit.setdefault(event.unit, []).append(event)
        self._by_run.setdefault(event.run_id, []).append(event)

    def _rebuild_indexes(self) -> None:
        self._by_unit.clear()
        self._by_run.clear()
        for event in self._entries:
            self._index(event)
