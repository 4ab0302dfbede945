"""Structured diagnostics for scenario post-mortems."""

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class DiagnosticEvent:
    """Single diagnostic event.

    Attributes
    ----------
    event_type : str
        Type of event (e.g., "state", "poll-tick", "cleanup")
    description : str
        Event description
    details : dict
        Additional event details
    timestamp : float
        Time when event was recorded
    """

    event_type: str
    description: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


class DiagnosticsCollector:
    """Captures structured scenario events.

    Events are kept in memory. When a log path is set, each event is also
    appended to disk as a JSON line so the trail survives an aborted run.

    Attributes
    ----------
    events : list[DiagnosticEvent]
        Collected events in recording order
    """

    def __init__(self, log_path: Path | None = None) -> None:
        self.events: list[DiagnosticEvent] = []
        self._log_path = Path(log_path) if log_path else None
        self._log_lock = threading.Lock()

    def record(
        self, event_type: str, description: str, details: dict[str, Any] | None = None
    ) -> None:
        """Record a diagnostic event.

        Parameters
        ----------
        event_type : str
            Type of event
        description : str
            Event description
        details : dict, optional
            Additional event details
        """
        event = DiagnosticEvent(
            event_type=event_type,
            description=description,
            details=details or {},
        )
        self.events.append(event)
        logger.debug(f"[{event_type}] {description} | details: {event.details}")

        if self._log_path is None:
            return

        payload = {
            "event_type": event.event_type,
            "description": event.description,
            "details": event.details,
            "timestamp": event.timestamp,
        }
        line = json.dumps(payload, default=str)
        try:
            with self._log_lock:
                self._log_path.parent.mkdir(parents=True, exist_ok=True)
                with self._log_path.open("a", encoding="utf-8") as log_file:
                    log_file.write(line + "\n")
        except OSError as e:
            logger.warning("Failed to write diagnostics to %s: %s", self._log_path, e)

    def get_events_by_type(self, event_type: str) -> list[DiagnosticEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def set_log_path(self, log_path: Path | None) -> None:
        """Update the on-disk log path used for streaming diagnostics."""
        self._log_path = Path(log_path) if log_path else None
