from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

from application.ports.logger import LoggerPort


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    level: str
    event: str
    fields: Dict[str, Any]


@dataclass(frozen=True)
class RecordingLogger(LoggerPort):
    """Keeps every event in memory. Bound loggers share the same entry list."""

    entries: List[LogEntry] = field(default_factory=list)
    bound: Dict[str, Any] = field(default_factory=dict)

    def bind(self, **fields: Any) -> "RecordingLogger":
        merged = dict(self.bound)
        merged.update(fields)
        return RecordingLogger(entries=self.entries, bound=merged)

    def trace(self, event: str, **fields: Any) -> None:
        self._emit("TRACE", event, fields)

    def debug(self, event: str, **fields: Any) -> None:
        self._emit("DEBUG", event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._emit("INFO", event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._emit("WARNING", event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._emit("ERROR", event, fields)

    def events(self, name: str) -> List[LogEntry]:
        return [e for e in self.entries if e.event == name]

    def _emit(self, level: str, event: str, fields: Dict[str, Any]) -> None:
        payload = dict(self.bound)
        payload.update(fields)
        self.entries.append(
            LogEntry(
                timestamp=datetime.now(timezone.utc),
                level=level,
                event=event,
                fields=payload,
            )
        )
