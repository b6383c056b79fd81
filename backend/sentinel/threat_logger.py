"""Security event log.

Every event goes to the standard ``logging`` tree (so handlers, levels and
files are configured in one place by the application) and into a bounded
in-memory buffer that backs the recent-events and threat-summary views.
"""

from __future__ import annotations

import json
import logging
import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

logger = logging.getLogger(__name__)

_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class LogEntry:
    level: str
    category: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ThreatLogger:
    """Records threats, blocked requests, errors and audit entries."""

    def __init__(
        self,
        *,
        enabled: bool = True,
        buffer_size: int = 100,
        on_threat_detected: Callable[[Any], Any] | None = None,
        on_blocked: Callable[[Any], Any] | None = None,
        on_error: Callable[[BaseException, dict[str, Any]], Any] | None = None,
    ) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        self.enabled = enabled
        self._on_threat_detected = on_threat_detected
        self._on_blocked = on_blocked
        self._on_error = on_error
        self._buffer: deque[LogEntry] = deque(maxlen=buffer_size)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Event recording
    # ------------------------------------------------------------------

    def log_threats(self, result: Any) -> None:
        """Log every threat on a sanitize result, then fire the threat hook."""
        if not self.enabled:
            return
        for threat in result.threats:
            self._log(
                "warn",
                "THREAT",
                {
                    "type": threat.type,
                    "severity": threat.severity,
                    "details": threat.details,
                },
            )
        self._fire(self._on_threat_detected, result)

    def log_blocked(self, result: Any, reason: str) -> None:
        if not self.enabled:
            return
        self._log(
            "error",
            "BLOCKED",
            {"reason": reason, "threats": len(result.threats)},
        )
        self._fire(self._on_blocked, result)

    def log_error(self, error: BaseException, context: dict[str, Any] | None = None) -> None:
        context = context or {}
        if self.enabled:
            self._log(
                "error",
                "ERROR",
                {"message": str(error), "error_type": type(error).__name__, "context": context},
            )
        if self._on_error is not None:
            try:
                self._on_error(error, context)
            except Exception:
                logger.error("Error hook failed", exc_info=True)

    def log_event(self, event: str, **data: Any) -> None:
        if not self.enabled:
            return
        self._log("info", event, data)

    def audit(self, action: str, **details: Any) -> None:
        """Audit entries are kept in the buffer even when logging is off."""
        entry = LogEntry(level="audit", category="AUDIT", data={"action": action, **details})
        if self.enabled:
            logger.info("AUDIT %s %s", action, details)
        self._append(entry)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_recent(self, count: int = 10, level: str | None = None) -> list[LogEntry]:
        with self._lock:
            entries = list(self._buffer)
        if level:
            entries = [e for e in entries if e.level == level]
        if count <= 0:
            return []
        return entries[-count:]

    def get_threat_summary(self) -> dict[str, Any]:
        with self._lock:
            threats = [e for e in self._buffer if e.category == "THREAT"]

        by_severity: dict[str, int] = {}
        by_type: dict[str, int] = {}
        for entry in threats:
            severity = entry.data.get("severity", "unknown")
            threat_type = entry.data.get("type", "unknown")
            by_severity[severity] = by_severity.get(severity, 0) + 1
            by_type[threat_type] = by_type.get(threat_type, 0) + 1

        return {
            "total": len(threats),
            "by_severity": by_severity,
            "by_type": by_type,
            "recent": threats[-10:],
        }

    def clear_buffer(self) -> None:
        with self._lock:
            self._buffer.clear()

    def export_logs(self) -> str:
        with self._lock:
            entries = [e.to_dict() for e in self._buffer]
        return json.dumps(entries, indent=2, default=str)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _log(self, level: str, category: str, data: dict[str, Any]) -> None:
        if "severity" in data:
            logger.log(
                _LEVELS[level],
                "%s: %s - %s",
                category,
                str(data["severity"]).upper(),
                data.get("type") or data.get("details"),
            )
        else:
            logger.log(_LEVELS[level], "%s: %s", category, data)
        self._append(LogEntry(level=level, category=category, data=data))

    def _append(self, entry: LogEntry) -> None:
        with self._lock:
            self._buffer.append(entry)

    def _fire(self, hook: Callable[[Any], Any] | None, result: Any) -> None:
        if hook is None:
            return
        try:
            hook(result)
        except Exception as exc:
            logger.error("Threat hook failed", exc_info=True)
            self._append(
                LogEntry(level="error", category="CALLBACK_ERROR", data={"error": str(exc)})
            )
