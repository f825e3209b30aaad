"""Logging data models: LogLevel, LogComponent, LogEntry."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class LogLevel(Enum):
    """Log levels with numeric values so severities compare correctly."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @property
    def name_str(self) -> str:
        """Lowercase name for display/serialization."""
        return self.name.lower()

    @classmethod
    def from_name(cls, name: str) -> "LogLevel":
        """Resolve ``"info"``, ``"WARNING"`` etc. to a member."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown log level: {name!r}") from None


class LogComponent(Enum):
    """Engine components that can produce logs."""

    # Analysis
    ENTHUSIASM = "enthusiasm"
    FEATURES = "features"

    # Profile building
    AGGREGATOR = "aggregator"
    CALIBRATION = "calibration"
    BLEND = "blend"
    COMPOSER = "composer"

    # Infrastructure
    SERVICE = "service"
    STORAGE = "storage"
    STARTUP = "startup"


@dataclass
class LogEntry:
    """Structured log entry.

    Carries the user/request context active when it was emitted, optional
    error details and a timing measurement.
    """

    timestamp: datetime
    level: LogLevel
    component: LogComponent
    message: str

    # Context
    user_id: Optional[str] = None
    request_id: Optional[str] = None

    data: Dict[str, Any] = field(default_factory=dict)

    error_type: Optional[str] = None
    error_message: Optional[str] = None

    duration_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "level_name": self.level.name_str,
            "component": self.component.value,
            "message": self.message,
            "user_id": self.user_id,
            "request_id": self.request_id,
            "data": self.data,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "duration_ms": self.duration_ms,
        }

    def to_json(self) -> str:
        """Serialize to a single JSON line for file logging."""
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def to_readable(self) -> str:
        """Human-readable format for console output."""
        time_str = self.timestamp.strftime("%H:%M:%S")
        level_indicators = {
            LogLevel.DEBUG: "[DEBUG]",
            LogLevel.INFO: "[INFO]",
            LogLevel.WARNING: "[WARN]",
            LogLevel.ERROR: "[ERROR]",
            LogLevel.CRITICAL: "[CRIT]",
        }
        indicator = level_indicators.get(self.level, "[???]")
        msg = f"{indicator} [{time_str}] [{self.component.value}] {self.message}"
        if self.user_id:
            msg += f" user={self.user_id}"
        if self.duration_ms:
            msg += f" ({self.duration_ms}ms)"
        return msg


__all__ = ["LogLevel", "LogComponent", "LogEntry"]
