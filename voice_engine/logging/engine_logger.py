"""Central structured logger for the voice profile engine.

``EngineLogger`` writes JSON-line entries to local files (via ``aiofiles``),
keeps an in-memory ring buffer for fast ``get_recent()`` queries and fans
entries out to registered synchronous handlers.

Global helpers:
    - ``init_logger()``  -- create and register a singleton ``EngineLogger``
    - ``get_logger()``   -- retrieve the singleton (raises if not initialised)
    - ``is_initialized()`` -- whether ``init_logger()`` has run
"""

import sys
from collections import deque
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional, Union

import aiofiles

from voice_engine.logging.models import LogComponent, LogEntry, LogLevel
from voice_engine.utils import utc_now

# Context lives in contextvars so concurrent per-user tasks don't clobber
# each other's user_id.
_user_id: ContextVar[Optional[str]] = ContextVar("voice_engine_user_id", default=None)
_request_id: ContextVar[Optional[str]] = ContextVar("voice_engine_request_id", default=None)


class EngineLogger:
    """Central logging system for all engine components.

    Parameters:
        log_dir: Directory for log files (created if missing).
        min_level: Entries below this level are dropped entirely.
        max_recent: Size of the in-memory ring buffer.
    """

    def __init__(
        self,
        log_dir: Union[str, Path] = "logs",
        min_level: LogLevel = LogLevel.DEBUG,
        max_recent: int = 1000,
    ) -> None:
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.min_level = min_level

        self._main_log = self.log_dir / "engine.log"
        self._error_log = self.log_dir / "errors.log"
        self._debug_log = self.log_dir / "debug.log"

        self._recent_logs: Deque[LogEntry] = deque(maxlen=max_recent)
        self._handlers: List[Callable[[LogEntry], None]] = []

    # ------------------------------------------------------------------
    # Context management
    # ------------------------------------------------------------------

    def set_context(
        self, user_id: Optional[str] = None, request_id: Optional[str] = None
    ) -> None:
        """Set context for subsequent log entries in the current task."""
        if user_id is not None:
            _user_id.set(user_id)
        if request_id is not None:
            _request_id.set(request_id)

    def clear_context(self) -> None:
        _user_id.set(None)
        _request_id.set(None)

    @property
    def context(self) -> Dict[str, Optional[str]]:
        return {"user_id": _user_id.get(), "request_id": _request_id.get()}

    def add_handler(self, handler: Callable[[LogEntry], None]) -> None:
        """Register a custom synchronous log handler."""
        self._handlers.append(handler)

    # ------------------------------------------------------------------
    # Core log method
    # ------------------------------------------------------------------

    async def log(
        self,
        level: LogLevel,
        component: LogComponent,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[BaseException] = None,
        duration_ms: Optional[int] = None,
    ) -> Optional[LogEntry]:
        """Log a structured message.

        Returns the recorded entry, or None when ``level`` is below
        ``min_level``.
        """
        if level.value < self.min_level.value:
            return None

        entry = LogEntry(
            timestamp=utc_now(),
            level=level,
            component=component,
            message=message,
            user_id=_user_id.get(),
            request_id=_request_id.get(),
            data=data or {},
            duration_ms=duration_ms,
        )
        if error is not None:
            entry.error_type = type(error).__name__
            entry.error_message = str(error)

        self._recent_logs.append(entry)
        await self._write_to_file(entry)

        for handler in self._handlers:
            try:
                handler(entry)
            except Exception as exc:
                # A broken handler must not break logging, but stays visible.
                print(
                    f"[LOGGING] Handler {handler!r} failed: {exc}",
                    file=sys.stderr,
                )
        return entry

    async def debug(self, component: LogComponent, message: str, **kwargs: Any) -> None:
        await self.log(LogLevel.DEBUG, component, message, **kwargs)

    async def info(self, component: LogComponent, message: str, **kwargs: Any) -> None:
        await self.log(LogLevel.INFO, component, message, **kwargs)

    async def warning(self, component: LogComponent, message: str, **kwargs: Any) -> None:
        await self.log(LogLevel.WARNING, component, message, **kwargs)

    async def error(self, component: LogComponent, message: str, **kwargs: Any) -> None:
        await self.log(LogLevel.ERROR, component, message, **kwargs)

    async def critical(self, component: LogComponent, message: str, **kwargs: Any) -> None:
        await self.log(LogLevel.CRITICAL, component, message, **kwargs)

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    def get_recent(
        self,
        limit: int = 20,
        level: Optional[LogLevel] = None,
        component: Optional[LogComponent] = None,
        user_id: Optional[str] = None,
    ) -> List[LogEntry]:
        """Return recent logs from the in-memory ring buffer, oldest first."""
        logs = list(self._recent_logs)

        if level is not None:
            logs = [entry for entry in logs if entry.level == level]
        if component is not None:
            logs = [entry for entry in logs if entry.component == component]
        if user_id is not None:
            logs = [entry for entry in logs if entry.user_id == user_id]

        return logs[-limit:] if limit > 0 else []

    # ------------------------------------------------------------------
    # File output
    # ------------------------------------------------------------------

    async def _write_to_file(self, entry: LogEntry) -> None:
        """Append the entry to the JSON log files.

        - ``engine.log`` -- all entries
        - ``errors.log`` -- ERROR and CRITICAL only
        - ``debug.log``  -- DEBUG only
        """
        json_line = entry.to_json() + "\n"

        async with aiofiles.open(self._main_log, "a", encoding="utf-8") as f:
            await f.write(json_line)

        if entry.level.value >= LogLevel.ERROR.value:
            async with aiofiles.open(self._error_log, "a", encoding="utf-8") as f:
                await f.write(json_line)

        if entry.level == LogLevel.DEBUG:
            async with aiofiles.open(self._debug_log, "a", encoding="utf-8") as f:
                await f.write(json_line)


# ======================================================================
# GLOBAL LOGGER SINGLETON
# ======================================================================

_logger: Optional[EngineLogger] = None


def init_logger(
    log_dir: Union[str, Path] = "logs",
    min_level: LogLevel = LogLevel.DEBUG,
    max_recent: int = 1000,
) -> EngineLogger:
    """Initialise and register the global ``EngineLogger`` singleton."""
    global _logger
    _logger = EngineLogger(log_dir=log_dir, min_level=min_level, max_recent=max_recent)
    return _logger


def get_logger() -> EngineLogger:
    """Retrieve the global ``EngineLogger`` singleton.

    Raises:
        RuntimeError: If ``init_logger()`` has not been called yet.
    """
    if _logger is None:
        raise RuntimeError("Logger not initialized. Call init_logger() first.")
    return _logger


def is_initialized() -> bool:
    return _logger is not None


def reset_logger() -> None:
    """Drop the global logger (for tests)."""
    global _logger
    _logger = None


__all__ = [
    "EngineLogger",
    "init_logger",
    "get_logger",
    "is_initialized",
    "reset_logger",
]
