"""Per-component logger wrapper and timed-operation context manager.

``ComponentLogger`` binds a ``LogComponent`` to the global ``EngineLogger``
so callers never repeat it. When no engine logger has been initialised,
entries go to the standard ``logging`` module under
``voice_engine.<component>`` instead, so library use needs no setup.

``TimedOperation`` is returned by ``ComponentLogger.timed()`` and logs the
start, elapsed duration and success/failure of a block of code.
"""

import logging
import time
from typing import Any, Dict, Optional

from voice_engine.logging.engine_logger import get_logger, is_initialized
from voice_engine.logging.models import LogComponent, LogLevel


class ComponentLogger:
    """Wrapper that binds a fixed ``LogComponent`` to the global logger::

        log = ComponentLogger(LogComponent.AGGREGATOR)
        await log.info("Profile merged", data={"score": 42})
    """

    def __init__(self, component: LogComponent) -> None:
        self.component = component
        self._fallback = logging.getLogger(f"voice_engine.{component.value}")

    async def _emit(
        self,
        level: LogLevel,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[BaseException] = None,
        duration_ms: Optional[int] = None,
    ) -> None:
        if is_initialized():
            await get_logger().log(
                level,
                self.component,
                message,
                data=data,
                error=error,
                duration_ms=duration_ms,
            )
            return

        suffix = ""
        if data:
            suffix += f" {data}"
        if duration_ms is not None:
            suffix += f" ({duration_ms}ms)"
        if error is not None:
            suffix += f" [{type(error).__name__}: {error}]"
        self._fallback.log(level.value, "%s%s", message, suffix)

    async def debug(self, message: str, **kwargs: Any) -> None:
        await self._emit(LogLevel.DEBUG, message, **kwargs)

    async def info(self, message: str, **kwargs: Any) -> None:
        await self._emit(LogLevel.INFO, message, **kwargs)

    async def warning(self, message: str, **kwargs: Any) -> None:
        await self._emit(LogLevel.WARNING, message, **kwargs)

    async def error(
        self, message: str, error: Optional[BaseException] = None, **kwargs: Any
    ) -> None:
        await self._emit(LogLevel.ERROR, message, error=error, **kwargs)

    async def critical(
        self, message: str, error: Optional[BaseException] = None, **kwargs: Any
    ) -> None:
        await self._emit(LogLevel.CRITICAL, message, error=error, **kwargs)

    def timed(self, message: str, **data: Any) -> "TimedOperation":
        """Return an async context manager that logs start/end with duration.

        Usage::

            async with log.timed("Analyzing session", words=812):
                analysis = analyzer.analyze(timestamps)
        """
        return TimedOperation(self, message, data)


class TimedOperation:
    """Async context manager that measures and logs operation duration.

    On entry, logs a DEBUG message (``"Starting: <message>"``).
    On successful exit, logs an INFO message with ``duration_ms``.
    On exception, logs an ERROR message with ``duration_ms`` and the error,
    then lets the exception propagate.
    """

    def __init__(
        self,
        logger: ComponentLogger,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.logger = logger
        self.message = message
        self.data = data or {}
        self.start_time: Optional[float] = None
        self.duration_ms: Optional[int] = None

    async def __aenter__(self) -> "TimedOperation":
        self.start_time = time.monotonic()
        await self.logger.debug(f"Starting: {self.message}", data=self.data)
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> None:
        assert self.start_time is not None
        self.duration_ms = int((time.monotonic() - self.start_time) * 1000)

        if exc_type is not None:
            await self.logger.error(
                f"Failed: {self.message}",
                error=exc_val,
                data=self.data,
                duration_ms=self.duration_ms,
            )
        else:
            await self.logger.info(
                f"Completed: {self.message}",
                data=self.data,
                duration_ms=self.duration_ms,
            )


__all__ = ["ComponentLogger", "TimedOperation"]
