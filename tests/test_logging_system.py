"""Tests for the logging module: models, EngineLogger, ComponentLogger, TimedOperation."""

import json
import logging
from datetime import datetime, timezone

import pytest

from voice_engine.logging import (
    ComponentLogger,
    EngineLogger,
    LogComponent,
    LogEntry,
    LogLevel,
    get_logger,
    init_logger,
    is_initialized,
    reset_logger,
)

FIXED_TS = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _read_lines(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


# ===================================================================
# Models
# ===================================================================


class TestLogLevel:

    def test_full_ordering(self) -> None:
        ordered = sorted(LogLevel, key=lambda lvl: lvl.value)
        assert ordered == [
            LogLevel.DEBUG,
            LogLevel.INFO,
            LogLevel.WARNING,
            LogLevel.ERROR,
            LogLevel.CRITICAL,
        ]

    def test_name_str_returns_lowercase(self) -> None:
        assert LogLevel.WARNING.name_str == "warning"

    @pytest.mark.parametrize("name", ["info", "INFO", " Info "])
    def test_from_name(self, name) -> None:
        assert LogLevel.from_name(name) is LogLevel.INFO

    def test_from_name_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            LogLevel.from_name("verbose")


class TestLogComponent:

    def test_components(self) -> None:
        assert {c.value for c in LogComponent} == {
            "enthusiasm",
            "features",
            "aggregator",
            "calibration",
            "blend",
            "composer",
            "service",
            "storage",
            "startup",
        }


class TestLogEntry:

    @pytest.fixture
    def entry(self) -> LogEntry:
        return LogEntry(
            timestamp=FIXED_TS,
            level=LogLevel.INFO,
            component=LogComponent.AGGREGATOR,
            message="Profile merged",
            user_id="user-1",
            data={"score": 42},
            duration_ms=15,
        )

    def test_data_default_is_independent_per_instance(self) -> None:
        a = LogEntry(FIXED_TS, LogLevel.DEBUG, LogComponent.SERVICE, "a")
        b = LogEntry(FIXED_TS, LogLevel.DEBUG, LogComponent.SERVICE, "b")
        a.data["k"] = 1
        assert b.data == {}

    def test_to_json(self, entry) -> None:
        parsed = json.loads(entry.to_json())
        assert parsed["timestamp"] == "2025-01-01T12:00:00+00:00"
        assert parsed["level"] == 20
        assert parsed["level_name"] == "info"
        assert parsed["component"] == "aggregator"
        assert parsed["data"] == {"score": 42}
        assert parsed["error_type"] is None

    def test_to_json_stringifies_unknown_values(self) -> None:
        entry = LogEntry(
            FIXED_TS, LogLevel.INFO, LogComponent.SERVICE, "m", data={"when": FIXED_TS}
        )
        assert json.loads(entry.to_json())["data"]["when"] == str(FIXED_TS)

    def test_to_readable_full_format(self, entry) -> None:
        assert entry.to_readable() == (
            "[INFO] [12:00:00] [aggregator] Profile merged user=user-1 (15ms)"
        )

    def test_to_readable_minimal(self) -> None:
        entry = LogEntry(FIXED_TS, LogLevel.CRITICAL, LogComponent.STORAGE, "Down")
        assert entry.to_readable() == "[CRIT] [12:00:00] [storage] Down"


# ===================================================================
# EngineLogger
# ===================================================================


class TestEngineLogger:

    @pytest.mark.asyncio
    async def test_writes_json_lines(self, tmp_path) -> None:
        logger = EngineLogger(log_dir=tmp_path)
        await logger.info(LogComponent.SERVICE, "hello", data={"n": 1})
        await logger.debug(LogComponent.SERVICE, "details")
        await logger.error(LogComponent.STORAGE, "failed", error=ConnectionError("reset"))

        main = _read_lines(tmp_path / "engine.log")
        assert [line["message"] for line in main] == ["hello", "details", "failed"]
        errors = _read_lines(tmp_path / "errors.log")
        assert [line["message"] for line in errors] == ["failed"]
        assert errors[0]["error_type"] == "ConnectionError"
        assert errors[0]["error_message"] == "reset"
        debug = _read_lines(tmp_path / "debug.log")
        assert [line["message"] for line in debug] == ["details"]

    @pytest.mark.asyncio
    async def test_min_level_filters(self, tmp_path) -> None:
        logger = EngineLogger(log_dir=tmp_path, min_level=LogLevel.WARNING)
        assert await logger.log(LogLevel.INFO, LogComponent.SERVICE, "quiet") is None
        entry = await logger.log(LogLevel.WARNING, LogComponent.SERVICE, "loud")
        assert entry.message == "loud"
        assert [e.message for e in logger.get_recent()] == ["loud"]

    @pytest.mark.asyncio
    async def test_context_attached(self, tmp_path) -> None:
        logger = EngineLogger(log_dir=tmp_path)
        logger.set_context(user_id="user-7", request_id="req-1")
        entry = await logger.log(LogLevel.INFO, LogComponent.SERVICE, "with context")
        assert entry.user_id == "user-7"
        assert entry.request_id == "req-1"

        logger.clear_context()
        assert logger.context == {"user_id": None, "request_id": None}

    @pytest.mark.asyncio
    async def test_ring_buffer_and_filters(self, tmp_path) -> None:
        logger = EngineLogger(log_dir=tmp_path, max_recent=3)
        for i in range(5):
            await logger.info(LogComponent.SERVICE, f"m{i}")
        await logger.warning(LogComponent.BLEND, "blend")

        assert [e.message for e in logger.get_recent()] == ["m3", "m4", "blend"]
        assert [e.message for e in logger.get_recent(component=LogComponent.BLEND)] == ["blend"]
        assert [e.message for e in logger.get_recent(level=LogLevel.INFO, limit=1)] == ["m4"]
        assert logger.get_recent(limit=0) == []

    @pytest.mark.asyncio
    async def test_handlers_called_and_failures_contained(self, tmp_path, capsys) -> None:
        logger = EngineLogger(log_dir=tmp_path)
        seen = []

        def broken(entry):
            raise RuntimeError("handler down")

        logger.add_handler(broken)
        logger.add_handler(seen.append)
        await logger.info(LogComponent.SERVICE, "event")

        assert [e.message for e in seen] == ["event"]
        assert "handler down" in capsys.readouterr().err


class TestLoggerSingleton:

    def test_get_logger_before_init(self) -> None:
        assert not is_initialized()
        with pytest.raises(RuntimeError, match="Logger not initialized"):
            get_logger()

    def test_init_and_reset(self, tmp_path) -> None:
        logger = init_logger(log_dir=tmp_path)
        assert is_initialized()
        assert get_logger() is logger
        reset_logger()
        assert not is_initialized()


# ===================================================================
# ComponentLogger and TimedOperation
# ===================================================================


class TestComponentLogger:

    @pytest.mark.asyncio
    async def test_forwards_to_engine_logger(self, tmp_path) -> None:
        engine = init_logger(log_dir=tmp_path)
        log = ComponentLogger(LogComponent.CALIBRATION)
        await log.warning("Round rated", data={"rating": 2})

        entry = engine.get_recent()[-1]
        assert entry.component is LogComponent.CALIBRATION
        assert entry.level is LogLevel.WARNING
        assert entry.data == {"rating": 2}

    @pytest.mark.asyncio
    async def test_falls_back_to_stdlib(self, caplog) -> None:
        log = ComponentLogger(LogComponent.BLEND)
        with caplog.at_level(logging.INFO, logger="voice_engine.blend"):
            await log.info("Blend updated", data={"user_weight": 70})
        assert "Blend updated {'user_weight': 70}" in caplog.text

    @pytest.mark.asyncio
    async def test_timed_success(self, tmp_path) -> None:
        engine = init_logger(log_dir=tmp_path)
        log = ComponentLogger(LogComponent.ENTHUSIASM)

        async with log.timed("Analyzing", words=12) as op:
            pass

        messages = [e.message for e in engine.get_recent()]
        assert messages == ["Starting: Analyzing", "Completed: Analyzing"]
        completed = engine.get_recent()[-1]
        assert completed.data == {"words": 12}
        assert completed.duration_ms == op.duration_ms
        assert op.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_timed_failure_propagates(self, tmp_path) -> None:
        engine = init_logger(log_dir=tmp_path)
        log = ComponentLogger(LogComponent.FEATURES)

        with pytest.raises(ValueError):
            async with log.timed("Extracting"):
                raise ValueError("no words")

        failed = engine.get_recent()[-1]
        assert failed.message == "Failed: Extracting"
        assert failed.level is LogLevel.ERROR
        assert failed.error_type == "ValueError"
        assert _read_lines(tmp_path / "errors.log")[0]["message"] == "Failed: Extracting"
