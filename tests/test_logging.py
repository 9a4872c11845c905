from __future__ import annotations

from pathlib import Path

import pytest
from loguru import logger

from workpool.actors.dispatcher import _invoke
from workpool.observability import LogConfig, setup_logging, teardown_logging

pytestmark = [pytest.mark.unit]


def explode(error, result):
    raise RuntimeError("callback bug")


class TestLogConfig:
    def test_defaults(self):
        config = LogConfig()
        assert config.level == "INFO"
        assert config.file == ".workpool/workpool.log"
        assert config.console is False


class TestSetupLogging:
    def test_file_sink_writes_records_with_context(self, tmp_path: Path):
        log_file = tmp_path / "nested" / "pool.log"
        ids = setup_logging(LogConfig(level="DEBUG", file=str(log_file)))
        try:
            assert len(ids) == 1
            logger.bind(actor="dispatcher", slot_id=0).info("Dispatched {event}", event="t1")
        finally:
            teardown_logging(ids)

        text = log_file.read_text()
        assert "INFO" in text
        assert "[actor=dispatcher slot_id=0] - Dispatched t1" in text

    def test_level_filters_records(self, tmp_path: Path):
        log_file = tmp_path / "pool.log"
        ids = setup_logging(LogConfig(level="WARNING", file=str(log_file)))
        try:
            logger.info("quiet")
            logger.warning("loud")
        finally:
            teardown_logging(ids)

        text = log_file.read_text()
        assert "loud" in text
        assert "quiet" not in text

    def test_package_records_carry_tracebacks(self, tmp_path: Path):
        log_file = tmp_path / "pool.log"
        ids = setup_logging(LogConfig(level="DEBUG", file=str(log_file)))
        try:
            _invoke(explode, None, 1)
        finally:
            teardown_logging(ids)

        text = log_file.read_text()
        assert "workpool.actors.dispatcher:_invoke" in text
        assert "[actor=dispatcher] - Task callback raised" in text
        assert "RuntimeError: callback bug" in text

    def test_teardown_removes_handlers(self, tmp_path: Path):
        ids = setup_logging(LogConfig(file=str(tmp_path / "pool.log"), console=True))
        assert len(ids) == 2

        teardown_logging(ids)
        for hid in ids:
            with pytest.raises(ValueError):
                logger.remove(hid)

    def test_teardown_is_idempotent(self, tmp_path: Path):
        ids = setup_logging(LogConfig(file=str(tmp_path / "pool.log")))
        teardown_logging(ids)
        teardown_logging(ids)

    def test_no_outputs(self):
        ids = setup_logging(LogConfig(file=None))
        assert ids == []
        teardown_logging(ids)


class TestLibraryBehavior:
    def test_package_is_silent_without_setup(self, tmp_path: Path):
        log_file = tmp_path / "app.log"
        hid = logger.add(str(log_file), level="DEBUG", format="{name} - {message}")
        try:
            _invoke(explode, None, 1)
            logger.info("application record")
        finally:
            logger.remove(hid)

        text = log_file.read_text()
        assert "application record" in text
        assert "Task callback raised" not in text

    def test_package_stays_enabled_while_another_pool_logs(self, tmp_path: Path):
        first = setup_logging(LogConfig(level="DEBUG", file=str(tmp_path / "first.log")))
        second = setup_logging(LogConfig(level="DEBUG", file=str(tmp_path / "second.log")))
        try:
            teardown_logging(first)
            _invoke(explode, None, 1)
        finally:
            teardown_logging(second)

        assert "Task callback raised" in (tmp_path / "second.log").read_text()
        assert "Task callback raised" not in (tmp_path / "first.log").read_text()
