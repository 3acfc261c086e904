"""Tests for logging_config.py and error categorisation."""

import logging

import colorlog
import pytest

from ircterm.errors import (
    ChannelSaturationError,
    CommandArgumentError,
    ConnectFailure,
    InternalError,
    MalformedMessageError,
    log_error,
)
from ircterm.logging_config import LoggerConfigurator, error_aggregator


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def clean_aggregator():
    error_aggregator.reset()
    yield error_aggregator
    error_aggregator.reset()


class TestLoggerConfigurator:
    def test_stream_handler_uses_colorlog(self, restore_root_logger, monkeypatch):
        monkeypatch.delenv("DEBUG", raising=False)
        LoggerConfigurator(log_file=None).configure()
        (handler,) = restore_root_logger.handlers
        assert isinstance(handler, logging.StreamHandler)
        assert isinstance(handler.formatter, colorlog.ColoredFormatter)
        assert restore_root_logger.level == logging.INFO

    def test_file_handler_when_log_file_set(self, restore_root_logger, tmp_path, monkeypatch):
        monkeypatch.setenv("DEBUG", "true")
        path = tmp_path / "client.log"
        LoggerConfigurator(log_file=str(path)).configure()
        (handler,) = restore_root_logger.handlers
        assert isinstance(handler, logging.FileHandler)
        assert restore_root_logger.level == logging.DEBUG
        logging.getLogger("ircterm.test").warning("written to file")
        handler.flush()
        assert "written to file" in path.read_text(encoding="utf-8")


class TestLogError:
    @pytest.mark.parametrize(
        ("error", "category"),
        [
            (ConnectFailure("refused"), "network"),
            (ConnectionResetError("reset"), "network"),
            (MalformedMessageError("bad", command="JOIN"), "parsing"),
            (ChannelSaturationError("full"), "session"),
            (CommandArgumentError("missing"), "input"),
            (InternalError("other"), "internal"),
            (RuntimeError("boom"), "unknown"),
        ],
    )
    def test_categories(self, error, category, clean_aggregator, caplog):
        caplog.set_level(logging.ERROR)
        log_error("Something failed", error, context={"server": "irc.example.net"})
        summary = clean_aggregator.get_error_summary()
        assert list(summary) == [category]
        assert summary[category]["total_count"] == 1
        message = caplog.records[-1].message
        assert message.startswith(f"[{category.upper()}] Something failed")
        assert "server=irc.example.net" in message

    def test_internal_error_data_is_copied(self):
        data = {"timeout": 5}
        error = ChannelSaturationError("full", data=data)
        data["timeout"] = 10
        assert error.data == {"timeout": 5}
