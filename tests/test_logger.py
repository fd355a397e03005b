"""Tests for the project logger."""

import io
import json

import pytest
from rich.console import Console

from smartbuild.modules import logger as _logger
from smartbuild.modules.logger import Logger


@pytest.fixture
def buffer_logger():
    buf = io.StringIO()
    log = Logger("test", console=Console(file=buf, color_system=None, width=200))
    yield log, buf
    _logger.set_level(None)


def test_levels_below_minimum_are_dropped(buffer_logger):
    log, buf = buffer_logger
    log.debug("hidden")
    log.info("shown")
    text = buf.getvalue()
    assert "hidden" not in text
    assert "[test] [INFO] shown" in text


def test_markup_in_messages_is_not_interpreted(buffer_logger):
    log, buf = buffer_logger
    log.warning("version [bold]1.0[/bold]")
    assert "version [bold]1.0[/bold]" in buf.getvalue()


def test_set_level_forces_debug(buffer_logger):
    log, buf = buffer_logger
    _logger.set_level("debug")
    log.debug("now visible")
    assert "now visible" in buf.getvalue()


def test_json_format(buffer_logger):
    log, buf = buffer_logger
    log.log_format = "json"
    log.error("broken")
    record = json.loads(buf.getvalue().strip())
    assert record["level"] == "ERROR"
    assert record["logger"] == "test"
    assert record["message"] == "broken"


def test_file_output(buffer_logger, tmp_path):
    log, _ = buffer_logger
    log.log_to_file = True
    log.log_file = str(tmp_path / "smartbuild.log")
    log.success("written")
    assert "[SUCCESS] written" in (tmp_path / "smartbuild.log").read_text()


def test_file_rotation_past_size_limit(buffer_logger, tmp_path):
    log, _ = buffer_logger
    log.log_to_file = True
    log.log_file = str(tmp_path / "smartbuild.log")
    log.max_log_size_kb = 1
    for i in range(40):
        log.info(f"line {i} " + "x" * 40)
    log.info("after rotation")
    assert (tmp_path / "smartbuild.log.1").exists()
    assert "after rotation" in (tmp_path / "smartbuild.log").read_text()
