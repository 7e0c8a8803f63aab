"""Unit tests for ghrevisions.logs."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
import structlog

from ghrevisions import cache
from ghrevisions.config import LoggingSettings, Settings
from ghrevisions.errors import ConfigurationError
from ghrevisions.factory import open_revisions
from ghrevisions.logs import setup_logging

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ghrevisions.committer import StaticIdentity


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()


def test_json_lines_on_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(LoggingSettings(level="INFO", format="json"))
    structlog.get_logger().info("revision_saved", path="content/a.md")

    captured = capsys.readouterr()
    assert captured.out == ""
    record = json.loads(captured.err.strip().splitlines()[-1])
    assert record["event"] == "revision_saved"
    assert record["path"] == "content/a.md"
    assert record["level"] == "info"
    assert "timestamp" in record


def test_level_filters_debug(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(LoggingSettings(level="WARNING", format="text"))
    structlog.get_logger().debug("cache_hit", key="tree/abc")
    structlog.get_logger().warning("revisions_operation_unsupported", operation="move_file")

    err = capsys.readouterr().err
    assert "cache_hit" not in err
    assert "revisions_operation_unsupported" in err


def test_module_loggers_follow_later_configuration(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(LoggingSettings(level="DEBUG", format="json"))
    cache.log.debug("cache_miss", key="commit/abc")
    setup_logging(LoggingSettings(level="ERROR", format="json"))
    cache.log.warning("cache_read_error", key="commit/abc")

    lines = capsys.readouterr().err.strip().splitlines()
    assert [json.loads(line)["event"] for line in lines] == ["cache_miss"]


async def test_open_revisions_configures_when_asked(
    identity: StaticIdentity, capsys: pytest.CaptureFixture[str]
) -> None:
    settings = Settings(logging=LoggingSettings(level="ERROR", format="json", configure=True))
    with pytest.raises(ConfigurationError):
        async with open_revisions(identity, settings):
            pass

    record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert record["event"] == "revisions_not_configured"
    assert record["level"] == "error"


async def test_open_revisions_leaves_host_logging_alone(
    identity: StaticIdentity, capsys: pytest.CaptureFixture[str]
) -> None:
    setup_logging(LoggingSettings(level="INFO", format="text"))
    settings = Settings(logging=LoggingSettings(format="json"))
    with pytest.raises(ConfigurationError):
        async with open_revisions(identity, settings):
            pass

    err = capsys.readouterr().err
    assert "revisions_not_configured" in err
    assert not err.lstrip().startswith("{")
