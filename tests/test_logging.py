# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/argon_client

import json
import logging
import os
from collections.abc import Generator
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from loguru import logger
from opentelemetry.sdk.trace import TracerProvider

from argon_client.utils.logger import NO_TRACE, LogSettings, configure_logging


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    yield
    configure_logging()


def find_json_record(output: str, message: str) -> dict[str, Any] | None:
    for line in output.strip().split("\n"):
        if message not in line:
            continue
        try:
            return json.loads(line)["record"]  # type: ignore[no-any-return]
        except (json.JSONDecodeError, KeyError):
            continue
    return None


def test_json_configuration(capfd: pytest.CaptureFixture[str]) -> None:
    with patch.dict(os.environ, {"ARGON_LOG_JSON": "true", "ARGON_LOG_LEVEL": "INFO"}):
        configure_logging()
        logger.info("Test JSON message")

        out, err = capfd.readouterr()
        assert not err
        record = find_json_record(out, "Test JSON message")
        assert record is not None
        assert record["level"]["name"] == "INFO"


def test_trace_id_injection(capfd: pytest.CaptureFixture[str]) -> None:
    tracer = TracerProvider().get_tracer(__name__)

    with patch.dict(os.environ, {"ARGON_LOG_JSON": "true"}):
        configure_logging()
        with tracer.start_as_current_span("authenticate") as span:
            logger.info("Trace message")
            ctx = span.get_span_context()

        out, _ = capfd.readouterr()
        record = find_json_record(out, "Trace message")
        assert record is not None
        assert record["extra"]["trace_id"] == format(ctx.trace_id, "032x")
        assert record["extra"]["span_id"] == format(ctx.span_id, "016x")


def test_standard_logging_interception(capfd: pytest.CaptureFixture[str]) -> None:
    with patch.dict(os.environ, {"ARGON_LOG_JSON": "true"}):
        configure_logging()
        logging.getLogger("httpx").info("HTTP Request: POST https://argon.test")

        out, _ = capfd.readouterr()
        record = find_json_record(out, "HTTP Request")
        assert record is not None
        assert record["level"]["name"] == "INFO"


def test_text_logging_goes_to_stderr(capfd: pytest.CaptureFixture[str]) -> None:
    with patch.dict(os.environ, {"ARGON_LOG_JSON": "false"}):
        configure_logging()
        logger.warning("Text message")

        _, err = capfd.readouterr()
        assert "Text message" in err
        assert "WARNING" in err


def test_invalid_level_falls_back_to_info(capfd: pytest.CaptureFixture[str]) -> None:
    with patch.dict(os.environ, {"ARGON_LOG_LEVEL": "LOUD"}):
        configure_logging()
        logger.debug("hidden")
        logger.info("shown")

        _, err = capfd.readouterr()
        assert "shown" in err
        assert "hidden" not in err
        assert logging.getLogger().level == logging.INFO


def test_file_sink(tmp_path: Path) -> None:
    log_file = tmp_path / "argon.log"
    with patch.dict(os.environ, {"ARGON_LOG_FILE": str(log_file)}):
        configure_logging()
        logger.info("Persisted message")
        logger.complete()
        configure_logging()

    record = find_json_record(log_file.read_text(encoding="utf-8"), "Persisted message")
    assert record is not None


def test_text_format_shows_trace_placeholder(capfd: pytest.CaptureFixture[str]) -> None:
    configure_logging(LogSettings(json_output=False))
    logger.info("No span here")

    _, err = capfd.readouterr()
    line = next(line for line in err.splitlines() if "No span here" in line)
    assert f"| {NO_TRACE} - No span here" in line


def test_explicit_settings_override_environment(capfd: pytest.CaptureFixture[str]) -> None:
    with patch.dict(os.environ, {"ARGON_LOG_JSON": "false", "ARGON_LOG_LEVEL": "ERROR"}):
        configure_logging(LogSettings(level="debug", json_output=True))
        logger.debug("Explicit debug")

        out, err = capfd.readouterr()
        assert not err
        record = find_json_record(out, "Explicit debug")
        assert record is not None
        assert logging.getLogger().level == logging.DEBUG


def test_level_names_are_normalized() -> None:
    assert LogSettings(level=" warning ").level == "WARNING"
    assert LogSettings(level="nonsense").level == "INFO"
