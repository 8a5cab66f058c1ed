# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/argon_client

"""
Logging setup for argon-client.

Everything goes through loguru. Records from the standard library (httpx, httpcore, anyio)
are routed into it, and the active OpenTelemetry span is attached to every record.
"""

import logging
import sys
from pathlib import Path
from typing import Any

from loguru import logger
from opentelemetry import trace
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["logger", "configure_logging", "LogSettings"]

NO_TRACE = "-"

TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<magenta>{extra[trace_id]}</magenta> - "
    "<level>{message}</level>"
)


class LogSettings(BaseSettings):
    """
    Logging options read from ARGON_LOG_* environment variables.

    Attributes:
        level (str): Minimum level for every sink. Unknown names fall back to INFO.
        json_output (bool): ARGON_LOG_JSON. Serialized JSON on stdout instead of text on stderr.
        file (Path | None): Optional JSON file sink, rotated and retained below.
    """

    model_config = SettingsConfigDict(env_prefix="ARGON_LOG_", case_sensitive=False, populate_by_name=True)

    level: str = "INFO"
    json_output: bool = Field(default=False, validation_alias="ARGON_LOG_JSON")
    file: Path | None = None
    file_rotation: str = "50 MB"
    file_retention: str = "10 days"

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        v = v.strip().upper()
        try:
            logger.level(v)
        except ValueError:
            return "INFO"
        return v


class InterceptHandler(logging.Handler):
    """Hands standard library log records to loguru, keeping the original call site."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename in (logging.__file__, __file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def trace_id_injector(record: dict[str, Any]) -> None:
    """
    Loguru patcher that stamps the current OpenTelemetry span onto the record.
    Records logged outside a span keep the NO_TRACE placeholder.
    """
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        record["extra"]["trace_id"] = format(ctx.trace_id, "032x")
        record["extra"]["span_id"] = format(ctx.span_id, "016x")


def _add_file_sink(settings: LogSettings) -> None:
    if settings.file is None:
        return
    try:
        settings.file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.file,
            level=settings.level,
            rotation=settings.file_rotation,
            retention=settings.file_retention,
            serialize=True,
            enqueue=True,
        )
    except OSError as e:
        logger.warning(f"File logging disabled, cannot write to {settings.file}: {e}")


def configure_logging(settings: LogSettings | None = None) -> None:
    """
    (Re)builds the loguru sinks and the standard library bridge.

    Args:
        settings: Explicit options. Read from the environment when omitted, so calling
            this again picks up changed ARGON_LOG_* variables.
    """
    settings = settings or LogSettings()

    logger.configure(handlers=[], patcher=trace_id_injector, extra={"trace_id": NO_TRACE})

    if settings.json_output:
        logger.add(sys.stdout, level=settings.level, serialize=True)
    else:
        logger.add(sys.stderr, level=settings.level, format=TEXT_FORMAT)

    _add_file_sink(settings)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    logging.getLogger().setLevel(logger.level(settings.level).no)


configure_logging()
