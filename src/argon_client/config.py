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
Configuration for the argon-client package.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SERVER_URL = "https://argon.dankmeme.dev"


class ArgonClientConfig(BaseSettings):
    """
    Configuration settings for argon-client.

    Attributes:
        server_url (str): Base URL of the Argon verification server.
        http_timeout (float): Timeout in seconds for every stage request.
        preferred_method (str): Challenge delivery channel requested on the first stage 1 call.
        max_verification_time (float): Seconds stage 3 may keep polling before the attempt fails.
        max_poll_after_ms (int): Largest `pollAfter` value accepted from the server.
        worker_poll_interval (float): Seconds the background worker waits for a task per loop.
        token_store_path (Path | None): JSON file used to persist tokens. In-memory storage when unset.
    """

    model_config = SettingsConfigDict(
        env_prefix="ARGON_",
        case_sensitive=False,
    )

    server_url: str = DEFAULT_SERVER_URL
    http_timeout: float = Field(default=10.0, gt=0, description="Timeout in seconds for stage requests.")
    preferred_method: Literal["message", "comment"] = "message"
    max_verification_time: float = Field(default=60.0, gt=0)
    max_poll_after_ms: int = Field(default=60000, ge=0)
    worker_poll_interval: float = Field(default=0.25, gt=0)
    token_store_path: Path | None = None

    @field_validator("server_url")
    @classmethod
    def normalize_server_url(cls, v: str) -> str:
        """
        Ensures the server URL is an absolute http(s) URL without a trailing slash.

        Args:
            v: The configured URL.

        Returns:
            The normalized URL.

        Raises:
            ValueError: If the URL has no http(s) scheme.
        """
        v = v.strip()
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"Server URL must start with http:// or https:// (got '{v}')")
        if v.endswith("/"):
            v = v[:-1]
        return v
