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
Guarded server endpoint configuration.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from argon_client.config import DEFAULT_SERVER_URL
from argon_client.exceptions import RequestsPendingError
from argon_client.registry import RequestRegistry
from argon_client.utils.logger import logger


class ServerConfig:
    """
    Holds the base URL of the verification server.

    The URL may only change while no request is registered. New requests are
    inserted under `locked()`, which serializes them against `set_url`.
    """

    def __init__(self, registry: RequestRegistry, url: str = DEFAULT_SERVER_URL) -> None:
        self._registry = registry
        self._lock = threading.Lock()
        self._url = self._normalize(url)

    @staticmethod
    def _normalize(url: str) -> str:
        if url.endswith("/"):
            return url[:-1]
        return url

    def set_url(self, url: str) -> None:
        """
        Replaces the server URL, stripping one trailing slash.

        Args:
            url: The new base URL.

        Raises:
            RequestsPendingError: If any authentication request is in flight.
        """
        with self._lock:
            if not self._registry.is_empty():
                raise RequestsPendingError("Cannot change server URL while there are pending requests")
            self._url = self._normalize(url)
            logger.debug(f"Server URL set to {self._url}")

    def get_url(self) -> str:
        with self._lock:
            return self._url

    @contextmanager
    def locked(self) -> Iterator[str]:
        """Holds the URL lock and yields the current URL."""
        with self._lock:
            yield self._url
