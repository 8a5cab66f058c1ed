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
Thread-safe registry of in-flight authentication requests.
"""

import threading

from argon_client.exceptions import ArgonError
from argon_client.models import PendingRequest


class RequestRegistry:
    """
    Owns every pending request, keyed by request id.

    The stage driver runs on the event loop while the background worker removes
    completed requests from its own thread, so every operation takes the lock.
    """

    def __init__(self) -> None:
        self._requests: dict[int, PendingRequest] = {}
        self._lock = threading.Lock()

    def insert(self, request: PendingRequest) -> None:
        """
        Registers a new request.

        Raises:
            ArgonError: If a request with the same id is already registered.
        """
        with self._lock:
            if request.id in self._requests:
                raise ArgonError(f"Request {request.id} is already registered")
            self._requests[request.id] = request

    def find_by_id(self, request_id: int) -> PendingRequest | None:
        with self._lock:
            return self._requests.get(request_id)

    def find_by_account(self, account_id: int, include_completed: bool = True) -> PendingRequest | None:
        """
        Looks up a registered request for the account.

        A completed request stays registered until its token is stored. Pass
        `include_completed=False` to look only at attempts that are still running.
        """
        with self._lock:
            for request in self._requests.values():
                if request.account.account_id != account_id:
                    continue
                if include_completed or not request.completed:
                    return request
            return None

    def remove(self, request: PendingRequest) -> PendingRequest | None:
        """
        Removes the request and hands it back to the caller.

        Returns:
            The removed request, or None if it was not registered.
        """
        with self._lock:
            return self._requests.pop(request.id, None)

    def snapshot(self) -> list[PendingRequest]:
        """Returns the currently registered requests, oldest first."""
        with self._lock:
            return sorted(self._requests.values(), key=lambda r: r.id)

    def size(self) -> int:
        with self._lock:
            return len(self._requests)

    def is_empty(self) -> bool:
        return self.size() == 0

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, request_id: object) -> bool:
        with self._lock:
            return request_id in self._requests
