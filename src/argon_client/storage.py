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
Auth token persistence.

Tokens are stored per account id. Stores are called from the background worker
thread, so implementations must be thread-safe and may block.
"""

import json
import os
import threading
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from argon_client.exceptions import TokenStorageError
from argon_client.models import AccountData


@runtime_checkable
class TokenStore(Protocol):
    """Minimal persistence contract for auth tokens."""

    def store_auth_token(self, account: AccountData, token: str) -> None: ...

    def get_auth_token(self, account: AccountData) -> str | None: ...

    def clear_auth_token(self, account: AccountData) -> None: ...


class InMemoryTokenStore:
    """Keeps tokens in a dict for the lifetime of the process."""

    def __init__(self) -> None:
        self._tokens: dict[int, str] = {}
        self._lock = threading.Lock()

    def store_auth_token(self, account: AccountData, token: str) -> None:
        with self._lock:
            self._tokens[account.account_id] = token

    def get_auth_token(self, account: AccountData) -> str | None:
        with self._lock:
            return self._tokens.get(account.account_id)

    def clear_auth_token(self, account: AccountData) -> None:
        with self._lock:
            self._tokens.pop(account.account_id, None)


class FileTokenStore:
    """
    JSON-file implementation of `TokenStore`.

    The file maps account ids to `{"user_id", "username", "token"}` records.
    Writes go through a temp file and `os.replace`.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise TokenStorageError(f"Failed to read token store {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise TokenStorageError(f"Token store {self.path} is corrupted (expected a JSON object)")
        return data

    def _save(self, data: dict[str, Any]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except OSError as e:
            raise TokenStorageError(f"Failed to write token store {self.path}: {e}") from e

    def store_auth_token(self, account: AccountData, token: str) -> None:
        with self._lock:
            data = self._load()
            data[str(account.account_id)] = {
                "user_id": account.user_id,
                "username": account.username,
                "token": token,
            }
            self._save(data)

    def get_auth_token(self, account: AccountData) -> str | None:
        with self._lock:
            record = self._load().get(str(account.account_id))
        if not isinstance(record, dict):
            return None
        token = record.get("token")
        return token if isinstance(token, str) else None

    def clear_auth_token(self, account: AccountData) -> None:
        with self._lock:
            data = self._load()
            if data.pop(str(account.account_id), None) is not None:
                self._save(data)
