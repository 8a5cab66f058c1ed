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
Data models for the argon-client package.
"""

import itertools
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

import anyio
from pydantic import BaseModel, ConfigDict, Field, model_validator


class AuthProgress(StrEnum):
    """Progress markers emitted while an authentication attempt advances."""

    REQUESTED_CHALLENGE = "RequestedChallenge"
    SOLVING_CHALLENGE = "SolvingChallenge"
    VERIFYING_CHALLENGE = "VerifyingChallenge"
    RETRYING_REQUEST = "RetryingRequest"
    RETRYING_SOLVE = "RetryingSolve"
    RETRYING_VERIFY = "RetryingVerify"


class ChallengeMethod(StrEnum):
    """The two channels a stage 2 solution can be delivered through."""

    MESSAGE = "message"
    COMMENT = "comment"

    def other(self) -> "ChallengeMethod":
        return ChallengeMethod.COMMENT if self is ChallengeMethod.MESSAGE else ChallengeMethod.MESSAGE


class AccountData(BaseModel):
    """
    Identity of the account being authenticated.

    Attributes:
        account_id (int): The account ID, used as the key for pending requests and stored tokens.
        user_id (int): The user ID associated with the account.
        username (str): The account's display name.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    account_id: int = Field(..., ge=0)
    user_id: int = Field(..., ge=0)
    username: str = Field(..., min_length=1)


class AuthResult(BaseModel):
    """
    Final outcome of an authentication attempt. Exactly one of `token` and `error` is set.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    token: str | None = None
    error: str | None = None

    @model_validator(mode="after")
    def check_exclusive(self) -> "AuthResult":
        if (self.token is None) == (self.error is None):
            raise ValueError("AuthResult requires exactly one of 'token' or 'error'")
        return self

    @classmethod
    def success(cls, token: str) -> "AuthResult":
        return cls(token=token)

    @classmethod
    def failure(cls, error: str) -> "AuthResult":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.token is not None

    def __repr__(self) -> str:
        # The token is a credential and must not end up in logs
        if self.ok:
            return "AuthResult(token='<REDACTED>')"
        return f"AuthResult(error={self.error!r})"

    def __str__(self) -> str:
        return self.__repr__()


AuthCallback = Callable[[AuthResult], None]
AuthProgressCallback = Callable[[AuthProgress], None]


_id_lock = threading.Lock()
_id_counter = itertools.count(1)


def next_request_id() -> int:
    """Returns the next process-wide request id. Ids are never reused."""
    with _id_lock:
        return next(_id_counter)


@dataclass(eq=False)
class PendingRequest:
    """
    A single in-flight authentication attempt.

    Only the stage driver mutates a request, and only from the task of its current stage.
    `active_scope` is the cancel scope of that task and is replaced on every stage transition.
    """

    account: AccountData
    callback: AuthCallback
    progress_callback: AuthProgressCallback | None = None
    force_strong: bool = False
    chosen_method: ChallengeMethod = ChallengeMethod.MESSAGE
    id: int = field(default_factory=next_request_id)
    server_ident: str | None = None
    retrying: bool = False
    started_verification_at: float | None = None
    state: AuthProgress | None = None
    active_scope: anyio.CancelScope | None = field(default=None, repr=False)
    completed: bool = False
