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
Asynchronous client for proving account ownership to an Argon verification server.
"""

__version__ = "1.1.9"

from .client import ArgonClient
from .config import ArgonClientConfig
from .exceptions import (
    ArgonError,
    AuthInProgressError,
    ClientNotRunningError,
    RequestsPendingError,
    TokenStorageError,
)
from .models import AccountData, AuthProgress, AuthResult, ChallengeMethod
from .storage import FileTokenStore, InMemoryTokenStore, TokenStore
from .transport import Stage2Submitter

__all__ = [
    "AccountData",
    "ArgonClient",
    "ArgonClientConfig",
    "ArgonError",
    "AuthInProgressError",
    "AuthProgress",
    "AuthResult",
    "ChallengeMethod",
    "ClientNotRunningError",
    "FileTokenStore",
    "InMemoryTokenStore",
    "RequestsPendingError",
    "Stage2Submitter",
    "TokenStorageError",
    "TokenStore",
]
