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
Custom exceptions for the argon-client package.

Authentication outcomes are never raised; they are delivered as `AuthResult` values.
These exceptions cover misuse of the client and collaborator failures.
"""


class ArgonError(Exception):
    """Base exception for all argon-client errors."""


class RequestsPendingError(ArgonError):
    """Raised when the server URL is changed while authentication requests are in flight."""


class AuthInProgressError(ArgonError):
    """Raised when an authentication attempt is started for an account that already has one pending."""


class ClientNotRunningError(ArgonError):
    """Raised when the client is used outside of its `async with` block."""


class TokenStorageError(ArgonError):
    """Raised when an auth token cannot be persisted or loaded."""
