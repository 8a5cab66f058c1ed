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
HTTP requests for each stage of the Argon protocol.
"""

from typing import Any, Protocol, runtime_checkable

import httpx

from argon_client.models import AccountData, ChallengeMethod
from argon_client.server_config import ServerConfig
from argon_client.utils.logger import logger


@runtime_checkable
class Stage2Submitter(Protocol):
    """
    Solves a stage 1 challenge and delivers the solution through the chosen channel.

    The returned response is interpreted by the stage driver: an empty body or
    the literal "-1" means failure, any other body from a 2xx response means success.
    """

    async def submit(
        self,
        account: AccountData,
        challenge_id: int,
        challenge: int,
        method: ChallengeMethod,
    ) -> httpx.Response: ...


class ArgonTransport:
    """
    Builds and sends the stage 1 and stage 3 requests.

    The server URL is read from `ServerConfig` on every call.

    Attributes:
        client (httpx.AsyncClient): The async HTTP client used for every request.
        server (ServerConfig): Source of the server base URL.
    """

    def __init__(self, client: httpx.AsyncClient, server: ServerConfig) -> None:
        self.client = client
        self.server = server

    async def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        url = f"{self.server.get_url()}{path}"
        logger.debug(f"POST {url}")
        return await self.client.post(url, json=payload)

    @staticmethod
    def _stage1_payload(account: AccountData, method: ChallengeMethod, force_strong: bool) -> dict[str, Any]:
        return {
            "accountId": account.account_id,
            "userId": account.user_id,
            "username": account.username,
            "forceStrong": force_strong,
            "reqMethod": str(method),
        }

    async def start_stage1(
        self, account: AccountData, method: ChallengeMethod, force_strong: bool
    ) -> httpx.Response:
        """Requests a new challenge for the account."""
        return await self._post("/v1/challenge/start", self._stage1_payload(account, method, force_strong))

    async def restart_stage1(
        self, account: AccountData, method: ChallengeMethod, force_strong: bool
    ) -> httpx.Response:
        """Requests a replacement challenge after a failed attempt, asking for a different delivery method."""
        return await self._post("/v1/challenge/restart", self._stage1_payload(account, method, force_strong))

    async def start_stage3(self, account: AccountData, ident: str | None) -> httpx.Response:
        """Asks the server to verify the submitted solution."""
        return await self._post("/v1/challenge/verify", {"accountId": account.account_id, "ident": ident})

    async def poll_stage3(self, account: AccountData, ident: str | None) -> httpx.Response:
        """Polls the server for the outcome of a pending verification."""
        return await self._post("/v1/challenge/verifypoll", {"accountId": account.account_id, "ident": ident})
