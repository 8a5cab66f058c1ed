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
ArgonClient: the service object that wires the authentication core together.
"""

from typing import Any

import anyio
import httpx
from anyio.abc import TaskGroup
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from argon_client.config import ArgonClientConfig
from argon_client.driver import AuthStageDriver
from argon_client.exceptions import AuthInProgressError
from argon_client.models import AccountData, AuthCallback, AuthProgressCallback, AuthResult
from argon_client.registry import RequestRegistry
from argon_client.server_config import ServerConfig
from argon_client.storage import FileTokenStore, InMemoryTokenStore, TokenStore
from argon_client.transport import ArgonTransport, Stage2Submitter
from argon_client.utils.logger import logger
from argon_client.worker import BackgroundWorker


class ArgonClient:
    """
    Async entry point for authenticating accounts against an Argon server.
    Handles resources via async context manager: entering starts the background worker and
    the task group stage requests run on, exiting cancels whatever is still in flight.

    Example:
        async with ArgonClient(stage2=my_submitter) as argon:
            result = await argon.authenticate(account)
    """

    def __init__(
        self,
        stage2: Stage2Submitter,
        config: ArgonClientConfig | None = None,
        client: httpx.AsyncClient | None = None,
        token_store: TokenStore | None = None,
    ) -> None:
        """
        Initialize the ArgonClient.

        Args:
            stage2: Solves challenges and submits stage 2.
            config: The configuration object. Loaded from ARGON_* environment variables when omitted.
            client: External async client (optional). If not provided, one is created and closed on exit.
            token_store: Where obtained tokens are persisted. Defaults to a `FileTokenStore` when
                `config.token_store_path` is set, otherwise an `InMemoryTokenStore`.
        """
        self.config = config or ArgonClientConfig()
        self._internal_client = client is None

        if client:
            self._client = client
        else:
            self._client = httpx.AsyncClient(timeout=self.config.http_timeout)
            HTTPXClientInstrumentor().instrument_client(self._client)

        if token_store is None:
            if self.config.token_store_path is not None:
                token_store = FileTokenStore(self.config.token_store_path)
            else:
                token_store = InMemoryTokenStore()
        self.token_store = token_store

        self.registry = RequestRegistry()
        self.server = ServerConfig(self.registry, self.config.server_url)
        self.worker = BackgroundWorker(poll_interval=self.config.worker_poll_interval)
        self.transport = ArgonTransport(self._client, self.server)
        self.driver = AuthStageDriver(
            registry=self.registry,
            server=self.server,
            transport=self.transport,
            stage2=stage2,
            worker=self.worker,
            token_store=self.token_store,
            config=self.config,
        )
        self._task_group: TaskGroup | None = None

    async def __aenter__(self) -> "ArgonClient":
        self.worker.start()
        self._task_group = anyio.create_task_group()
        await self._task_group.__aenter__()
        self.driver.attach(self._task_group)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        task_group = self._task_group
        if task_group is None:
            return

        pending = self.registry.size()
        if pending:
            logger.info(f"Shutting down with {pending} pending authentication request(s)")
        self.driver.shutdown()

        try:
            await task_group.__aexit__(exc_type, exc_val, exc_tb)
        finally:
            self.driver.detach()
            self._task_group = None
            # Lets queued token writes finish before the registry is torn down
            await anyio.to_thread.run_sync(self.worker.stop)
            if self._internal_client:
                await self._client.aclose()

    def start_auth(
        self,
        account: AccountData,
        callback: AuthCallback,
        progress_callback: AuthProgressCallback | None = None,
        force_strong: bool = False,
    ) -> int:
        """
        Starts authenticating an account without waiting for the outcome.

        Args:
            account: The account to authenticate.
            callback: Invoked exactly once with the final `AuthResult`.
            progress_callback: Invoked with `AuthProgress` markers as the attempt advances.
            force_strong: Ask the server for a strong challenge.

        Returns:
            int: The request id, usable with `cancel_auth`.

        Raises:
            ClientNotRunningError: If called outside of `async with`.
            AuthInProgressError: If the account already has a pending attempt.
        """
        return self.driver.begin_authentication(account, callback, progress_callback, force_strong)

    async def authenticate(
        self,
        account: AccountData,
        force_strong: bool = False,
        progress_callback: AuthProgressCallback | None = None,
    ) -> AuthResult:
        """
        Authenticates an account and waits for the outcome.

        Cancelling the caller cancels the underlying request.

        Returns:
            AuthResult: The token on success, an error description otherwise.

        Raises:
            ClientNotRunningError: If called outside of `async with`.
        """
        done = anyio.Event()
        outcome: list[AuthResult] = []

        def on_done(result: AuthResult) -> None:
            outcome.append(result)
            done.set()

        try:
            request_id = self.start_auth(account, on_done, progress_callback, force_strong)
        except AuthInProgressError as e:
            return AuthResult.failure(str(e))

        try:
            await done.wait()
        except anyio.get_cancelled_exc_class():
            self.cancel_auth(request_id)
            raise

        return outcome[0]

    def cancel_auth(self, request_id: int) -> bool:
        """
        Cancels a pending authentication attempt. Its callback receives "Request was cancelled".

        Returns:
            bool: True if the request was still in flight.
        """
        return self.driver.cancel(request_id)

    @property
    def pending_count(self) -> int:
        return self.registry.size()

    def set_server_url(self, url: str) -> None:
        """
        Changes the server URL.

        Raises:
            RequestsPendingError: If any authentication attempt is in flight.
        """
        self.server.set_url(url)

    def get_server_url(self) -> str:
        return self.server.get_url()

    async def get_stored_token(self, account: AccountData) -> str | None:
        """Returns the persisted token for the account, if any."""
        return await anyio.to_thread.run_sync(self.token_store.get_auth_token, account)

    async def clear_stored_token(self, account: AccountData) -> None:
        await anyio.to_thread.run_sync(self.token_store.clear_auth_token, account)
