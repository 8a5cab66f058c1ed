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
AuthStageDriver component implementing the three-stage challenge/response/poll protocol.

Stage 1 asks the server for a challenge, stage 2 submits the solution through one of
two channels, and stage 3 polls the server until it confirms the solution. A failure in
stage 2 or 3 restarts the attempt once with the other channel before it becomes terminal.
"""

import time
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any

import anyio
import httpx
from anyio.abc import TaskGroup
from pydantic import ValidationError

from argon_client.config import ArgonClientConfig
from argon_client.exceptions import ArgonError, AuthInProgressError, ClientNotRunningError
from argon_client.models import (
    AccountData,
    AuthCallback,
    AuthProgress,
    AuthProgressCallback,
    AuthResult,
    ChallengeMethod,
    PendingRequest,
)
from argon_client.models_internal import Stage1ResponseData, Stage3ResponseData
from argon_client.registry import RequestRegistry
from argon_client.server_config import ServerConfig
from argon_client.storage import TokenStore
from argon_client.transport import ArgonTransport, Stage2Submitter
from argon_client.utils.logger import logger
from argon_client.worker import BackgroundWorker

NO_ERROR_MESSAGE = "Malformed server response (no error message)"
MALFORMED_DATA = "Malformed server response ('data' key missing or format is invalid)"
NO_RESPONSE = "Server did not send a response"
STAGE2_GENERIC_FAILURE = "Stage 2 failed (generic error)"
VERIFICATION_TIMEOUT = "Server did not verify the solution in a reasonable amount of time"
INVALID_POLL_AFTER = "Server sent an invalid pollAfter value"
CANCELLED = "Request was cancelled"

ResponseHandler = Callable[[PendingRequest, httpx.Response], None]
FailureHandler = Callable[[PendingRequest, Exception], None]


class AuthStageDriver:
    """
    Drives every pending request through the protocol stages.

    Each stage runs as a task on the attached task group inside its own cancel scope.
    The scope is stored on the request and replaced when the next stage is spawned, so a
    request only ever has one live stage and its handlers run strictly one after another.

    Attributes:
        registry (RequestRegistry): Owner of all pending requests.
        server (ServerConfig): Guarded server URL.
        transport (ArgonTransport): Sends stage 1 and stage 3 requests.
        stage2 (Stage2Submitter): Solves and submits stage 2.
        worker (BackgroundWorker): Runs token persistence off the event loop.
        token_store (TokenStore): Destination for successfully obtained tokens.
        config (ArgonClientConfig): Protocol limits and defaults.
    """

    def __init__(
        self,
        registry: RequestRegistry,
        server: ServerConfig,
        transport: ArgonTransport,
        stage2: Stage2Submitter,
        worker: BackgroundWorker,
        token_store: TokenStore,
        config: ArgonClientConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.registry = registry
        self.server = server
        self.transport = transport
        self.stage2 = stage2
        self.worker = worker
        self.token_store = token_store
        self.config = config
        self._clock = clock
        self._task_group: TaskGroup | None = None

    def attach(self, task_group: TaskGroup) -> None:
        """Binds the driver to the task group its stage tasks are spawned on."""
        self._task_group = task_group

    def detach(self) -> None:
        self._task_group = None

    def begin_authentication(
        self,
        account: AccountData,
        callback: AuthCallback,
        progress_callback: AuthProgressCallback | None = None,
        force_strong: bool = False,
    ) -> int:
        """
        Starts a new authentication attempt for the account.

        Args:
            account: The account to authenticate.
            callback: Invoked exactly once with the final `AuthResult`.
            progress_callback: Invoked with an `AuthProgress` marker as the attempt advances.
            force_strong: Passed through to the server's challenge selection.

        Returns:
            int: The id of the new request.

        Raises:
            ClientNotRunningError: If no task group is attached.
            AuthInProgressError: If the account already has a pending request.
        """
        if self._task_group is None:
            raise ClientNotRunningError("The client must be entered with 'async with' before authenticating.")

        request = PendingRequest(
            account=account,
            callback=callback,
            progress_callback=progress_callback,
            force_strong=force_strong,
            chosen_method=ChallengeMethod(self.config.preferred_method),
        )

        with self.server.locked():
            if self.registry.find_by_account(account.account_id, include_completed=False) is not None:
                raise AuthInProgressError(f"Authentication already in progress for account {account.account_id}")
            self.registry.insert(request)

        logger.debug(f"Request {request.id}: starting authentication for account {account.account_id}")
        self._progress(request, AuthProgress.REQUESTED_CHALLENGE)
        self._spawn(
            request,
            partial(self.transport.start_stage1, account, request.chosen_method, force_strong),
            self._process_stage1_response,
            self._on_stage1_failure,
        )
        return request.id

    def cancel(self, request_id: int) -> bool:
        """
        Cancels the live stage of a pending request.

        The stage task observes the cancellation and completes the request with an error.

        Returns:
            bool: True if a live stage was cancelled.
        """
        request = self.registry.find_by_id(request_id)
        if request is None or request.completed or request.active_scope is None:
            return False
        request.active_scope.cancel()
        return True

    def shutdown(self) -> None:
        """Cancels every request that has not completed yet."""
        for request in self.registry.snapshot():
            if not request.completed and request.active_scope is not None:
                request.active_scope.cancel()

    # Stage plumbing

    def _spawn(
        self,
        request: PendingRequest,
        send: Callable[[], Awaitable[httpx.Response]],
        on_response: ResponseHandler,
        on_failure: FailureHandler,
        delay: float = 0.0,
    ) -> None:
        if self._task_group is None:
            raise ClientNotRunningError("The client is not running.")
        scope = anyio.CancelScope()
        request.active_scope = scope
        self._task_group.start_soon(self._run_stage, request, scope, send, on_response, on_failure, delay)

    async def _run_stage(
        self,
        request: PendingRequest,
        scope: anyio.CancelScope,
        send: Callable[[], Awaitable[httpx.Response]],
        on_response: ResponseHandler,
        on_failure: FailureHandler,
        delay: float,
    ) -> None:
        response: httpx.Response | None = None
        failure: Exception | None = None

        try:
            with scope:
                if delay > 0:
                    await anyio.sleep(delay)
                try:
                    response = await send()
                except Exception as e:
                    failure = e
        except anyio.get_cancelled_exc_class():
            # The surrounding task group is going away
            self._handle_cancellation(request)
            raise

        if scope.cancel_called:
            self._handle_cancellation(request)
            return

        try:
            if failure is not None:
                on_failure(request, failure)
            elif response is not None:
                on_response(request, response)
        except Exception as e:
            logger.exception(f"Request {request.id}: unexpected error while handling a stage response")
            self._fail(request, f"Internal error: {e}")

    def _progress(self, request: PendingRequest, progress: AuthProgress) -> None:
        request.state = progress
        if request.progress_callback is None:
            return
        try:
            request.progress_callback(progress)
        except Exception:
            logger.exception(f"Request {request.id}: progress callback raised")

    def _complete(self, request: PendingRequest, result: AuthResult) -> None:
        if request.completed:
            logger.warning(f"Request {request.id}: ignoring second completion ({result!r})")
            return
        request.completed = True
        request.active_scope = None
        try:
            request.callback(result)
        except Exception:
            logger.exception(f"Request {request.id}: completion callback raised")

    def _cleanup(self, request: PendingRequest) -> None:
        self.registry.remove(request)

    def _fail(self, request: PendingRequest, error: str) -> None:
        self._complete(request, AuthResult.failure(error))
        self._cleanup(request)

    @staticmethod
    def _parse_json(request: PendingRequest, response: httpx.Response, stage: int) -> dict[str, Any] | None:
        try:
            obj = response.json()
        except ValueError:
            logger.warning(
                f"Request {request.id}: stage {stage} request failed with code {response.status_code}, "
                "server did not send a JSON, dumping server response."
            )
            logger.warning(response.text)
            return None
        return obj if isinstance(obj, dict) else {}

    @staticmethod
    def _server_error(obj: dict[str, Any]) -> str:
        error = obj.get("error")
        return error if isinstance(error, str) else NO_ERROR_MESSAGE

    # Stage 1

    def _on_stage1_failure(self, request: PendingRequest, exc: Exception) -> None:
        logger.warning(f"Stage 1 request failed: {exc}")
        self._handle_stage1_error(request, f"Unknown server error ({exc})")

    def _process_stage1_response(self, request: PendingRequest, response: httpx.Response) -> None:
        obj = self._parse_json(request, response, stage=1)
        if obj is None:
            self._handle_stage1_error(request, f"Unknown server error ({response.status_code})")
            return

        if obj.get("success") is not True:
            self._handle_stage1_error(request, self._server_error(obj))
            return

        try:
            data = Stage1ResponseData.model_validate(obj.get("data"))
        except ValidationError:
            self._handle_stage1_error(request, MALFORMED_DATA)
            return

        request.server_ident = data.ident
        request.chosen_method = ChallengeMethod(data.method)
        self._progress(
            request, AuthProgress.RETRYING_SOLVE if request.retrying else AuthProgress.SOLVING_CHALLENGE
        )
        self._spawn(
            request,
            partial(self.stage2.submit, request.account, data.id, data.challenge, request.chosen_method),
            self._process_stage2_response,
            self._on_stage2_failure,
        )

    def _handle_stage1_error(self, request: PendingRequest, error: str) -> None:
        # A bad challenge request is never retried with the other method
        self._fail(request, error)

    def _restart_stage1(self, request: PendingRequest) -> None:
        request.chosen_method = request.chosen_method.other()
        request.retrying = True
        self._progress(request, AuthProgress.RETRYING_REQUEST)
        self._spawn(
            request,
            partial(self.transport.restart_stage1, request.account, request.chosen_method, request.force_strong),
            self._process_stage1_response,
            self._on_stage1_failure,
        )

    # Stage 2

    def _on_stage2_failure(self, request: PendingRequest, exc: Exception) -> None:
        logger.warning(f"Stage 2 request failed: {exc}")
        self._handle_stage2_error(request, NO_RESPONSE)

    def _process_stage2_response(self, request: PendingRequest, response: httpx.Response) -> None:
        body = response.text
        if not body:
            self._handle_stage2_error(request, NO_RESPONSE)
            return

        if not response.is_success:
            logger.warning(f"Stage 2 request failed with code {response.status_code}, dumping server response.")
            logger.warning(body)
            self._handle_stage2_error(request, f"Server responded with code {response.status_code}")
            return

        if body == "-1":
            self._handle_stage2_error(request, STAGE2_GENERIC_FAILURE)
            return

        # Stage 2 went through, ask the server whether it saw the solution
        request.started_verification_at = self._clock()
        self._progress(
            request, AuthProgress.RETRYING_VERIFY if request.retrying else AuthProgress.VERIFYING_CHALLENGE
        )
        self._spawn(
            request,
            partial(self.transport.start_stage3, request.account, request.server_ident),
            self._process_stage3_response,
            self._on_stage3_failure,
        )

    def _handle_stage2_error(self, request: PendingRequest, error: str) -> None:
        self._handle_stage_error(request, 2, error)

    # Stage 3

    def _on_stage3_failure(self, request: PendingRequest, exc: Exception) -> None:
        logger.warning(f"Stage 3 request failed: {exc}")
        self._handle_stage3_error(request, f"Unknown server error ({exc})")

    def _process_stage3_response(self, request: PendingRequest, response: httpx.Response) -> None:
        obj = self._parse_json(request, response, stage=3)
        if obj is None:
            self._handle_stage3_error(request, f"Unknown server error ({response.status_code})")
            return

        # success only means the server accepted the poll, not that the account is verified
        if obj.get("success") is not True:
            self._handle_stage3_error(request, self._server_error(obj))
            return

        try:
            data = Stage3ResponseData.model_validate(obj.get("data"))
        except ValidationError:
            self._handle_stage3_error(request, MALFORMED_DATA)
            return

        if data.verified:
            self._handle_successful_auth(request, data.authtoken or "")
            return

        self.wait_and_retry_stage3(request, data.poll_after if data.poll_after is not None else -1)

    def wait_and_retry_stage3(self, request: PendingRequest, poll_after_ms: int) -> None:
        """
        Schedules the next stage 3 poll after `poll_after_ms` milliseconds.

        A spent verification budget or a delay outside the accepted range is a stage 3 error,
        so it switches to the other method once before the attempt fails.
        """
        started = request.started_verification_at
        if started is not None and self._clock() - started > self.config.max_verification_time:
            self._handle_stage3_error(request, VERIFICATION_TIMEOUT)
            return

        if poll_after_ms < 0 or poll_after_ms > self.config.max_poll_after_ms:
            self._handle_stage3_error(request, INVALID_POLL_AFTER)
            return

        logger.debug(f"Request {request.id}: polling stage 3 again in {poll_after_ms} ms")
        self._spawn(
            request,
            partial(self.transport.poll_stage3, request.account, request.server_ident),
            self._process_stage3_response,
            self._on_stage3_failure,
            delay=poll_after_ms / 1000,
        )

    def _handle_stage3_error(self, request: PendingRequest, error: str) -> None:
        self._handle_stage_error(request, 3, error)

    # Shared outcomes

    def _handle_stage_error(self, request: PendingRequest, stage: int, error: str) -> None:
        # Try the other delivery method once before failing for good
        if not request.retrying:
            logger.warning(
                f'Stage {stage} failed with method "{request.chosen_method}", retrying with a different one'
            )
            logger.warning(f"Fail reason: {error}")
            self._restart_stage1(request)
            return

        self._fail(request, error)

    def _handle_cancellation(self, request: PendingRequest) -> None:
        if request.completed:
            return
        logger.info(f"Request {request.id}: cancelled")
        self._fail(request, CANCELLED)

    def _handle_successful_auth(self, request: PendingRequest, token: str) -> None:
        logger.info(f"Request {request.id}: account {request.account.account_id} authenticated")
        self._complete(request, AuthResult.success(token))

        task = partial(self._store_token_and_cleanup, request, token)
        try:
            self.worker.push(task)
        except ArgonError:
            if self._task_group is None:
                logger.warning("Background worker is not running, storing the auth token inline")
                task()
                return
            # Token stores may block on file I/O
            logger.warning("Background worker is not running, storing the auth token on a worker thread")
            self._task_group.start_soon(anyio.to_thread.run_sync, task)

    def _store_token_and_cleanup(self, request: PendingRequest, token: str) -> None:
        try:
            self.token_store.store_auth_token(request.account, token)
        except Exception as e:
            logger.warning(f"Failed to save authtoken for account {request.account.account_id}: {e}")
        finally:
            self._cleanup(request)
