# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/argon_client

import json
from collections import defaultdict
from typing import Any

import anyio
import httpx

from argon_client.models import AccountData, AuthProgress, AuthResult, ChallengeMethod

SERVER_URL = "https://argon.test"


def stage1_ok(method: str = "message", id: int = 5, challenge: int = 42, ident: str = "abc") -> httpx.Response:
    return httpx.Response(
        200,
        json={"success": True, "data": {"method": method, "id": id, "challenge": challenge, "ident": ident}},
    )


def stage3_pending(poll_after: int = 0) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "data": {"verified": False, "pollAfter": poll_after}})


def stage3_verified(token: str = "XYZ") -> httpx.Response:
    return httpx.Response(200, json={"success": True, "data": {"verified": True, "authtoken": token}})


def server_error(message: str | None = None) -> httpx.Response:
    body: dict[str, Any] = {"success": False}
    if message is not None:
        body["error"] = message
    return httpx.Response(200, json=body)


class ScriptedServer:
    """
    Stands in for the Argon server behind an httpx.MockTransport.
    Responses are queued per path; every request is recorded as (path, json body).
    Requests to a held path never get an answer.
    """

    def __init__(self) -> None:
        self.responses: dict[str, list[httpx.Response | Exception]] = defaultdict(list)
        self.requests: list[tuple[str, dict[str, Any]]] = []
        self.held: set[str] = set()
        self._reached_held: anyio.Event | None = None

    def hold(self, path: str) -> None:
        self.held.add(path)

    async def wait_held(self) -> None:
        if any(path in self.held for path in self.paths()):
            return
        self._reached_held = anyio.Event()
        await self._reached_held.wait()

    def queue(self, path: str, *responses: httpx.Response | Exception) -> None:
        self.responses[path].extend(responses)

    def paths(self) -> list[str]:
        return [path for path, _ in self.requests]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.url.path, json.loads(request.content or b"{}")))
        if request.url.path in self.held:
            if self._reached_held is not None:
                self._reached_held.set()
            await anyio.sleep_forever()
        queued = self.responses[request.url.path]
        if not queued:
            return httpx.Response(500, text=f"unexpected request to {request.url.path}")
        item = queued.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeStage2:
    """Records submissions and replays queued stage 2 responses (default: a successful body)."""

    def __init__(self) -> None:
        self.responses: list[httpx.Response | Exception] = []
        self.calls: list[tuple[int, int, ChallengeMethod]] = []
        self.block = False
        self._started: anyio.Event | None = None

    async def wait_started(self) -> None:
        if self.calls:
            return
        self._started = anyio.Event()
        await self._started.wait()

    async def submit(
        self, account: AccountData, challenge_id: int, challenge: int, method: ChallengeMethod
    ) -> httpx.Response:
        self.calls.append((challenge_id, challenge, method))
        if self._started is not None:
            self._started.set()
        if self.block:
            await anyio.sleep_forever()
        item = self.responses.pop(0) if self.responses else httpx.Response(200, text="1")
        if isinstance(item, Exception):
            raise item
        return item


class Recorder:
    """Collects completion and progress callbacks."""

    def __init__(self) -> None:
        self.results: list[AuthResult] = []
        self.progress: list[AuthProgress] = []
        self._done: anyio.Event | None = None

    async def wait(self) -> None:
        if self.results:
            return
        self._done = anyio.Event()
        await self._done.wait()

    def callback(self, result: AuthResult) -> None:
        self.results.append(result)
        if self._done is not None:
            self._done.set()

    def on_progress(self, progress: AuthProgress) -> None:
        self.progress.append(progress)


