# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/argon_client

from collections.abc import Callable
from unittest.mock import MagicMock

import httpx
import pytest
from helpers import SERVER_URL, FakeStage2, Recorder, ScriptedServer

from argon_client.client import ArgonClient
from argon_client.config import ArgonClientConfig
from argon_client.driver import AuthStageDriver
from argon_client.models import AccountData
from argon_client.registry import RequestRegistry
from argon_client.server_config import ServerConfig
from argon_client.storage import InMemoryTokenStore


@pytest.fixture
def account() -> AccountData:
    return AccountData(account_id=1, user_id=2, username="player")


@pytest.fixture
def config() -> ArgonClientConfig:
    return ArgonClientConfig(server_url=SERVER_URL, worker_poll_interval=0.01)


@pytest.fixture
def server() -> ScriptedServer:
    return ScriptedServer()


@pytest.fixture
def stage2() -> FakeStage2:
    return FakeStage2()


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore()


@pytest.fixture
def argon(
    config: ArgonClientConfig, server: ScriptedServer, stage2: FakeStage2, token_store: InMemoryTokenStore
) -> ArgonClient:
    """An ArgonClient wired to the scripted server. Tests enter it themselves."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(server.handler))
    return ArgonClient(stage2=stage2, config=config, client=http_client, token_store=token_store)


@pytest.fixture
def make_driver(config: ArgonClientConfig) -> Callable[..., AuthStageDriver]:
    """
    Builds a driver with mocked collaborators and a mocked task group, so stage
    handlers can be called directly and spawned stages inspected via `start_soon`.
    """

    def _make(clock: Callable[[], float] | None = None) -> AuthStageDriver:
        registry = RequestRegistry()
        driver = AuthStageDriver(
            registry=registry,
            server=ServerConfig(registry, SERVER_URL),
            transport=MagicMock(),
            stage2=MagicMock(),
            worker=MagicMock(),
            token_store=MagicMock(),
            config=config,
            clock=clock or (lambda: 0.0),
        )
        driver.attach(MagicMock())
        return driver

    return _make
