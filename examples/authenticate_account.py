# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/argon_client

import os
import sys

# Add src to path for running directly
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

import anyio
import httpx

from argon_client import AccountData, ArgonClient, ArgonClientConfig, AuthProgress, ChallengeMethod


class ManualSubmitter:
    """
    Stage 2 stand-in: prints the challenge and waits for the operator to deliver it by hand.
    A real submitter solves the challenge and sends it as a message or comment.
    """

    async def submit(
        self, account: AccountData, challenge_id: int, challenge: int, method: ChallengeMethod
    ) -> httpx.Response:
        print(f">>> Send challenge {challenge} via {method} to id {challenge_id}, then press Enter")
        await anyio.to_thread.run_sync(input)
        return httpx.Response(200, text="1")


def on_progress(progress: AuthProgress) -> None:
    print(f"    - {progress}")


async def main() -> None:
    print(">>> Starting Argon authentication example")

    config = ArgonClientConfig(http_timeout=5.0)
    account = AccountData(account_id=int(os.getenv("ACCOUNT_ID", "1")), user_id=1, username="player")

    async with ArgonClient(stage2=ManualSubmitter(), config=config) as argon:
        print(f">>> Server: {argon.get_server_url()}")
        result = await argon.authenticate(account, progress_callback=on_progress)

    if result.ok:
        print(">>> Authenticated, token stored")
    else:
        print(f">>> Authentication failed: {result.error}")


if __name__ == "__main__":
    anyio.run(main)
