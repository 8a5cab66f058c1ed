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
Internal data models for the argon-client package.
These describe the `data` payloads of stage responses and are not exposed in the public API.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, model_validator


class Stage1ResponseData(BaseModel):
    """
    Payload of a successful stage 1 (challenge start/restart) response.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    method: Literal["message", "comment"] = Field(..., description="The delivery channel chosen by the server.")
    id: StrictInt = Field(..., description="Id of the account or level the solution must be sent to.")
    challenge: StrictInt = Field(..., description="The challenge value to solve.")
    ident: StrictStr = Field(..., description="Opaque session identifier for this attempt.")


class Stage3ResponseData(BaseModel):
    """
    Payload of a successful stage 3 (verify/poll) response.

    `authtoken` is required once verified, `pollAfter` (milliseconds) while not.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    verified: StrictBool
    authtoken: StrictStr | None = None
    poll_after: StrictInt | None = Field(default=None, alias="pollAfter")

    @model_validator(mode="after")
    def check_outcome_fields(self) -> "Stage3ResponseData":
        if self.verified and not self.authtoken:
            raise ValueError("'authtoken' is required when 'verified' is true")
        if not self.verified and self.poll_after is None:
            raise ValueError("'pollAfter' is required when 'verified' is false")
        return self
