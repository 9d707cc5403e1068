"""
API request and response models for the CredVault HTTP endpoint.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Field names on the wire are camelCase (reqType, userEmail, ...) because
existing clients send them that way; the Python attributes are snake_case
and bound through aliases.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RequestType(str, Enum):
    """Operations the endpoint dispatches. Any other reqType gets a 418."""

    signup = "signup"
    login = "login"
    update_password = "updatePassword"
    forgot_password = "forgotPassword"
    delete_user = "deleteUser"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class AuthRequest(BaseModel):
    """Request body for POST /.

    reqType is a plain string rather than RequestType so an unknown value
    reaches the route handler (which answers 418) instead of failing
    validation with 422.
    """

    model_config = ConfigDict(populate_by_name=True)

    req_type: str = Field(alias="reqType")
    user_email: str = Field(alias="userEmail")
    user_pass: Optional[str] = Field(default=None, alias="userPass")
    old_pass: Optional[str] = Field(default=None, alias="oldPass")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AuthResponse(BaseModel):
    """Response body for POST /. Carries hash on success, message on failure."""

    model_config = ConfigDict(frozen=True)

    success: bool
    hash: Optional[str] = None
    message: Optional[str] = None


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
