"""
API request and response models for the HR training REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py and
formations/models.py, which own the internal domain representation. Route
handlers map between the two.

Request models are permissive on purpose (every field optional): the services
apply the business rules in a fixed order and answer one field-specific 400
message, which type-level "field required" errors would pre-empt.

Every response envelope carries a boolean `success`.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)
    full_name: Optional[str] = Field(default=None, max_length=255)
    role: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = Field(default=None, max_length=255)


class ResetPasswordRequest(BaseModel):
    """Request body for POST /api/auth/reset-password.

    token is the provider recovery token from the reset link. The client
    sends newPassword (camelCase); new_password is accepted too.
    """

    model_config = ConfigDict(populate_by_name=True)

    token: Optional[str] = None
    new_password: Optional[str] = Field(default=None, alias="newPassword", max_length=255)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class UserOut(BaseModel):
    id: str
    email: str
    role: str
    full_name: str = ""
    created_at: Optional[str] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class UserEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    user: UserOut


class LoginResponse(BaseModel):
    """Response for POST /api/auth/login. token mirrors the access_token cookie."""

    success: bool = True
    message: str = "Login successful."
    user: UserOut
    token: str


class TokenResponse(BaseModel):
    success: bool = True
    message: str = "Token refreshed successfully."
    token: str


# ---------------------------------------------------------------------------
# Formations
# ---------------------------------------------------------------------------


class FormationCreate(BaseModel):
    """Request body for POST /api/formations.

    mode is one of ON_SITE, ONLINE, HYBRID. duration is in hours.
    location is required for ON_SITE and HYBRID, link for ONLINE and HYBRID.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = None
    description: Optional[str] = None
    objectives: Optional[str] = None
    mode: Optional[str] = None
    duration: Optional[float] = Field(default=None, allow_inf_nan=False)
    instructor: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    location: Optional[str] = None
    link: Optional[str] = None


class FormationUpdate(FormationCreate):
    """Request body for PUT /api/formations/{id}.

    Only fields present in the body are applied (model_dump(exclude_unset=True)).
    Sending null for location or link clears it.
    """


class FormationOut(BaseModel):
    id: str
    title: str
    description: str
    objectives: str
    mode: str
    duration: float
    instructor: str
    scheduled_at: str
    location: Optional[str] = None
    link: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class FormationEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    formation: FormationOut


class FormationListEnvelope(BaseModel):
    success: bool = True
    formations: list[FormationOut]


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    code: str
    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    status: str = "OK"
    timestamp: str
