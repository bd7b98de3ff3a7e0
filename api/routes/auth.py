"""
api/routes/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/auth/register         -- create provider account + profile; 201
  POST /api/auth/login            -- password login; sets access_token cookie
  POST /api/auth/logout           -- clears cookie; always 200
  POST /api/auth/forgot-password  -- generic message whatever the email
  POST /api/auth/reset-password   -- new password inside a provider recovery session
  GET  /api/auth/me               -- current profile (requires auth)
  POST /api/auth/refresh          -- re-mint the cookie token with a fresh expiry

Security:
  POST /login is rate-limited to 10 requests/minute per IP.
  Login and forgot-password never reveal whether an email is registered.
  Cache-Control: no-store on responses that carry a token.

No `from __future__ import annotations` here: FastAPI reads the login
signature through the slowapi wrapper, whose module globals cannot resolve
string annotations.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import LOGIN_RATE_LIMIT, limiter
from api.models import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserEnvelope,
    UserOut,
)
from auth.dependencies import get_current_claims
from auth.models import SessionClaims, UserSummary
from auth.service import CredentialService
from auth.tokens import COOKIE_NAME, clear_auth_cookie, set_auth_cookie

# Auth policy:
# - POST /api/auth/register:         public
# - POST /api/auth/login:            public (rate-limited)
# - POST /api/auth/logout:           public -- clearing a cookie needs no prior auth
# - POST /api/auth/forgot-password:  public
# - POST /api/auth/reset-password:   provider recovery token in the body
# - GET  /api/auth/me:               requires auth (get_current_claims)
# - POST /api/auth/refresh:          requires the access_token cookie (may be expired)
router = APIRouter()


def _service(request: Request) -> CredentialService:
    return request.app.state.credential_service


def _user_out(user: UserSummary) -> UserOut:
    data = asdict(user)
    data["role"] = user.role.value
    return UserOut(**data)


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=UserEnvelope, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserEnvelope:
    """Register a new account. Does not log the user in."""
    user = _service(request).register(body.email, body.password, body.full_name, body.role)
    return UserEnvelope(
        message="User registered successfully. Please check your email for verification.",
        user=_user_out(user),
    )


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(LOGIN_RATE_LIMIT)  # must be BELOW @router so the registered endpoint is the limited one
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate against the provider; set the session cookie.

    The token is also returned in the body. Wrong password and unknown email
    get the same 401 "invalid email or password".
    """
    settings = request.app.state.settings
    result = _service(request).login(body.email, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(user=_user_out(result.user), token=result.token).model_dump(),
    )
    set_auth_cookie(resp, result.token, settings)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """End the session. Always succeeds."""
    _service(request).logout()
    resp = JSONResponse(content=MessageResponse(message="Logout successful.").model_dump())
    clear_auth_cookie(resp, request.app.state.settings)
    return resp


@router.post("/auth/forgot-password", response_model=MessageResponse)
def forgot_password(request: Request, body: ForgotPasswordRequest) -> MessageResponse:
    """Send a reset link when the account exists. Same answer either way."""
    message = _service(request).forgot_password(body.email)
    return MessageResponse(message=message)


@router.post("/auth/reset-password", response_model=MessageResponse)
def reset_password(request: Request, body: ResetPasswordRequest) -> MessageResponse:
    _service(request).reset_password(body.token, body.new_password)
    return MessageResponse(message="Password has been reset successfully.")


@router.post("/auth/refresh", response_model=TokenResponse)
def refresh(request: Request) -> JSONResponse:
    """Issue a fresh token from the one in the cookie, even if it has expired."""
    token = _service(request).refresh(request.cookies.get(COOKIE_NAME))
    resp = JSONResponse(content=TokenResponse(token=token).model_dump())
    set_auth_cookie(resp, token, request.app.state.settings)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserEnvelope)
def me(request: Request, claims: SessionClaims = Depends(get_current_claims)) -> UserEnvelope:
    """Return the profile of the currently authenticated user."""
    return UserEnvelope(user=_user_out(_service(request).get_current_user(claims)))
