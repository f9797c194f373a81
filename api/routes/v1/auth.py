"""
api/routes/v1/auth.py -- Signup and session lifecycle REST endpoints.

Routes:
  POST /api/v1/auth/signup   -- create an account (no session yet)
  POST /api/v1/auth/login    -- password login; returns access + refresh tokens
  POST /api/v1/auth/refresh  -- rotate a refresh token into a new pair
  POST /api/v1/auth/logout   -- end the session a refresh token belongs to
  GET  /api/v1/auth/me       -- identity carried by the access token (requires auth)

Security:
  POST /login is rate-limited per client address (Settings.login_rate_limit).
  Token-bearing responses carry Cache-Control: no-store.
  Refresh and logout take the refresh token in the JSON body, never the URL.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter, login_rate_limit
from api.models import (
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MeResponse,
    MessageResponse,
    ProfileResponse,
    RefreshRequest,
    SignupRequest,
    TokenPairResponse,
)
from auth.dependencies import get_current_identity
from auth.errors import AccountNotFound, ExpiredOrTamperedToken, InvalidCredentials, InvalidToken
from auth.models import Account, Identity
from auth.sessions import SessionManager

# Auth policy:
# - POST /api/v1/auth/signup:   public
# - POST /api/v1/auth/login:    public, rate limited
# - POST /api/v1/auth/refresh:  public -- the refresh token is the credential
# - POST /api/v1/auth/logout:   public -- the refresh token is the credential
# - GET  /api/v1/auth/me:       requires auth (get_current_identity)
router = APIRouter()


def _no_store(content: dict, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=content)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/signup", response_model=MessageResponse, status_code=201)
def signup(request: Request, body: SignupRequest) -> MessageResponse:
    """Register a new account. The password is hashed before it reaches the store."""
    manager: SessionManager = request.app.state.sessions
    account = Account(
        username=body.username,
        email=body.email,
        first_name=body.first_name,
        middle_name=body.middle_name or None,
        last_name=body.last_name,
        password_hash=manager.verifier.hash(body.password),
    )
    try:
        manager.store.create_account(account)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "Username or email already exists."},
        ) from exc
    return MessageResponse(message="User created successfully")


@limiter.limit(login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password and start a new session.

    Any session the account already had is superseded.
    """
    manager: SessionManager = request.app.state.sessions
    try:
        result = manager.login(body.username, body.password)
    except AccountNotFound:
        return _no_store({"error": {"code": "not_found", "message": "User not found."}}, status_code=404)
    except InvalidCredentials:
        return _no_store({"error": {"code": "invalid_credentials", "message": "Invalid password."}}, status_code=401)

    return _no_store(
        LoginResponse(
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
            profile=ProfileResponse(**result.account.public_profile()),
        ).model_dump(by_alias=True)
    )


@router.post("/auth/refresh", response_model=TokenPairResponse)
def refresh(request: Request, body: RefreshRequest) -> JSONResponse:
    """Rotate the live refresh token. The presented token stops working."""
    manager: SessionManager = request.app.state.sessions
    try:
        pair = manager.refresh(body.token)
    except InvalidToken as exc:
        raise HTTPException(
            status_code=403,
            detail={"code": "invalid_token", "message": "Invalid refresh token."},
        ) from exc
    except ExpiredOrTamperedToken as exc:
        raise HTTPException(
            status_code=403,
            detail={"code": "invalid_or_expired_token", "message": "Invalid or expired refresh token."},
        ) from exc
    return _no_store(
        TokenPairResponse(access_token=pair.access_token, refresh_token=pair.refresh_token).model_dump(by_alias=True)
    )


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, body: LogoutRequest) -> MessageResponse:
    """End the session. Access tokens already issued stay valid until they expire."""
    manager: SessionManager = request.app.state.sessions
    try:
        manager.logout(body.refresh_token)
    except InvalidToken as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "invalid_token", "message": "Invalid refresh token."},
        ) from exc
    return MessageResponse(message="Logged out")


@router.get("/auth/me", response_model=MeResponse)
def me(identity: Identity = Depends(get_current_identity)) -> MeResponse:
    """Return the identity carried by the caller's access token."""
    return MeResponse(user_id=identity.account_id, username=identity.username)
