"""
api/routes/v1/users.py -- Account self-service endpoints (all require auth).

Routes:
  GET  /api/v1/user/profile                   -- the caller's profile
  GET  /api/v1/user/dashboard                 -- greeting built from token claims only
  POST /api/v1/user/settings/update-profile   -- edit names and email
  POST /api/v1/user/settings/change-password  -- new password; ends the live session
  POST /api/v1/user/settings/delete-account   -- delete account and session atomically

The caller is always the account named by the access token. There is no
path parameter for an account id, so one account cannot act on another.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError

from api.models import (
    DashboardResponse,
    MessageResponse,
    PasswordChange,
    ProfileEnvelope,
    ProfileResponse,
    ProfileUpdate,
    ProfileUpdatedResponse,
)
from auth.dependencies import get_current_identity
from auth.errors import AccountNotFound, InvalidCredentials, PasswordReuse
from auth.models import Identity
from auth.sessions import SessionManager

router = APIRouter(prefix="/user")

_NOT_FOUND = {"code": "not_found", "message": "User not found."}


def _load_profile(manager: SessionManager, account_id: int) -> ProfileResponse:
    account = manager.store.get_by_id(account_id)
    if account is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return ProfileResponse(**account.public_profile())


@router.get("/profile", response_model=ProfileEnvelope)
def profile(request: Request, identity: Identity = Depends(get_current_identity)) -> ProfileEnvelope:
    return ProfileEnvelope(user=_load_profile(request.app.state.sessions, identity.account_id))


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(identity: Identity = Depends(get_current_identity)) -> DashboardResponse:
    """Answer from token claims alone, without a store lookup."""
    return DashboardResponse(
        message=f"Welcome to your dashboard, {identity.username}!",
        user_id=identity.account_id,
    )


@router.post("/settings/update-profile", response_model=ProfileUpdatedResponse)
def update_profile(
    request: Request,
    body: ProfileUpdate,
    identity: Identity = Depends(get_current_identity),
) -> ProfileUpdatedResponse:
    manager: SessionManager = request.app.state.sessions
    try:
        updated = manager.store.update_profile(
            identity.account_id,
            first_name=body.first_name,
            middle_name=body.middle_name or None,
            last_name=body.last_name,
            email=body.email,
        )
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "Email already in use."},
        ) from exc
    if not updated:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return ProfileUpdatedResponse(user=_load_profile(manager, identity.account_id))


@router.post("/settings/change-password", response_model=MessageResponse)
def change_password(
    request: Request,
    body: PasswordChange,
    identity: Identity = Depends(get_current_identity),
) -> MessageResponse:
    """Change the password and end the live session.

    The caller must log in again to get a refresh token. The access token
    used for this request keeps working until it expires.
    """
    manager: SessionManager = request.app.state.sessions
    try:
        manager.change_password(identity.account_id, body.old_password, body.new_password)
    except AccountNotFound as exc:
        raise HTTPException(status_code=404, detail=_NOT_FOUND) from exc
    except InvalidCredentials as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "invalid_credentials", "message": "Old password is incorrect."},
        ) from exc
    except PasswordReuse as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "password_reuse", "message": "New password must be different from the old password."},
        ) from exc
    return MessageResponse(message="Password changed successfully")


@router.post("/settings/delete-account", response_model=MessageResponse)
def delete_account(request: Request, identity: Identity = Depends(get_current_identity)) -> MessageResponse:
    """Delete the caller's account together with its session.

    A StorageError here propagates to the app-level handler (generic 500);
    the store has already rolled the deletion back.
    """
    manager: SessionManager = request.app.state.sessions
    try:
        manager.revoke_on_account_deletion(identity.account_id)
    except AccountNotFound as exc:
        raise HTTPException(status_code=404, detail=_NOT_FOUND) from exc
    return MessageResponse(message="Account deleted successfully")
