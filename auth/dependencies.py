"""
auth/dependencies.py -- Request-side auth gate and its FastAPI Depends() helper.

authenticate() is a pure function of the Authorization header: it verifies
the access token with the TokenCodec and returns the Identity it names. It
never reads the credential store. An access token therefore stays valid until
it expires even after logout, refresh or a password change.

get_current_identity() wraps it for FastAPI: it pulls the codec from
app.state, attaches the Identity to request.state.identity, and turns any
rejection into HTTP 401.

auth/dependencies.py may import from fastapi (for HTTPException/Request)
because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.errors import Unauthenticated
from auth.models import Identity
from auth.tokens import ACCESS, TokenCodec, TokenError


def extract_bearer(authorization: str | None) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' value, or None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def authenticate(codec: TokenCodec, authorization: str | None) -> Identity:
    """Resolve an Authorization header value to the caller's Identity.

    Raises Unauthenticated with reason "missing_token" when no bearer token
    is present, or "unauthenticated" (carrying the TokenError) when the token
    is malformed, badly signed, expired or not an access token.
    """
    token = extract_bearer(authorization)
    if token is None:
        raise Unauthenticated("missing_token")
    claims = codec.verify(token, expected_type=ACCESS)
    if isinstance(claims, TokenError):
        raise Unauthenticated("unauthenticated", token_error=claims)
    return Identity(account_id=claims.account_id, username=claims.username)


def get_current_identity(request: Request) -> Identity:
    """Require a valid access token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(get_current_identity)): ...
    """
    codec: TokenCodec = request.app.state.codec
    try:
        identity = authenticate(codec, request.headers.get("Authorization"))
    except Unauthenticated as exc:
        message = "Access token required." if exc.reason == "missing_token" else "Invalid or expired access token."
        raise HTTPException(
            status_code=401,
            detail={"code": exc.reason, "message": message},
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    request.state.identity = identity
    return identity
