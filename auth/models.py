"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores, the codec and
the session manager do the work; these only own the domain shape.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Account:
    """A registered identity.

    refresh_fingerprint is the one-way digest of the account's single live
    refresh token, or None when no session is active. The raw refresh token
    is never stored.

    id is None before the record is written to the database.
    """

    username: str
    email: str
    first_name: str
    last_name: str
    password_hash: str
    middle_name: str | None = None
    id: int | None = None
    refresh_fingerprint: str | None = None
    created_at: str = ""  # ISO 8601, set by store on insert

    def public_profile(self) -> dict:
        """Profile fields safe to hand back to the account owner."""
        return {
            "id": self.id,
            "first_name": self.first_name,
            "middle_name": self.middle_name,
            "last_name": self.last_name,
            "username": self.username,
            "email": self.email,
        }


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims carried by an access or refresh token."""

    account_id: int
    username: str
    token_type: str  # "access" | "refresh"
    issued_at: int  # unix seconds
    expires_at: int  # unix seconds
    jti: str


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as resolved from an access token."""

    account_id: int
    username: str


@dataclass(frozen=True)
class LoginResult:
    tokens: TokenPair
    account: Account
