"""
auth/errors.py -- Error taxonomy for the session lifecycle.

The session manager raises these; route handlers translate them into HTTP
responses. None of them carries a token value or a password hash, so their
messages are safe to log.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from auth.tokens import TokenError


class AuthError(Exception):
    """Base class for identity and credential failures."""


class AccountNotFound(AuthError):
    """No account matches the given username or id."""


class InvalidCredentials(AuthError):
    """The supplied password does not match the stored hash."""


class PasswordReuse(AuthError):
    """A password change supplied the current password as the new one."""


class InvalidToken(AuthError):
    """A refresh token's fingerprint matches no live session.

    Covers tokens that were never issued, tokens already rotated away, and
    tokens whose session was logged out.
    """


class ExpiredOrTamperedToken(AuthError):
    """A refresh token matched a live session but failed verification.

    The session it matched has been cleared by the time this is raised.
    """

    def __init__(self, reason: TokenError) -> None:
        super().__init__(f"refresh token rejected: {reason.value}")
        self.reason = reason


class Unauthenticated(AuthError):
    """An access token was missing or did not verify."""

    def __init__(self, reason: str, token_error: TokenError | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.token_error = token_error


class StorageError(Exception):
    """Unexpected persistence failure. Never shown to clients verbatim."""
