"""
auth/sessions.py -- Login, refresh rotation, logout and revocation.

Per-account session state is encoded entirely in the store's nullable
refresh fingerprint:

    NoSession (NULL)  --login-->             Active (fp of refresh token)
    Active            --login-->             Active (fp replaced, old session dead)
    Active            --refresh ok-->        Active (fp rotated)
    Active            --refresh bad sig-->   NoSession
    Active            --logout-->            NoSession
    Active            --password change-->   NoSession
    any               --account deletion-->  (row gone)

One live refresh token per account. Issuing a new one supersedes the old
one, so a replayed stale token always misses the fingerprint lookup. When a
thief and the legitimate client race with the same token, whichever rotates
second is rejected, which makes the theft visible to the legitimate client.

Access tokens are stateless: nothing here can revoke one before it expires.
"""

from __future__ import annotations

import logging

from auth.errors import (
    AccountNotFound,
    ExpiredOrTamperedToken,
    InvalidCredentials,
    InvalidToken,
    PasswordReuse,
)
from auth.models import Account, LoginResult, TokenPair
from auth.passwords import PasswordVerifier
from auth.store import CredentialStore
from auth.tokens import REFRESH, TokenCodec, TokenError
from core.config import Settings

logger = logging.getLogger("sessiongate.sessions")


class SessionManager:
    """Owns the single-active-refresh-token invariant.

    Usage:
        manager = SessionManager(store, verifier, codec, settings)
        result = manager.login("alice", "Abcd1234!")
        pair = manager.refresh(result.tokens.refresh_token)
        manager.logout(pair.refresh_token)
    """

    def __init__(
        self,
        store: CredentialStore,
        verifier: PasswordVerifier,
        codec: TokenCodec,
        settings: Settings,
    ) -> None:
        self.store = store
        self.verifier = verifier
        self.codec = codec
        self._reveal_unknown_accounts = settings.reveal_unknown_accounts

    def _issue(self, account: Account) -> tuple[TokenPair, str]:
        pair = self.codec.issue_pair(account.id, account.username)
        return pair, self.codec.fingerprint(pair.refresh_token)

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> LoginResult:
        """Authenticate by password and start a new session.

        Any session the account already had is superseded: its refresh token
        stops matching the stored fingerprint.

        Raises AccountNotFound for an unknown username (InvalidCredentials
        instead when reveal_unknown_accounts is off) and InvalidCredentials
        for a wrong password.
        """
        account = self.store.get_by_username(username)
        if account is None:
            # Same bcrypt cost as a real check, so timing does not leak existence.
            self.verifier.dummy_verify(password)
            if self._reveal_unknown_accounts:
                raise AccountNotFound(username)
            raise InvalidCredentials(username)
        if not self.verifier.verify(password, account.password_hash):
            raise InvalidCredentials(username)

        had_session = account.refresh_fingerprint is not None
        pair, fingerprint = self._issue(account)
        self.store.set_refresh_fingerprint(account.id, fingerprint)
        account.refresh_fingerprint = fingerprint
        logger.info("Login for account %s (prior session %s)", account.id, "superseded" if had_session else "none")
        return LoginResult(tokens=pair, account=account)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh(self, refresh_token: str) -> TokenPair:
        """Rotate a live refresh token into a brand-new token pair.

        Raises:
            InvalidToken: the token matches no live session (never issued,
                already rotated away, logged out), or a concurrent refresh
                with the same token won the rotation. State is untouched.
            ExpiredOrTamperedToken: the token matched a live session but
                failed verification. That session is cleared first.
        """
        fingerprint = self.codec.fingerprint(refresh_token)
        account = self.store.get_by_refresh_fingerprint(fingerprint)
        if account is None:
            raise InvalidToken()

        claims = self.codec.verify(refresh_token, expected_type=REFRESH)
        if isinstance(claims, TokenError):
            self.store.clear_refresh_fingerprint(fingerprint)
            logger.warning(
                "Refresh token for account %s failed verification (%s); session cleared", account.id, claims.value
            )
            raise ExpiredOrTamperedToken(claims)

        pair, new_fingerprint = self._issue(account)
        if not self.store.replace_refresh_fingerprint(account.id, fingerprint, new_fingerprint):
            logger.warning("Lost refresh rotation race for account %s", account.id)
            raise InvalidToken()
        return pair

    # ------------------------------------------------------------------
    # Logout / revocation
    # ------------------------------------------------------------------

    def logout(self, refresh_token: str) -> None:
        """End the session the refresh token belongs to.

        Raises InvalidToken, without changing anything, if the token is not
        the live one (wrong token or already logged out).
        """
        if not self.store.clear_refresh_fingerprint(self.codec.fingerprint(refresh_token)):
            raise InvalidToken()

    def change_password(self, account_id: int, old_password: str, new_password: str) -> None:
        """Replace the password hash and end the live session in one write.

        Access tokens already issued keep working until they expire.
        """
        current = self.store.get_password_hash(account_id)
        if current is None:
            raise AccountNotFound(str(account_id))
        if not self.verifier.verify(old_password, current):
            raise InvalidCredentials(str(account_id))
        if old_password == new_password:
            raise PasswordReuse(str(account_id))
        if not self.store.set_password_hash(account_id, self.verifier.hash(new_password), end_session=True):
            raise AccountNotFound(str(account_id))
        logger.info("Password changed for account %s; session ended", account_id)

    def revoke_on_account_deletion(self, account_id: int) -> None:
        """Clear the session and delete the account atomically.

        Raises AccountNotFound if there is no such account; StorageError if
        the store had to roll the deletion back.
        """
        if not self.store.delete_account_and_sessions(account_id):
            raise AccountNotFound(str(account_id))
        logger.info("Account %s deleted with its session", account_id)
