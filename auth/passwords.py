"""
auth/passwords.py -- Password hashing and verification (bcrypt).

Using bcrypt directly rather than passlib[bcrypt]: passlib's wrap-bug
detection builds a password longer than 72 bytes, which bcrypt 4.x rejects
with an explicit error.

The cost factor comes from Settings.bcrypt_rounds and is fixed for the life
of the process. Existing hashes carry their own cost, so raising the setting
only affects hashes computed afterwards.
"""

from __future__ import annotations

import bcrypt

from core.config import Settings


class PasswordVerifier:
    """One-way salted hash plus constant-time comparison.

    Usage:
        verifier = PasswordVerifier(settings)
        digest = verifier.hash("Abcd1234!")
        verifier.verify("Abcd1234!", digest)  # True
    """

    def __init__(self, settings: Settings) -> None:
        self._rounds = settings.bcrypt_rounds
        # Computed once so the first login attempt is not measurably slower
        # than later ones. See dummy_verify().
        self._dummy_hash = self.hash("sessiongate_timing_dummy")

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt hash of plaintext with a freshly generated salt.

        bcrypt silently truncates input at 72 bytes. The API layer caps
        password length well below that.
        """
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("utf-8")

    def verify(self, plaintext: str, digest: str | None) -> bool:
        """Return True if plaintext matches digest.

        A missing or malformed digest is a non-match, never an exception.
        """
        if not digest:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            return False

    def dummy_verify(self, plaintext: str) -> None:
        """Spend one bcrypt check on a throwaway hash.

        Called when the username does not exist, so that response time does
        not reveal whether an account is registered.
        """
        self.verify(plaintext, self._dummy_hash)
