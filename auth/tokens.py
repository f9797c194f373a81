"""
auth/tokens.py -- Signed bearer tokens and refresh-token fingerprints.

Security design decisions:
  JWT: python-jose, HS256 by default. Access and refresh tokens share one
       claim layout (sub=username, user_id, iat, exp, jti, type) and differ
       only in TTL and the "type" claim. The type claim stops a refresh
       token from being accepted as an access token and vice versa.

  jti: 128 random bits per token, so two tokens minted for the same account
       within the same second are still distinct. Without it a double login
       in one second would produce identical refresh tokens and identical
       fingerprints.

  Verification returns a TokenClaims or a TokenError member and never raises.
       Callers pattern-match the result into their own error taxonomy.

  Fingerprints: HMAC-SHA256(SECRET_KEY, raw_token), hex encoded. Deterministic,
       so the store can look a session up by fingerprint with an index. A
       database dump alone yields neither a usable token nor a way to check
       guesses offline without the key.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import enum
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import TokenClaims, TokenPair
from core.config import Settings

ACCESS = "access"
REFRESH = "refresh"


class TokenError(enum.Enum):
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signature_invalid"
    EXPIRED = "expired"


class TokenCodec:
    """Creates and verifies signed, expiring bearer tokens.

    Usage:
        codec = TokenCodec(settings)
        pair = codec.issue_pair(account_id=1, username="alice")
        claims = codec.verify(pair.access_token)
        if isinstance(claims, TokenError): ...
    """

    def __init__(self, settings: Settings) -> None:
        self._secret = settings.secret_key
        self._algorithm = settings.jwt_algorithm
        self.access_ttl = timedelta(seconds=settings.access_token_ttl_seconds)
        self.refresh_ttl = timedelta(seconds=settings.refresh_token_ttl_seconds)

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def sign(self, claims: dict, ttl: timedelta) -> str:
        """Encode claims into a signed JWT that expires ttl from now.

        claims must carry "user_id", "sub" and "type"; iat, exp and jti are
        stamped here and override anything the caller passed.
        """
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def issue_pair(self, account_id: int, username: str) -> TokenPair:
        """Mint a fresh access token and a fresh refresh token for an account."""
        identity = {"user_id": account_id, "sub": username}
        return TokenPair(
            access_token=self.sign({**identity, "type": ACCESS}, self.access_ttl),
            refresh_token=self.sign({**identity, "type": REFRESH}, self.refresh_ttl),
        )

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify(self, token: str, expected_type: str = ACCESS) -> TokenClaims | TokenError:
        """Check signature, expiry and claim shape of a token.

        Returns TokenClaims on success, otherwise the TokenError describing
        the first failure found. A token of the wrong type is MALFORMED.
        """
        try:
            jwt.get_unverified_header(token)
        except JWTError:
            return TokenError.MALFORMED
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            return TokenError.EXPIRED
        except JWTError:
            return TokenError.SIGNATURE_INVALID

        user_id = payload.get("user_id")
        username = payload.get("sub")
        expires_at = payload.get("exp")
        if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(username, str):
            return TokenError.MALFORMED
        if not isinstance(expires_at, int):
            return TokenError.MALFORMED
        if payload.get("type") != expected_type:
            return TokenError.MALFORMED
        return TokenClaims(
            account_id=user_id,
            username=username,
            token_type=expected_type,
            issued_at=int(payload.get("iat", 0)),
            expires_at=expires_at,
            jti=str(payload.get("jti", "")),
        )

    # ------------------------------------------------------------------
    # Fingerprints
    # ------------------------------------------------------------------

    def fingerprint(self, token: str) -> str:
        """Return the one-way digest under which a refresh token is stored."""
        return hmac.new(self._secret.encode(), token.encode(), hashlib.sha256).hexdigest()
