"""Unit tests for auth/tokens.py -- TokenCodec sign / verify / fingerprint.

Covers:
- issued pairs verify with the right claims and TTLs
- expired, tampered, foreign-key and garbage tokens map to distinct TokenErrors
- the type claim keeps access and refresh tokens apart
- fingerprints are deterministic, secret-keyed and differ per token
"""

from datetime import timedelta

from jose import jwt

from auth.models import TokenClaims
from auth.tokens import ACCESS, REFRESH, TokenCodec, TokenError
from core.config import Settings


def test_issue_pair_verifies_with_identity_claims(codec: TokenCodec) -> None:
    pair = codec.issue_pair(7, "alice")

    access = codec.verify(pair.access_token)
    refresh = codec.verify(pair.refresh_token, expected_type=REFRESH)

    assert isinstance(access, TokenClaims)
    assert isinstance(refresh, TokenClaims)
    assert (access.account_id, access.username, access.token_type) == (7, "alice", ACCESS)
    assert (refresh.account_id, refresh.username, refresh.token_type) == (7, "alice", REFRESH)


def test_ttls_follow_settings(codec: TokenCodec) -> None:
    pair = codec.issue_pair(1, "alice")
    access = codec.verify(pair.access_token)
    refresh = codec.verify(pair.refresh_token, expected_type=REFRESH)
    assert access.expires_at - access.issued_at == 15 * 60
    assert refresh.expires_at - refresh.issued_at == 7 * 24 * 60 * 60


def test_tokens_minted_back_to_back_differ(codec: TokenCodec) -> None:
    """Same account, same second: the random jti still makes every token unique."""
    first = codec.issue_pair(1, "alice")
    second = codec.issue_pair(1, "alice")
    assert first.refresh_token != second.refresh_token
    assert first.access_token != second.access_token


def test_expired_token(codec: TokenCodec) -> None:
    token = codec.sign({"user_id": 1, "sub": "alice", "type": ACCESS}, timedelta(seconds=-30))
    assert codec.verify(token) is TokenError.EXPIRED


def test_tampered_payload_fails_signature(codec: TokenCodec) -> None:
    token = codec.issue_pair(1, "alice").access_token
    header, payload, signature = token.split(".")
    forged_payload = jwt.encode({"user_id": 2, "sub": "mallory", "type": ACCESS}, "x" * 32).split(".")[1]
    assert codec.verify(f"{header}.{forged_payload}.{signature}") is TokenError.SIGNATURE_INVALID


def test_token_signed_with_another_key(codec: TokenCodec) -> None:
    other = TokenCodec(Settings(secret_key="o" * 48, bcrypt_rounds=4))
    token = other.issue_pair(1, "alice").access_token
    assert codec.verify(token) is TokenError.SIGNATURE_INVALID


def test_garbage_is_malformed(codec: TokenCodec) -> None:
    assert codec.verify("not-a-jwt") is TokenError.MALFORMED
    assert codec.verify("") is TokenError.MALFORMED


def test_wrong_token_type_is_malformed(codec: TokenCodec) -> None:
    pair = codec.issue_pair(1, "alice")
    assert codec.verify(pair.refresh_token, expected_type=ACCESS) is TokenError.MALFORMED
    assert codec.verify(pair.access_token, expected_type=REFRESH) is TokenError.MALFORMED


def test_missing_identity_claims_is_malformed(codec: TokenCodec) -> None:
    token = codec.sign({"sub": "alice", "type": ACCESS}, timedelta(minutes=5))
    assert codec.verify(token) is TokenError.MALFORMED


def test_fingerprint_is_deterministic_hex(codec: TokenCodec) -> None:
    token = codec.issue_pair(1, "alice").refresh_token
    fp = codec.fingerprint(token)
    assert fp == codec.fingerprint(token)
    assert len(fp) == 64
    int(fp, 16)
    assert token not in fp


def test_fingerprint_depends_on_secret(codec: TokenCodec) -> None:
    other = TokenCodec(Settings(secret_key="o" * 48, bcrypt_rounds=4))
    token = codec.issue_pair(1, "alice").refresh_token
    assert codec.fingerprint(token) != other.fingerprint(token)
