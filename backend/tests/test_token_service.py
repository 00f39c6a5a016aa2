"""
Bearer token tests.

Verifies:
- Claims round-trip through issue/verify
- Any altered character, tampered, foreign-secret, expired and garbage tokens fail the same way
"""

import base64
import json
import string
from datetime import timedelta

import pytest
from jose import jwt

from ipms.roles import ROLE_STOREKEEPER
from ipms.services.token_service import (
    ALGORITHM,
    TOKEN_INVALID_MESSAGE,
    TokenClaims,
    TokenInvalidError,
    issue_token,
    verify_token,
)
from ipms.time_utils import parse_duration


SECRET = "unit-test-secret"
CLAIMS = TokenClaims(user_id=42, role=ROLE_STOREKEEPER, must_change_password=True)
BASE64URL_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "-_"


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def test_issue_and_verify_round_trip():
    token = issue_token(CLAIMS, secret=SECRET, expires_in=timedelta(hours=1))
    assert verify_token(token, secret=SECRET) == CLAIMS


def test_subject_is_string_claim():
    token = issue_token(CLAIMS, secret=SECRET, expires_in=timedelta(hours=1))
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "42"
    assert payload["role"] == ROLE_STOREKEEPER
    assert payload["mustChangePassword"] is True


def test_tampered_payload_rejected():
    token = issue_token(CLAIMS, secret=SECRET, expires_in=timedelta(hours=1))
    header, payload, signature = token.split(".")
    claims = jwt.get_unverified_claims(token)
    claims["role"] = "ADMIN"
    forged = ".".join([header, _b64(claims), signature])

    with pytest.raises(TokenInvalidError):
        verify_token(forged, secret=SECRET)


def test_tampered_signature_rejected():
    token = issue_token(CLAIMS, secret=SECRET, expires_in=timedelta(hours=1))
    header, payload, signature = token.split(".")
    middle = len(signature) // 2
    flipped = "A" if signature[middle] != "A" else "B"
    forged = ".".join([header, payload, signature[:middle] + flipped + signature[middle + 1:]])

    with pytest.raises(TokenInvalidError):
        verify_token(forged, secret=SECRET)


def test_every_altered_character_rejected():
    token = issue_token(CLAIMS, secret=SECRET, expires_in=timedelta(hours=1))

    accepted = []
    for position, original in enumerate(token):
        if original == ".":
            continue
        for replacement in BASE64URL_ALPHABET:
            if replacement == original:
                continue
            forged = token[:position] + replacement + token[position + 1:]
            try:
                verify_token(forged, secret=SECRET)
            except TokenInvalidError:
                continue
            accepted.append((position, replacement))

    assert accepted == []


def test_non_canonical_signature_padding_rejected():
    token = issue_token(CLAIMS, secret=SECRET, expires_in=timedelta(hours=1))
    last = token[-1]
    # HS256 signatures are 32 bytes, so the final character carries two spare bits
    index = BASE64URL_ALPHABET.index(last)
    forged = token[:-1] + BASE64URL_ALPHABET[index ^ 1]

    with pytest.raises(TokenInvalidError):
        verify_token(forged, secret=SECRET)


def test_wrong_secret_rejected():
    token = issue_token(CLAIMS, secret="someone-else", expires_in=timedelta(hours=1))
    with pytest.raises(TokenInvalidError):
        verify_token(token, secret=SECRET)


def test_expired_token_rejected():
    token = issue_token(CLAIMS, secret=SECRET, expires_in=timedelta(seconds=-30))
    with pytest.raises(TokenInvalidError) as exc:
        verify_token(token, secret=SECRET)
    assert str(exc.value) == TOKEN_INVALID_MESSAGE


@pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "Bearer x.y.z"])
def test_garbage_rejected(garbage):
    with pytest.raises(TokenInvalidError) as exc:
        verify_token(garbage, secret=SECRET)
    assert str(exc.value) == TOKEN_INVALID_MESSAGE


def test_unknown_role_claim_rejected():
    payload = {"sub": "1", "role": "SUPERUSER", "mustChangePassword": False}
    token = jwt.encode(payload, SECRET, algorithm=ALGORITHM)
    with pytest.raises(TokenInvalidError):
        verify_token(token, secret=SECRET)


def test_missing_rotation_flag_rejected():
    payload = {"sub": "1", "role": ROLE_STOREKEEPER}
    token = jwt.encode(payload, SECRET, algorithm=ALGORITHM)
    with pytest.raises(TokenInvalidError):
        verify_token(token, secret=SECRET)


@pytest.mark.parametrize(
    "value,seconds",
    [("1h", 3600), ("30m", 1800), ("45s", 45), ("2d", 172800), ("900", 900), (60, 60)],
)
def test_parse_duration(value, seconds):
    assert parse_duration(value) == timedelta(seconds=seconds)


@pytest.mark.parametrize("value", ["", "1w", "-5m", "0", 0, None, True])
def test_parse_duration_rejects(value):
    with pytest.raises(ValueError):
        parse_duration(value)
