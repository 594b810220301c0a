"""
Tests for the token codec.

Round-trip, tamper rejection, the expiry boundary and key rotation.
"""

import base64
import json
from datetime import timedelta

import jwt as pyjwt
import pytest

from booknet.auth.jwt import (
    TokenCodec,
    TokenExpiredError,
    TokenMalformedError,
    TokenSignatureError,
)
from tests.conftest import ROTATED_SECRET, SECRET


def _b64decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _flip_signature_byte(token: str) -> str:
    header, payload, signature = token.split(".")
    raw = bytearray(_b64decode(signature))
    raw[0] ^= 0x01
    return ".".join([header, payload, _b64encode(bytes(raw))])


def _replace_payload(token: str, claims: dict) -> str:
    header, _, signature = token.split(".")
    payload = _b64encode(json.dumps(claims).encode())
    return ".".join([header, payload, signature])


# =============================================================================
# Round trip
# =============================================================================


class TestRoundTrip:
    def test_decode_returns_what_was_encoded(self, codec, clock):
        token = codec.encode("alice@example.com", ["USER", "ADMIN"])
        claims = codec.decode(token)
        
        assert claims.subject == "alice@example.com"
        assert set(claims.authorities) == {"USER", "ADMIN"}
        assert claims.issued_at == clock.now
        assert claims.expires_at == clock.now + timedelta(hours=1)
        assert claims.key_id == "k1"
        assert claims.token_id

    def test_each_token_has_its_own_id(self, codec):
        a = codec.decode(codec.encode("alice@example.com"))
        b = codec.decode(codec.encode("alice@example.com"))
        
        assert a.token_id != b.token_id

    def test_extra_claims_round_trip(self, codec):
        token = codec.encode("alice@example.com", extra_claims={"fullName": "Alice Tester"})
        
        assert codec.decode(token).extra["fullName"] == "Alice Tester"

    def test_extra_claims_cannot_override_reserved(self, codec):
        token = codec.encode("alice@example.com", extra_claims={"sub": "mallory@example.com"})
        
        assert codec.decode(token).subject == "alice@example.com"

    def test_empty_subject_refused(self, codec):
        with pytest.raises(ValueError):
            codec.encode("")


# =============================================================================
# Tampering
# =============================================================================


class TestTampering:
    def test_flipped_signature_byte_rejected(self, codec):
        token = codec.encode("alice@example.com", ["USER"])
        
        with pytest.raises(TokenSignatureError):
            codec.decode(_flip_signature_byte(token))

    def test_modified_payload_rejected(self, codec, clock):
        token = codec.encode("alice@example.com", ["USER"])
        claims = pyjwt.decode(token, options={"verify_signature": False})
        claims["authorities"] = ["ADMIN", "USER"]
        
        with pytest.raises(TokenSignatureError):
            codec.decode(_replace_payload(token, claims))

    def test_token_signed_with_other_secret_rejected(self, codec, clock):
        forged = pyjwt.encode(
            {"sub": "alice@example.com", "iat": 1, "exp": 2**31},
            ROTATED_SECRET,
            algorithm="HS256",
            headers={"kid": "k1"},
        )
        
        with pytest.raises(TokenSignatureError):
            codec.decode(forged)

    @pytest.mark.parametrize("garbage", ["not-a-token", "a.b", "a.b.c", "....", "Bearer"])
    def test_malformed_rejected(self, codec, garbage):
        with pytest.raises(TokenMalformedError):
            codec.decode(garbage)

    def test_missing_required_claim_is_malformed(self, codec):
        token = pyjwt.encode({"sub": "alice@example.com"}, SECRET, algorithm="HS256", headers={"kid": "k1"})
        
        with pytest.raises(TokenMalformedError):
            codec.decode(token)


# =============================================================================
# Expiry
# =============================================================================


class TestExpiry:
    def test_valid_just_before_expiry(self, codec, clock):
        token = codec.encode("alice@example.com", ttl=timedelta(minutes=5))
        clock.advance(minutes=5, milliseconds=-1)
        
        assert not codec.is_expired(token)
        assert codec.decode(token).subject == "alice@example.com"

    def test_expired_exactly_at_expiry(self, codec, clock):
        token = codec.encode("alice@example.com", ttl=timedelta(minutes=5))
        clock.advance(minutes=5)
        
        assert codec.is_expired(token)
        with pytest.raises(TokenExpiredError):
            codec.decode(token)

    def test_expired_after_expiry(self, codec, clock):
        token = codec.encode("alice@example.com", ttl=timedelta(minutes=5))
        clock.advance(minutes=5, milliseconds=1)
        
        with pytest.raises(TokenExpiredError):
            codec.decode(token)

    def test_zero_ttl_is_born_expired(self, codec):
        token = codec.encode("alice@example.com", ttl=timedelta(0))
        
        with pytest.raises(TokenExpiredError):
            codec.decode(token)


# =============================================================================
# Key rotation
# =============================================================================


class TestKeyRotation:
    def test_old_tokens_verify_after_rotation(self, codec):
        old = codec.encode("alice@example.com")
        codec.add_key("k2", ROTATED_SECRET, activate=True)
        new = codec.encode("alice@example.com")
        
        assert codec.decode(old).key_id == "k1"
        assert codec.decode(new).key_id == "k2"
        assert pyjwt.get_unverified_header(new)["kid"] == "k2"

    def test_retired_key_stops_verifying(self, codec):
        old = codec.encode("alice@example.com")
        codec.add_key("k2", ROTATED_SECRET, activate=True)
        codec.remove_key("k1")
        
        with pytest.raises(TokenSignatureError):
            codec.decode(old)

    def test_active_key_cannot_be_removed(self, codec):
        with pytest.raises(ValueError):
            codec.remove_key("k1")

    def test_unknown_kid_rejected(self, codec):
        token = pyjwt.encode(
            {"sub": "alice@example.com", "iat": 1, "exp": 2**31},
            SECRET,
            algorithm="HS256",
            headers={"kid": "nope"},
        )
        
        with pytest.raises(TokenSignatureError):
            codec.decode(token)

    def test_active_key_must_be_in_ring(self):
        with pytest.raises(ValueError):
            TokenCodec(keys={"k1": SECRET}, active_key_id="k2")

    def test_from_settings_falls_back_to_single_secret(self, settings):
        settings.jwt_signing_keys = {}
        settings.jwt_active_key_id = "default"
        codec = TokenCodec.from_settings(settings)
        
        assert codec.key_ids == ["default"]
