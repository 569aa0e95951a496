"""Tests for password verification and token signing."""

from datetime import timedelta

import pytest

from utils.exceptions import TokenExpired, TokenMalformed, TokenSignatureInvalid
from utils.security import (
    ACCESS,
    REFRESH,
    TokenSigner,
    build_claims,
    hash_password,
    verify_password,
)

from conftest import ACCESS_SECRET, REFRESH_SECRET


class TestCredentialVerifier:
    def test_correct_password_verifies(self):
        stored = hash_password("GoodPass123!")
        assert verify_password("GoodPass123!", stored) is True

    def test_wrong_password_is_false(self):
        stored = hash_password("GoodPass123!")
        assert verify_password("wrong", stored) is False

    def test_malformed_hash_is_false_not_an_error(self):
        assert verify_password("GoodPass123!", "not-an-argon2-hash") is False
        assert verify_password("GoodPass123!", "") is False

    def test_hash_is_not_plaintext_and_salted(self):
        first = hash_password("GoodPass123!")
        second = hash_password("GoodPass123!")
        assert first != "GoodPass123!"
        assert first != second


class TestTokenSigner:
    claims = {"sub": "user-1", "email": "alice@x.com"}

    def test_round_trip_returns_claims(self, signer):
        for kind in (ACCESS, REFRESH):
            decoded = signer.verify(signer.sign(self.claims, kind), kind)
            assert decoded["sub"] == "user-1"
            assert decoded["email"] == "alice@x.com"
            assert decoded["type"] == kind

    def test_low_level_encode_decode(self, signer):
        token = signer.encode(self.claims, "some-other-secret-0123456789abcdef", timedelta(minutes=5), ACCESS)
        decoded = signer.decode(token, "some-other-secret-0123456789abcdef", ACCESS)
        assert {k: decoded[k] for k in self.claims} == self.claims

    def test_ttl_zero_is_expired(self, signer):
        token = signer.encode(self.claims, ACCESS_SECRET, timedelta(0), ACCESS)
        with pytest.raises(TokenExpired):
            signer.verify(token, ACCESS)

    def test_expired_after_clock_passes_ttl(self, signer, clock):
        token = signer.sign(self.claims, ACCESS)
        clock.advance(minutes=29)
        signer.verify(token, ACCESS)
        clock.advance(minutes=1)
        with pytest.raises(TokenExpired):
            signer.verify(token, ACCESS)

    def test_expiry_check_can_be_skipped(self, signer, clock):
        token = signer.sign(self.claims, REFRESH)
        clock.advance(days=31)
        with pytest.raises(TokenExpired):
            signer.verify(token, REFRESH)
        assert signer.verify(token, REFRESH, check_expiry=False)["sub"] == "user-1"

    def test_tampered_token_fails_signature(self, signer):
        token = signer.sign(self.claims, ACCESS)
        header, payload, signature = token.split(".")
        forged = ".".join([header, payload, signature[::-1]])
        with pytest.raises((TokenSignatureInvalid, TokenMalformed)):
            signer.verify(forged, ACCESS)

    def test_secrets_do_not_cross_verify(self, signer):
        refresh_token = signer.sign(self.claims, REFRESH)
        with pytest.raises(TokenSignatureInvalid):
            signer.verify(refresh_token, ACCESS)
        access_token = signer.sign(self.claims, ACCESS)
        with pytest.raises(TokenSignatureInvalid):
            signer.verify(access_token, REFRESH)

    def test_garbage_is_malformed(self, signer):
        with pytest.raises(TokenMalformed):
            signer.verify("not.a.jwt", ACCESS)
        with pytest.raises(TokenMalformed):
            signer.verify("", REFRESH)

    def test_wrong_type_with_right_secret_is_malformed(self, signer):
        token = signer.encode(self.claims, REFRESH_SECRET, timedelta(minutes=5), ACCESS)
        with pytest.raises(TokenMalformed):
            signer.verify(token, REFRESH)

    def test_same_instant_is_deterministic(self, signer):
        assert signer.sign(self.claims, REFRESH) == signer.sign(self.claims, REFRESH)

    def test_different_instants_differ(self, signer, clock):
        first = signer.sign(self.claims, REFRESH)
        clock.advance(milliseconds=1)
        assert signer.sign(self.claims, REFRESH) != first

    def test_expires_at_matches_exp_claim(self, signer, clock):
        token = signer.sign(self.claims, REFRESH)
        decoded = signer.verify(token, REFRESH)
        assert signer.expires_at(REFRESH, clock()) == clock().replace(microsecond=0) + timedelta(days=30)
        assert decoded["exp"] - int(decoded["iat"]) == int(timedelta(days=30).total_seconds())

    def test_sub_second_ttl_rounds_up(self, clock):
        signer = TokenSigner(ACCESS_SECRET, REFRESH_SECRET, access_ttl=timedelta(milliseconds=900), clock=clock)
        token = signer.sign(self.claims, ACCESS)

        assert signer.verify(token, ACCESS)["sub"] == "user-1"
        assert signer.ttl_seconds(ACCESS) == 1
        assert signer.expires_at(ACCESS, clock()) == clock().replace(microsecond=0) + timedelta(seconds=1)

        clock.advance(seconds=1)
        with pytest.raises(TokenExpired):
            signer.verify(token, ACCESS)

    def test_default_ttls(self):
        signer = TokenSigner(ACCESS_SECRET, REFRESH_SECRET)
        assert signer.ttl(ACCESS) == timedelta(minutes=30)
        assert signer.ttl(REFRESH) == timedelta(days=30)

    def test_shared_secret_is_rejected(self):
        with pytest.raises(ValueError):
            TokenSigner("same-secret-0123456789abcdef0123", "same-secret-0123456789abcdef0123")

    def test_from_config_parses_durations(self):
        signer = TokenSigner.from_config(
            {
                "ACCESS_TOKEN_SECRET": ACCESS_SECRET,
                "REFRESH_TOKEN_SECRET": REFRESH_SECRET,
                "ACCESS_TOKEN_EXPIRES": "15m",
                "REFRESH_TOKEN_EXPIRES": "7d",
            }
        )
        assert signer.ttl(ACCESS) == timedelta(minutes=15)
        assert signer.ttl(REFRESH) == timedelta(days=7)


def test_claims_never_carry_password_material(alice):
    claims = build_claims(alice)
    assert claims == {"sub": alice.id, "email": "alice@x.com"}
