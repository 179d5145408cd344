# tests/test_keys.py
"""Tests for key pair import, validation and ES384 signing."""

import json

import pytest
from jose import jws
from jose.utils import base64url_decode, base64url_encode

from ology.errors import KeyPairError
from ology.keys import (
    KeyHandle,
    KeyPair,
    TEST_MESSAGE,
    decode_header,
    generate_key_pair,
    import_public_key,
    parse_key_pair,
    sign_text,
    validate_key_pair,
    verify_text,
)

from conftest import ALICE, ALICE_KID


class TestGenerateAndValidate:
    """Test key generation and the sign/verify self test."""

    def test_generated_pair_is_valid(self, alice_pair):
        assert validate_key_pair(alice_pair) is True

    def test_generated_pair_handles(self, alice_pair):
        """Private handle is not extractable, public handle is."""
        assert alice_pair.kid == ALICE_KID
        assert alice_pair.did == ALICE
        assert alice_pair.private.is_private
        assert not alice_pair.private.extractable
        assert alice_pair.public.extractable

    def test_tampered_public_key_is_invalid(self, alice_pair, bob_pair):
        """A pair whose public key belongs to another key fails."""
        tampered = KeyPair(kid=alice_pair.kid, private=alice_pair.private, public=bob_pair.public)
        assert validate_key_pair(tampered) is False

    def test_broken_pair_returns_false(self, alice_pair):
        """Errors during the self test become False."""
        broken = KeyPair(
            kid=alice_pair.kid,
            private=KeyHandle(key=None, kid=alice_pair.kid, extractable=False),
            public=alice_pair.public,
        )
        assert validate_key_pair(broken) is False

    def test_generate_rejects_bad_kid(self):
        with pytest.raises(KeyPairError):
            generate_key_pair("did:psqr:example.com/alice")


class TestSignText:
    """Test sign_text and verify_text."""

    def test_sign_then_verify_recovers_text(self, alice_pair):
        token = sign_text("some article info", alice_pair)

        assert verify_text(token, alice_pair) == "some article info"

    def test_token_has_three_segments(self, alice_pair):
        token = sign_text("x", alice_pair)
        assert len(token.split(".")) == 3

    def test_header_carries_alg_and_kid(self, alice_pair):
        header = decode_header(sign_text("x", alice_pair))

        assert header["alg"] == "ES384"
        assert header["kid"] == ALICE_KID

    def test_unicode_text(self, alice_pair):
        text = "Grüße, 世界"
        assert verify_text(sign_text(text, alice_pair), alice_pair.public) == text

    def test_verify_with_wrong_key(self, alice_pair, bob_pair):
        token = sign_text("x", alice_pair)
        assert verify_text(token, bob_pair) is None

    def test_sign_failure_returns_false(self, alice_pair):
        broken = KeyPair(
            kid=alice_pair.kid,
            private=KeyHandle(key=None, kid=alice_pair.kid, extractable=False),
            public=alice_pair.public,
        )
        assert sign_text("x", broken) is False

    def test_tampered_payload_does_not_verify(self, alice_pair):
        header, _, signature = sign_text("original", alice_pair).split(".")
        forged = f"{header}.{base64url_encode(b'forged').decode()}.{signature}"

        assert verify_text(forged, alice_pair) is None


class TestTokens:
    """Test token format and interoperability with plain JWKs."""

    def test_rejects_other_algorithms(self, alice_pair):
        _, payload, signature = sign_text("x", alice_pair).split(".")
        header = base64url_encode(json.dumps({"alg": "none"}).encode()).decode()

        assert verify_text(f"{header}.{payload}.{signature}", alice_pair) is None

    def test_rejects_wrong_segment_count(self, alice_pair):
        assert verify_text("a.b", alice_pair) is None
        with pytest.raises(ValueError):
            decode_header("a.b")

    def test_signature_is_raw_r_s(self, alice_pair):
        signature = base64url_decode(sign_text("x", alice_pair).split(".")[2].encode())
        assert len(signature) == 96

    def test_token_verifies_against_published_jwk(self, alice_pair):
        """A token verifies with the exported public JWK as a plain dict."""
        token = sign_text("hello", alice_pair)
        public_jwk = alice_pair.public.export_jwk()

        assert jws.verify(token, public_jwk, algorithms=["ES384"]) == b"hello"

    def test_accepts_token_signed_elsewhere(self, alice_pair):
        """A token signed directly from the private JWK verifies."""
        token = jws.sign(b"hi", alice_pair.to_dict()["private"], algorithm="ES384")

        assert verify_text(token, alice_pair) == "hi"


class TestParseKeyPair:
    """Test parse_key_pair."""

    def test_parse_success(self, alice_pair):
        response = parse_key_pair(alice_pair.to_dict())

        assert response.success
        assert response.message == "Successfully parsed Key Pair"
        assert response.pair.kid == ALICE_KID
        assert validate_key_pair(response.pair)

    def test_marks_extractability(self, alice_pair):
        record = parse_key_pair(alice_pair.to_dict()).pair.to_dict()

        assert record["private"]["ext"] is False
        assert record["public"]["ext"] is True

    def test_private_handle_cannot_be_exported(self, alice_pair):
        pair = parse_key_pair(alice_pair.to_dict()).pair

        with pytest.raises(KeyPairError):
            pair.private.export_jwk()

    def test_public_handle_exports_jwk(self, alice_pair):
        record = alice_pair.to_dict()
        exported = parse_key_pair(record).pair.public.export_jwk()

        assert exported["x"] == record["public"]["x"]
        assert exported["y"] == record["public"]["y"]
        assert exported["kid"] == ALICE_KID
        assert "d" not in exported

    def test_public_derived_when_missing(self, alice_pair):
        record = alice_pair.to_dict()
        del record["public"]

        response = parse_key_pair(record)
        assert response.success
        assert validate_key_pair(response.pair)

    def test_rejects_wrong_curve(self, alice_pair):
        record = alice_pair.to_dict()
        record["private"]["crv"] = "P-256"

        response = parse_key_pair(record)
        assert not response.success
        assert ALICE_KID in response.message
        assert "P-256" in response.message

    def test_rejects_wrong_algorithm(self, alice_pair):
        record = alice_pair.to_dict()
        record["public"]["alg"] = "ES256"

        response = parse_key_pair(record)
        assert not response.success
        assert ALICE_KID in response.message

    def test_rejects_malformed_coordinate(self, alice_pair):
        record = alice_pair.to_dict()
        record["public"]["x"] = "c2hvcnQ"

        response = parse_key_pair(record)
        assert not response.success

    def test_rejects_private_not_matching_its_point(self, alice_pair, bob_pair):
        record = alice_pair.to_dict()
        record["private"]["d"] = bob_pair.to_dict()["private"]["d"]

        assert not parse_key_pair(record).success

    def test_rejects_invalid_kid(self, alice_pair):
        record = alice_pair.to_dict()
        record["kid"] = "not-a-kid"

        response = parse_key_pair(record)
        assert not response.success
        assert "not-a-kid" in response.message

    def test_rejects_missing_private(self):
        response = parse_key_pair({"kid": ALICE_KID})
        assert not response.success

    def test_rejects_non_object(self):
        assert not parse_key_pair("nope").success

    def test_import_public_key(self, alice_pair):
        handle = import_public_key(alice_pair.public.export_jwk())

        assert handle.extractable
        assert not handle.is_private
        assert verify_text(sign_text(TEST_MESSAGE, alice_pair), handle) == TEST_MESSAGE
