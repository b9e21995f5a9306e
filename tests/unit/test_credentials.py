"""Unit tests for credential decoding and dual-format verification."""

import bcrypt

from src.cr_auth.auth.credentials import (
    Hashed,
    Plaintext,
    decode_credential,
    hash_secret,
    needs_rehash,
    verify,
    verify_secret,
)


def _bcrypt(plain: str, rounds: int = 4) -> str:
    # Low cost factor keeps the suite fast; verification does not care
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt(rounds=rounds)).decode()


class TestDecodeCredential:
    def test_bcrypt_2b_is_hashed(self) -> None:
        stored = _bcrypt("k3y")
        cred = decode_credential(stored)
        assert isinstance(cred, Hashed)
        assert cred.algorithm == "bcrypt"
        assert cred.normalized == stored

    def test_2y_prefix_normalised_to_2a(self) -> None:
        stored = "$2y$" + _bcrypt("k3y")[4:]
        cred = decode_credential(stored)
        assert isinstance(cred, Hashed)
        assert cred.normalized.startswith("$2a$")
        assert cred.original == stored

    def test_other_values_are_plaintext(self) -> None:
        assert decode_credential("  legacy  ") == Plaintext("legacy")

    def test_empty_and_none_decode_to_empty_plaintext(self) -> None:
        assert decode_credential("") == Plaintext("")
        assert decode_credential(None) == Plaintext("")


class TestVerify:
    def test_bcrypt_match(self) -> None:
        assert verify_secret("k3y", _bcrypt("k3y")) is True

    def test_bcrypt_mismatch(self) -> None:
        assert verify_secret("wrong", _bcrypt("k3y")) is False

    def test_php_2y_hash_verifies(self) -> None:
        stored = "$2y$" + _bcrypt("k3y")[4:]
        assert verify_secret("k3y", stored) is True
        assert verify_secret("nope", stored) is False

    def test_plaintext_match_is_trimmed(self) -> None:
        assert verify_secret(" abc123 ", "abc123") is True

    def test_plaintext_mismatch(self) -> None:
        assert verify_secret("abc124", "abc123") is False

    def test_empty_stored_value_never_matches(self) -> None:
        assert verify("", Plaintext("")) is False
        assert verify_secret("", None) is False

    def test_malformed_bcrypt_is_a_non_match(self) -> None:
        assert verify_secret("k3y", "$2b$not-a-real-hash") is False


class TestHashing:
    def test_hash_is_not_plain(self) -> None:
        hashed = hash_secret("MySecret1")
        assert hashed != "MySecret1"
        assert hashed.startswith("$2b$")

    def test_hash_roundtrip(self) -> None:
        assert verify_secret("MySecret1", hash_secret("MySecret1")) is True

    def test_needs_rehash_only_for_plaintext(self) -> None:
        assert needs_rehash(decode_credential("legacy")) is True
        assert needs_rehash(decode_credential(_bcrypt("x"))) is False
