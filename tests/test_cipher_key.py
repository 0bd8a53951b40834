"""Tests for cipher key derivation."""

from __future__ import annotations

import hashlib

import pytest

from filevault.crypto.keys import KEY_LENGTH, CipherKey, MissingEncryptionKeyError


class TestDerivation:
    def test_same_secret_same_key(self) -> None:
        assert CipherKey.from_secret("somesecretkey") == CipherKey.from_secret("somesecretkey")

    def test_key_is_sha256_of_secret(self) -> None:
        key = CipherKey.from_secret("somesecretkey")

        assert key.material == hashlib.sha256(b"somesecretkey").digest()
        assert len(key.material) == KEY_LENGTH

    def test_different_secrets_different_keys(self) -> None:
        assert CipherKey.from_secret("alpha") != CipherKey.from_secret("beta")

    def test_fingerprint_does_not_expose_key(self) -> None:
        key = CipherKey.from_secret("somesecretkey")

        assert len(key.fingerprint) == 16
        assert key.fingerprint not in key.material.hex()

    def test_repr_hides_material(self) -> None:
        key = CipherKey.from_secret("somesecretkey")

        assert key.material.hex() not in repr(key)
        assert "material" not in repr(key)


class TestFailFast:
    @pytest.mark.parametrize("secret", [None, "", "   "])
    def test_missing_secret_raises_at_construction(self, secret: str | None) -> None:
        with pytest.raises(MissingEncryptionKeyError):
            CipherKey.from_secret(secret)

    def test_wrong_length_material_rejected(self) -> None:
        with pytest.raises(ValueError):
            CipherKey(material=b"short")
