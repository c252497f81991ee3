"""
Tests for bcrypt password hashing
"""
import pytest

from licensing.utils.password_hash import hash_password, verify_password


def test_hash_and_verify():
    hashed = hash_password("correct horse battery")

    assert hashed.startswith("$2")
    assert hashed != "correct horse battery"
    assert verify_password("correct horse battery", hashed)
    assert not verify_password("wrong horse battery", hashed)


def test_each_hash_is_salted():
    assert hash_password("same-password") != hash_password("same-password")


def test_empty_password_cannot_be_hashed():
    with pytest.raises(ValueError):
        hash_password("")


def test_malformed_hash_does_not_verify():
    assert not verify_password("anything", "not-a-bcrypt-hash")
    assert not verify_password("", "$2b$12$abc")
