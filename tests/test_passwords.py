"""Tests for password hashing."""

import pytest

from booknet.auth.passwords import PasswordHasher


class TestPasswordHasher:
    def test_verify_matching_password(self, hasher):
        stored = hasher.hash("s3cret-pass")
        
        assert hasher.verify("s3cret-pass", stored)
        assert not hasher.verify("s3cret-pasS", stored)

    def test_salted(self, hasher):
        # Same password, different salt, different stored value
        assert hasher.hash("same-password") != hasher.hash("same-password")

    def test_plaintext_not_stored(self, hasher):
        assert "visible-password" not in hasher.hash("visible-password")

    def test_empty_password_refused(self, hasher):
        with pytest.raises(ValueError):
            hasher.hash("")

    def test_garbage_hash_never_verifies(self, hasher):
        assert not hasher.verify("anything", "not-a-hash")
        assert not hasher.verify("anything", "")
        assert not hasher.verify("", hasher.hash("anything"))

    def test_iterations_are_part_of_the_hash(self):
        stored = PasswordHasher(iterations=1_000).hash("pw-123456")
        
        assert not PasswordHasher(iterations=2_000).verify("pw-123456", stored)
