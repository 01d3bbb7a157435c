"""
Servekit — Password Hashing Tests
=================================

    ✅ hashes verify and never equal the plain text
    ✅ wrong passwords are refused
    ✅ hashes are salted
"""

from servekit.security import get_password_hash, verify_password


class TestPasswordHashing:

    def test_hash_and_verify(self):
        hashed = get_password_hash("correct-horse")
        assert hashed != "correct-horse"
        assert hashed.startswith("$pbkdf2-sha256$")
        assert verify_password("correct-horse", hashed)

    def test_wrong_password_is_refused(self):
        assert not verify_password("wrong-horse", get_password_hash("correct-horse"))

    def test_hashes_are_salted(self):
        assert get_password_hash("same-password") != get_password_hash("same-password")
