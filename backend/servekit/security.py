"""
Servekit — Password Hashing
===========================

What:  Hash and verify user passwords.
How:   passlib CryptContext with PBKDF2-SHA256 (pure Python, no native
       extension). `deprecated="auto"` lets verify_and_update() flag hashes
       made with an older scheme once the scheme list changes.
"""

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)
