"""
e3d_commerce.auth.passwords

Password hashing helpers (Werkzeug's salted PBKDF2/scrypt hashes).
"""

from __future__ import annotations

from werkzeug.security import check_password_hash, generate_password_hash


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)
