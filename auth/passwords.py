"""
auth/passwords.py -- Password hashing and verification (bcrypt).

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection builds a password longer than 72 bytes, which bcrypt 4.x rejects.

hash_password() is called explicitly by the signup flow before the Admin
record is built. There are no save hooks that hash implicitly.
"""

from __future__ import annotations

import bcrypt


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes. The API layer caps password
    length at 255 characters so inputs stay close to that bound.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares in constant time. A malformed stored hash makes
    bcrypt raise ValueError; that is reported as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False
