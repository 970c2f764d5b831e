"""
Password digests.

New digests are bcrypt (salted, iterated). ``Sha256Hasher`` reproduces
the old single-pass, unsalted SHA-256 hex digest; it is only meant for
demo fixtures and for checking digests written before the switch, and
gives no real protection.
"""

import hashlib
import hmac
import re

import bcrypt


_SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")


def is_legacy_digest(stored: str) -> bool:
    return bool(_SHA256_HEX.match(stored or ""))


class Sha256Hasher:
    scheme = "sha256"

    def hash(self, password: str) -> str:
        return hashlib.sha256(password.encode("utf-8")).hexdigest()

    def verify(self, password: str, stored: str) -> bool:
        return hmac.compare_digest(self.hash(password), stored or "")


class BcryptHasher:
    scheme = "bcrypt"

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, stored: str) -> bool:
        if is_legacy_digest(stored):
            return Sha256Hasher().verify(password, stored)
        try:
            return bcrypt.checkpw(password.encode("utf-8"), stored.encode("utf-8"))
        except ValueError:
            # Not a bcrypt string (e.g. a hand-edited store).
            return False

    def needs_rehash(self, stored: str) -> bool:
        return is_legacy_digest(stored)


def make_hasher(scheme: str = "bcrypt", rounds: int = 12):
    if scheme == "sha256":
        return Sha256Hasher()
    if scheme == "bcrypt":
        return BcryptHasher(rounds=rounds)
    raise ValueError(f"Unknown password scheme: {scheme}")
