"""Password hashing with bcrypt."""

from typing import Protocol

import bcrypt

# Pre-computed bcrypt hash for timing-safe comparison on account-not-found,
# so unknown logins cost the same as wrong passwords.
DUMMY_HASH = "$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...

    def verify(self, password: str, password_hash: str) -> bool: ...


def _encode(password: str) -> bytes:
    # bcrypt has a 72-byte limit
    return password.encode("utf-8")[:72]


class BcryptHasher:
    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=self.rounds)).decode()

    def verify(self, password: str, password_hash: str) -> bool:
        """Constant-time check of ``password`` against ``password_hash``."""
        try:
            return bcrypt.checkpw(_encode(password), password_hash.encode())
        except ValueError:
            # Malformed hash
            return False
