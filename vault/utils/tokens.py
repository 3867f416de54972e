"""Opaque token generation for verification codes, reset tokens and session ids."""

import secrets
from typing import Protocol


class TokenIssuer(Protocol):
    def issue(self, length: int) -> str: ...


def new_unique(length: int) -> str:
    """Return a URL-safe random string of exactly ``length`` characters.

    Uniqueness is probabilistic; the credential store's unique constraints are
    the authoritative guarantee.
    """
    if length <= 0:
        raise ValueError("length must be positive")
    # token_urlsafe(n) yields ~1.3 chars per byte, so n bytes always cover n chars
    return secrets.token_urlsafe(length)[:length]


class SecretsTokenIssuer:
    """Token issuer backed by the ``secrets`` CSPRNG."""

    def issue(self, length: int) -> str:
        return new_unique(length)
