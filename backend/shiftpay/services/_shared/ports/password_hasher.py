from __future__ import annotations

from typing import Protocol


class PasswordHasher(Protocol):
    """
    Port for one-way password hashing.

    Implementations produce salted, adaptive hashes. Plaintext passwords are
    never logged or stored by callers or implementations.
    """

    def hash(self, plaintext: str) -> str:
        """Return a fresh salted hash of ``plaintext``."""

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Return ``True`` when ``plaintext`` matches ``hashed``."""
