# shiftpay/infra/security/werkzeug_password_hasher.py
from __future__ import annotations

from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from shiftpay.services._shared.ports import PasswordHasher


@dataclass(slots=True)
class WerkzeugPasswordHasher(PasswordHasher):
    """
    Password hasher backed by :mod:`werkzeug.security`.

    :param method: Werkzeug method string. The default ``"scrypt"`` is
        adaptive; tests pass a cheap ``"pbkdf2:sha256:1000"``.
    """

    method: str = "scrypt"

    def hash(self, plaintext: str) -> str:
        if not isinstance(plaintext, str) or not plaintext:
            raise ValueError("Password must be a non-empty string.")
        return generate_password_hash(plaintext, method=self.method)

    def verify(self, plaintext: str, hashed: str) -> bool:
        if not hashed:
            return False
        # check_password_hash is untyped; coerce for mypy.
        return bool(check_password_hash(hashed, plaintext))
