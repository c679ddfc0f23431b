from __future__ import annotations

from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from skillpath.services._shared.ports import PasswordHasher


@dataclass(frozen=True, slots=True)
class WerkzeugPasswordHasher(PasswordHasher):
    """
    Password hasher backed by :mod:`werkzeug.security`.

    :param method: Werkzeug method string, e.g. ``"scrypt"`` or
        ``"pbkdf2:sha256:600000"``.
    """

    method: str = "scrypt"

    def hash(self, raw: str) -> str:
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        return generate_password_hash(raw, method=self.method)

    def verify(self, raw: str, hashed: str) -> bool:
        if not hashed or not raw:
            return False
        # ``check_password_hash`` is untyped; coerce to bool for mypy.
        return bool(check_password_hash(hashed, raw))
