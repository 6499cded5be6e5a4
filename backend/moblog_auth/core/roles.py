"""Account privilege tags embedded in access token claims."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value: object) -> "Role":
        """Resolve a stored or claimed role value; unknown tags raise ValueError."""
        if isinstance(value, Role):
            return value
        return cls(str(value))
