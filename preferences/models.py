"""preferences/models.py -- Saved meal preferences."""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass
class Preferences:
    """Constraints appended to every meal assistant prompt.

    Empty string / 0 mean "not set".
    """

    dietary_restrictions: str = ""
    max_cooking_time: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Preferences":
        return cls(
            dietary_restrictions=str(data.get("dietary_restrictions") or ""),
            max_cooking_time=int(data.get("max_cooking_time") or 0),
        )
