from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from image_library.domain.exceptions import ConfigurationError


@dataclass(frozen=True)
class AspectRatio:
    horizontal: int
    vertical: int

    def __post_init__(self) -> None:
        for name in ("horizontal", "vertical"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"Aspect ratio {name} must be a positive integer, got {value!r}")

    @classmethod
    def from_string(cls, value: str) -> AspectRatio:
        parts = value.strip().split(":")
        if len(parts) != 2:
            raise ConfigurationError(f"Aspect ratio '{value}' must look like 'H:V'")
        try:
            return cls(int(parts[0]), int(parts[1]))
        except ValueError as exc:
            raise ConfigurationError(f"Aspect ratio '{value}' must look like 'H:V'") from exc

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AspectRatio:
        try:
            return cls(data["horizontal"], data["vertical"])
        except KeyError as exc:
            raise ConfigurationError(f"Aspect ratio is missing '{exc.args[0]}'") from exc

    @classmethod
    def coerce(cls, value: AspectRatio | str | dict[str, Any]) -> AspectRatio:
        if isinstance(value, AspectRatio):
            return value
        if isinstance(value, str):
            return cls.from_string(value)
        if isinstance(value, dict):
            return cls.from_dict(value)
        raise ConfigurationError(f"Cannot interpret {value!r} as an aspect ratio")

    @property
    def ratio(self) -> float:
        return self.horizontal / self.vertical

    def to_dict(self) -> dict[str, int]:
        return {"horizontal": self.horizontal, "vertical": self.vertical}

    def __str__(self) -> str:
        return f"{self.horizontal}:{self.vertical}"
