from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from image_library.domain.exceptions import ConfigurationError


@dataclass(frozen=True)
class Effects:
    blur: int = 0
    pixelate: int = 0
    greyscale: bool = False
    sepia: bool = False
    sharpen: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Effects:
        return cls(
            blur=data.get("blur", 0),
            pixelate=data.get("pixelate", 0),
            greyscale=data.get("greyscale", data.get("grayscale", False)),
            sepia=data.get("sepia", False),
            sharpen=data.get("sharpen", 0),
        )

    def validate(self, raise_errors: bool = False) -> bool:
        try:
            for name in ("blur", "pixelate", "sharpen"):
                value = getattr(self, name)
                if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
                    raise ConfigurationError(f"{name.title()} amount must be between 0 and 100")
            for name in ("greyscale", "sepia"):
                if not isinstance(getattr(self, name), bool):
                    raise ConfigurationError(f"{name.title()} must be a boolean")
            return True
        except ConfigurationError:
            if raise_errors:
                raise
            return False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
