from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from image_library.domain.entities.aspect_ratio import AspectRatio
from image_library.domain.entities.effects import Effects
from image_library.domain.exceptions import ConfigurationError


@dataclass
class ConversionDefinition:
    """Named recipe for a single fixed-size rendition of a source image."""

    name: str = ""
    aspect_ratio: AspectRatio | str | dict | None = None
    default_width: int | None = None
    default_height: int | None = None
    effects: Effects | dict = field(default_factory=Effects)
    create_sync: bool = False  # run inline instead of through the queue

    def __post_init__(self) -> None:
        if self.aspect_ratio is not None:
            self.aspect_ratio = AspectRatio.coerce(self.aspect_ratio)
        if isinstance(self.effects, dict):
            self.effects = Effects.from_dict(self.effects)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversionDefinition:
        return cls(
            name=data.get("name", ""),
            aspect_ratio=data.get("aspect_ratio"),
            default_width=data.get("default_width"),
            default_height=data.get("default_height"),
            effects=data.get("effects") or {},
            create_sync=data.get("create_sync", False),
        )

    @property
    def slug(self) -> str:
        return re.sub(r"[^a-z0-9]+", "-", self.name.replace(":", "-").lower()).strip("-")

    def validate(self, raise_errors: bool = False) -> bool:
        try:
            if not self.name:
                raise ConfigurationError("Conversion definition must have a name")
            if self.aspect_ratio is None:
                raise ConfigurationError(f"Conversion definition '{self.name}' must have an aspect ratio")
            for dim in ("default_width", "default_height"):
                value = getattr(self, dim)
                if value is not None and (not isinstance(value, int) or value <= 0):
                    raise ConfigurationError(
                        f"Conversion definition '{self.name}' {dim} must be a positive integer"
                    )
            self.effects.validate(raise_errors=True)
            return True
        except ConfigurationError:
            if raise_errors:
                raise
            return False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "aspect_ratio": str(self.aspect_ratio) if self.aspect_ratio is not None else None,
            "default_width": self.default_width,
            "default_height": self.default_height,
            "effects": self.effects.to_dict(),
            "create_sync": self.create_sync,
        }
