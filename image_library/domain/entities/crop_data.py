from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from image_library.domain.exceptions import ValidationError


class CropPosition(str, Enum):
    TOP_LEFT = "top-left"
    TOP = "top"
    TOP_RIGHT = "top-right"
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM = "bottom"
    BOTTOM_RIGHT = "bottom-right"


@dataclass(frozen=True)
class CropData:
    width: int
    height: int
    x: int | None = None
    y: int | None = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValidationError(f"Crop size must be positive, got {self.width}x{self.height}")

    @property
    def has_offset(self) -> bool:
        return self.x is not None and self.y is not None

    @classmethod
    def from_dict(cls, data: Any) -> CropData | None:
        """Parse a stored or submitted crop entry.

        Anything without a width and a height means "no crop"; an entry with only
        one of the two is rejected.
        """
        if not isinstance(data, dict):
            return None
        width, height = data.get("width"), data.get("height")
        if width is None and height is None:
            return None
        if width is None or height is None:
            raise ValidationError(f"Crop data needs both width and height, got {data!r}")
        return cls(
            _as_int(width, "width"),
            _as_int(height, "height"),
            _as_int(data.get("x"), "x"),
            _as_int(data.get("y"), "y"),
        )

    def to_dict(self) -> dict[str, int | None]:
        return {"width": self.width, "height": self.height, "x": self.x, "y": self.y}


@dataclass(frozen=True)
class ConversionCrop(CropData):
    """Crop of a conversion, optionally rotated clockwise and mirrored.

    ``scale_x=-1`` flips horizontally and ``scale_y=-1`` vertically, the way an
    in-browser cropper reports them.
    """

    rotate: int = 0
    scale_x: int = 1
    scale_y: int = 1

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.rotate not in (0, 90, 180, 270):
            raise ValidationError(f"Rotation must be 0, 90, 180 or 270 degrees, got {self.rotate}")
        if self.scale_x not in (1, -1) or self.scale_y not in (1, -1):
            raise ValidationError(f"Scale must be 1 or -1, got {self.scale_x}/{self.scale_y}")

    @classmethod
    def from_dict(cls, data: Any) -> ConversionCrop | None:
        base = CropData.from_dict(data)
        if base is None:
            return None
        return cls(
            base.width,
            base.height,
            base.x,
            base.y,
            rotate=_as_int(data.get("rotate", 0), "rotate"),
            scale_x=_as_int(data.get("scale_x", 1), "scale_x"),
            scale_y=_as_int(data.get("scale_y", 1), "scale_y"),
        )

    def to_dict(self) -> dict[str, int | None]:
        return {**super().to_dict(), "rotate": self.rotate, "scale_x": self.scale_x, "scale_y": self.scale_y}


def _as_int(value: Any, field: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Crop {field} must be an integer, got {value!r}") from exc


CropDataMap = dict[str, "CropData | None"]


def normalize_crop_data(breakpoint_keys: Iterable[str], value: Any) -> CropDataMap:
    """Expand ``value`` into one entry per breakpoint.

    ``None`` or a single ``CropData`` applies to every breakpoint; a mapping is read per
    breakpoint key: missing or empty entries become ``None`` and partial ones raise
    ValidationError.
    """
    keys = list(breakpoint_keys)
    if value is None or isinstance(value, CropData):
        return {key: value for key in keys}
    if not isinstance(value, dict):
        raise ValidationError(f"Crop data must be a mapping, got {type(value).__name__}")
    result: CropDataMap = {}
    for key in keys:
        entry = value.get(key)
        result[key] = entry if isinstance(entry, CropData) else CropData.from_dict(entry)
    return result


def crop_data_to_dict(crop_data: CropDataMap) -> dict[str, dict[str, int | None] | None]:
    return {key: (data.to_dict() if data is not None else None) for key, data in crop_data.items()}
