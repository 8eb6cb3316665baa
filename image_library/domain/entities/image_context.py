from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from image_library.domain.entities.aspect_ratio import AspectRatio
from image_library.domain.entities.breakpoint import Breakpoint, BreakpointRegistry
from image_library.domain.entities.crop_data import CropPosition
from image_library.domain.exceptions import ConfigurationError

BreakpointRef = Breakpoint | str
LabelResolver = Callable[["ImageContext"], str]


@dataclass(frozen=True)
class ContextDefaults:
    """Process-wide fallbacks used when a context leaves a value unset."""

    crop_position: CropPosition = CropPosition.CENTER
    generate_webp: bool = True
    generate_responsive_versions: bool = True


class ImageContext:
    """Per-usage-site configuration of how an image is cropped, sized and styled.

    Every per-breakpoint attribute supports the same five setters::

        context.aspect_ratio("16:9")                        # every breakpoint
        context.aspect_ratio({"sm": "1:1", "md": "4:3", ...})  # one value per breakpoint
        context.aspect_ratio_for("md", "4:3")               # a single breakpoint
        context.aspect_ratio_from("lg", "21:9")             # lg and everything above
        context.aspect_ratio_to("md", "1:1")                # md and everything below
        context.aspect_ratio_between("md", "xl", "3:2")     # inclusive range

    Setters return the context so calls can be chained.
    """

    def __init__(
        self,
        key: str,
        breakpoints: BreakpointRegistry,
        defaults: ContextDefaults | None = None,
    ) -> None:
        self.key = key
        self.breakpoints = breakpoints
        self.defaults = defaults or ContextDefaults()
        self._label: str | LabelResolver | None = None
        self._aspect_ratio: dict[str, AspectRatio] = {}
        self._min_width: dict[str, int] = {}
        self._max_width: dict[str, int] = {}
        self._crop_position: dict[str, CropPosition] = {}
        self._blur: dict[str, int] = {}
        self._greyscale: dict[str, bool] = {}
        self._sepia: dict[str, bool] = {}
        self._allows_multiple = False
        self._generate_webp: bool | None = None
        self._generate_responsive_versions: bool | None = None

    @classmethod
    def make(
        cls, key: str, breakpoints: BreakpointRegistry, defaults: ContextDefaults | None = None
    ) -> ImageContext:
        return cls(key, breakpoints, defaults)

    # --------- label ---------
    def label(self, label: str | LabelResolver | None) -> ImageContext:
        self._label = label
        return self

    def get_label(self) -> str:
        if callable(self._label):
            return self._label(self)
        if not self._label:
            return self.key.replace("_", " ").replace("-", " ").title()
        return self._label

    # --------- aspect ratio ---------
    def aspect_ratio(self, value: Any) -> ImageContext:
        return self._set_all(self._aspect_ratio, "Aspect ratio", value, self._coerce_aspect_ratio)

    def aspect_ratio_for(self, breakpoint: BreakpointRef, value: Any) -> ImageContext:
        return self._set_range(self._aspect_ratio, "Aspect ratio", self._only(breakpoint), value, self._coerce_aspect_ratio)

    def aspect_ratio_from(self, breakpoint: BreakpointRef, value: Any) -> ImageContext:
        return self._set_range(self._aspect_ratio, "Aspect ratio", self._from(breakpoint), value, self._coerce_aspect_ratio)

    def aspect_ratio_to(self, breakpoint: BreakpointRef, value: Any) -> ImageContext:
        return self._set_range(self._aspect_ratio, "Aspect ratio", self._to(breakpoint), value, self._coerce_aspect_ratio)

    def aspect_ratio_between(self, start: BreakpointRef, end: BreakpointRef, value: Any) -> ImageContext:
        return self._set_range(self._aspect_ratio, "Aspect ratio", self._between(start, end), value, self._coerce_aspect_ratio)

    def get_aspect_ratio_by_breakpoint(self) -> dict[str, AspectRatio]:
        return dict(self._aspect_ratio)

    def get_aspect_ratio_for_breakpoint(self, breakpoint: BreakpointRef) -> AspectRatio | None:
        return self._aspect_ratio.get(self._key(breakpoint))

    # --------- min width ---------
    def min_width(self, value: Any) -> ImageContext:
        return self._set_all(self._min_width, "Min width", value, self._coerce_width)

    def min_width_for(self, breakpoint: BreakpointRef, value: int) -> ImageContext:
        return self._set_range(self._min_width, "Min width", self._only(breakpoint), value, self._coerce_width)

    def min_width_from(self, breakpoint: BreakpointRef, value: int) -> ImageContext:
        return self._set_range(self._min_width, "Min width", self._from(breakpoint), value, self._coerce_width)

    def min_width_to(self, breakpoint: BreakpointRef, value: int) -> ImageContext:
        return self._set_range(self._min_width, "Min width", self._to(breakpoint), value, self._coerce_width)

    def min_width_between(self, start: BreakpointRef, end: BreakpointRef, value: int) -> ImageContext:
        return self._set_range(self._min_width, "Min width", self._between(start, end), value, self._coerce_width)

    def get_min_width_by_breakpoint(self) -> dict[str, int]:
        return dict(self._min_width)

    def get_min_width_for_breakpoint(self, breakpoint: BreakpointRef) -> int | None:
        return self._min_width.get(self._key(breakpoint))

    # --------- max width ---------
    def max_width(self, value: Any) -> ImageContext:
        return self._set_all(self._max_width, "Max width", value, self._coerce_width)

    def max_width_for(self, breakpoint: BreakpointRef, value: int) -> ImageContext:
        return self._set_range(self._max_width, "Max width", self._only(breakpoint), value, self._coerce_width)

    def max_width_from(self, breakpoint: BreakpointRef, value: int) -> ImageContext:
        return self._set_range(self._max_width, "Max width", self._from(breakpoint), value, self._coerce_width)

    def max_width_to(self, breakpoint: BreakpointRef, value: int) -> ImageContext:
        return self._set_range(self._max_width, "Max width", self._to(breakpoint), value, self._coerce_width)

    def max_width_between(self, start: BreakpointRef, end: BreakpointRef, value: int) -> ImageContext:
        return self._set_range(self._max_width, "Max width", self._between(start, end), value, self._coerce_width)

    def get_max_width_by_breakpoint(self) -> dict[str, int]:
        return dict(self._max_width)

    def get_max_width_for_breakpoint(self, breakpoint: BreakpointRef) -> int | None:
        return self._max_width.get(self._key(breakpoint))

    # --------- crop position ---------
    def crop_position(self, value: Any) -> ImageContext:
        return self._set_all(self._crop_position, "Crop position", value, self._coerce_crop_position)

    def crop_position_for(self, breakpoint: BreakpointRef, value: CropPosition | str) -> ImageContext:
        return self._set_range(self._crop_position, "Crop position", self._only(breakpoint), value, self._coerce_crop_position)

    def crop_position_from(self, breakpoint: BreakpointRef, value: CropPosition | str) -> ImageContext:
        return self._set_range(self._crop_position, "Crop position", self._from(breakpoint), value, self._coerce_crop_position)

    def crop_position_to(self, breakpoint: BreakpointRef, value: CropPosition | str) -> ImageContext:
        return self._set_range(self._crop_position, "Crop position", self._to(breakpoint), value, self._coerce_crop_position)

    def crop_position_between(
        self, start: BreakpointRef, end: BreakpointRef, value: CropPosition | str
    ) -> ImageContext:
        return self._set_range(self._crop_position, "Crop position", self._between(start, end), value, self._coerce_crop_position)

    def get_crop_position_by_breakpoint(self) -> dict[str, CropPosition]:
        return dict(self._crop_position)

    def get_crop_position_for_breakpoint(self, breakpoint: BreakpointRef) -> CropPosition:
        return self._crop_position.get(self._key(breakpoint), self.defaults.crop_position)

    # --------- blur ---------
    def blur(self, value: Any) -> ImageContext:
        return self._set_all(self._blur, "Blur", value, self._coerce_blur)

    def blur_for(self, breakpoint: BreakpointRef, value: int) -> ImageContext:
        return self._set_range(self._blur, "Blur", self._only(breakpoint), value, self._coerce_blur)

    def blur_from(self, breakpoint: BreakpointRef, value: int) -> ImageContext:
        return self._set_range(self._blur, "Blur", self._from(breakpoint), value, self._coerce_blur)

    def blur_to(self, breakpoint: BreakpointRef, value: int) -> ImageContext:
        return self._set_range(self._blur, "Blur", self._to(breakpoint), value, self._coerce_blur)

    def blur_between(self, start: BreakpointRef, end: BreakpointRef, value: int) -> ImageContext:
        return self._set_range(self._blur, "Blur", self._between(start, end), value, self._coerce_blur)

    def get_blur_by_breakpoint(self) -> dict[str, int]:
        return dict(self._blur)

    def get_blur_for_breakpoint(self, breakpoint: BreakpointRef) -> int | None:
        return self._blur.get(self._key(breakpoint))

    # --------- greyscale ---------
    def greyscale(self, value: Any = True) -> ImageContext:
        return self._set_all(self._greyscale, "Greyscale", value, self._coerce_flag)

    def greyscale_for(self, breakpoint: BreakpointRef, value: bool = True) -> ImageContext:
        return self._set_range(self._greyscale, "Greyscale", self._only(breakpoint), value, self._coerce_flag)

    def greyscale_from(self, breakpoint: BreakpointRef, value: bool = True) -> ImageContext:
        return self._set_range(self._greyscale, "Greyscale", self._from(breakpoint), value, self._coerce_flag)

    def greyscale_to(self, breakpoint: BreakpointRef, value: bool = True) -> ImageContext:
        return self._set_range(self._greyscale, "Greyscale", self._to(breakpoint), value, self._coerce_flag)

    def greyscale_between(self, start: BreakpointRef, end: BreakpointRef, value: bool = True) -> ImageContext:
        return self._set_range(self._greyscale, "Greyscale", self._between(start, end), value, self._coerce_flag)

    def get_greyscale_by_breakpoint(self) -> dict[str, bool]:
        return dict(self._greyscale)

    def get_greyscale_for_breakpoint(self, breakpoint: BreakpointRef) -> bool | None:
        return self._greyscale.get(self._key(breakpoint))

    grayscale = greyscale
    grayscale_for = greyscale_for
    grayscale_from = greyscale_from
    grayscale_to = greyscale_to
    grayscale_between = greyscale_between
    get_grayscale_by_breakpoint = get_greyscale_by_breakpoint
    get_grayscale_for_breakpoint = get_greyscale_for_breakpoint

    # --------- sepia ---------
    def sepia(self, value: Any = True) -> ImageContext:
        return self._set_all(self._sepia, "Sepia", value, self._coerce_flag)

    def sepia_for(self, breakpoint: BreakpointRef, value: bool = True) -> ImageContext:
        return self._set_range(self._sepia, "Sepia", self._only(breakpoint), value, self._coerce_flag)

    def sepia_from(self, breakpoint: BreakpointRef, value: bool = True) -> ImageContext:
        return self._set_range(self._sepia, "Sepia", self._from(breakpoint), value, self._coerce_flag)

    def sepia_to(self, breakpoint: BreakpointRef, value: bool = True) -> ImageContext:
        return self._set_range(self._sepia, "Sepia", self._to(breakpoint), value, self._coerce_flag)

    def sepia_between(self, start: BreakpointRef, end: BreakpointRef, value: bool = True) -> ImageContext:
        return self._set_range(self._sepia, "Sepia", self._between(start, end), value, self._coerce_flag)

    def get_sepia_by_breakpoint(self) -> dict[str, bool]:
        return dict(self._sepia)

    def get_sepia_for_breakpoint(self, breakpoint: BreakpointRef) -> bool | None:
        return self._sepia.get(self._key(breakpoint))

    # --------- flags ---------
    def allows_multiple(self, value: bool = True) -> ImageContext:
        self._allows_multiple = self._coerce_flag(value, "Allows multiple", None)
        return self

    def get_allows_multiple(self) -> bool:
        return self._allows_multiple

    def generate_webp(self, value: bool | None = True) -> ImageContext:
        self._generate_webp = None if value is None else self._coerce_flag(value, "Generate WebP", None)
        return self

    def get_generate_webp(self) -> bool:
        if self._generate_webp is None:
            return self.defaults.generate_webp
        return self._generate_webp

    def generate_responsive_versions(self, value: bool | None = True) -> ImageContext:
        self._generate_responsive_versions = (
            None if value is None else self._coerce_flag(value, "Generate responsive versions", None)
        )
        return self

    def get_generate_responsive_versions(self) -> bool:
        if self._generate_responsive_versions is None:
            return self.defaults.generate_responsive_versions
        return self._generate_responsive_versions

    # --------- serialization ---------
    def to_dict(self) -> dict[str, Any]:
        if callable(self._label):
            label: str | None = getattr(self._label, "__qualname__", repr(self._label))
        else:
            label = self._label
        return {
            "key": self.key,
            "label": label,
            "aspectRatioByBreakpoint": {k: v.to_dict() for k, v in self._aspect_ratio.items()},
            "minWidthByBreakpoint": dict(self._min_width),
            "maxWidthByBreakpoint": dict(self._max_width),
            "cropPositionByBreakpoint": {k: v.value for k, v in self._crop_position.items()},
            "blurByBreakpoint": dict(self._blur),
            "greyscaleByBreakpoint": dict(self._greyscale),
            "sepiaByBreakpoint": dict(self._sepia),
            "allowsMultiple": self._allows_multiple,
            "generateWebP": self._generate_webp,
            "generateResponsiveVersions": self._generate_responsive_versions,
        }

    def get_configuration_hash(self) -> str:
        # Persisted and compared across processes: sorted keys + md5, never hash().
        payload = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.md5(payload.encode("utf-8")).hexdigest()

    def __repr__(self) -> str:
        return f"ImageContext(key={self.key!r})"

    # --------- helpers ---------
    def _key(self, breakpoint: BreakpointRef) -> str:
        return self.breakpoints.get(breakpoint).key

    def _only(self, breakpoint: BreakpointRef) -> list[Breakpoint]:
        return [self.breakpoints.get(breakpoint)]

    def _from(self, breakpoint: BreakpointRef) -> list[Breakpoint]:
        return self.breakpoints.sorted()[self.breakpoints.index(breakpoint):]

    def _to(self, breakpoint: BreakpointRef) -> list[Breakpoint]:
        return self.breakpoints.sorted()[: self.breakpoints.index(breakpoint) + 1]

    def _between(self, start: BreakpointRef, end: BreakpointRef) -> list[Breakpoint]:
        lo, hi = self.breakpoints.index(start), self.breakpoints.index(end)
        if lo > hi:
            lo, hi = hi, lo
        return self.breakpoints.sorted()[lo : hi + 1]

    def _set_all(
        self,
        target: dict[str, Any],
        name: str,
        value: Any,
        coerce: Callable[[Any, str, Breakpoint | None], Any],
    ) -> ImageContext:
        ordered = self.breakpoints.sorted()
        if isinstance(value, Mapping):
            for bp in ordered:
                if bp.key not in value:
                    raise ConfigurationError(
                        f"{name} for breakpoint '{bp.key}' is not defined for ImageContext with key '{self.key}'."
                    )
            resolved = {bp.key: coerce(value[bp.key], name, bp) for bp in ordered}
        else:
            resolved = {bp.key: coerce(value, name, bp) for bp in ordered}
        target.clear()
        target.update(resolved)
        return self

    def _set_range(
        self,
        target: dict[str, Any],
        name: str,
        breakpoints: list[Breakpoint],
        value: Any,
        coerce: Callable[[Any, str, Breakpoint | None], Any],
    ) -> ImageContext:
        resolved = {bp.key: coerce(value, name, bp) for bp in breakpoints}
        target.update(resolved)
        return self

    def _error(self, message: str, breakpoint: Breakpoint | None) -> ConfigurationError:
        where = f" for breakpoint '{breakpoint.key}'" if breakpoint is not None else ""
        return ConfigurationError(f"{message}{where} in ImageContext with key '{self.key}'.")

    def _coerce_aspect_ratio(self, value: Any, name: str, breakpoint: Breakpoint | None) -> AspectRatio:
        try:
            return AspectRatio.coerce(value)
        except ConfigurationError as exc:
            raise self._error(f"{name} is invalid ({exc})", breakpoint) from exc

    def _coerce_width(self, value: Any, name: str, breakpoint: Breakpoint | None) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise self._error(f"{name} must be a positive integer, got {value!r}", breakpoint)
        return value

    def _coerce_crop_position(self, value: Any, name: str, breakpoint: Breakpoint | None) -> CropPosition:
        try:
            return CropPosition(value)
        except ValueError as exc:
            raise self._error(f"{name} {value!r} is not a valid crop position", breakpoint) from exc

    def _coerce_blur(self, value: Any, name: str, breakpoint: Breakpoint | None) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
            raise self._error(f"{name} must be an integer between 0 and 100, got {value!r}", breakpoint)
        return value

    def _coerce_flag(self, value: Any, name: str, breakpoint: Breakpoint | None) -> bool:
        if not isinstance(value, bool):
            raise self._error(f"{name} must be a boolean, got {value!r}", breakpoint)
        return value
