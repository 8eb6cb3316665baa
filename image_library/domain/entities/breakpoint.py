from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator

from image_library.domain.exceptions import ConfigurationError


@dataclass(frozen=True)
class Breakpoint:
    key: str
    min_width: int  # viewport width in css pixels
    label: str | None = None

    @property
    def slug(self) -> str:
        return re.sub(r"[^a-z0-9]+", "-", self.key.lower()).strip("-")

    def get_label(self) -> str:
        if self.label:
            return self.label
        return self.key.replace("_", " ").title()

    def __str__(self) -> str:
        return self.key


DEFAULT_BREAKPOINTS: tuple[Breakpoint, ...] = (
    Breakpoint("sm", 640, "Small"),
    Breakpoint("md", 768, "Medium"),
    Breakpoint("lg", 1024, "Large"),
    Breakpoint("xl", 1280, "Extra Large"),
    Breakpoint("2xl", 1536, "Extra Extra Large"),
)


class BreakpointRegistry:
    """Closed, validated set of breakpoints.

    The ascending order is always computed from ``min_width`` so that it can never
    drift from the configured values.
    """

    def __init__(self, breakpoints: Iterable[Breakpoint] = DEFAULT_BREAKPOINTS) -> None:
        items = tuple(breakpoints)
        if not items:
            raise ConfigurationError("At least one breakpoint must be configured")
        seen_keys: set[str] = set()
        seen_widths: set[int] = set()
        for bp in items:
            if isinstance(bp.min_width, bool) or not isinstance(bp.min_width, int) or bp.min_width <= 0:
                raise ConfigurationError(
                    f"Breakpoint '{bp.key}' must have a positive integer min width"
                )
            if bp.key in seen_keys:
                raise ConfigurationError(f"Breakpoint key '{bp.key}' is configured twice")
            if bp.min_width in seen_widths:
                raise ConfigurationError(
                    f"Breakpoint '{bp.key}' shares min width {bp.min_width} with another breakpoint"
                )
            seen_keys.add(bp.key)
            seen_widths.add(bp.min_width)
        self._breakpoints = items

    def sorted(self) -> list[Breakpoint]:
        return sorted(self._breakpoints, key=lambda bp: bp.min_width)

    def keys(self) -> list[str]:
        return [bp.key for bp in self.sorted()]

    def get(self, breakpoint: Breakpoint | str) -> Breakpoint:
        key = breakpoint.key if isinstance(breakpoint, Breakpoint) else breakpoint
        for bp in self._breakpoints:
            if bp.key == key:
                return bp
        raise ConfigurationError(f"Unknown breakpoint '{key}'")

    def index(self, breakpoint: Breakpoint | str) -> int:
        bp = self.get(breakpoint)
        return self.sorted().index(bp)

    def max_width(self, breakpoint: Breakpoint | str) -> int | None:
        ordered = self.sorted()
        i = self.index(breakpoint)
        if i + 1 >= len(ordered):
            return None
        return ordered[i + 1].min_width - 1

    def media_query(self, breakpoint: Breakpoint | str) -> str:
        """CSS media condition selecting this breakpoint's viewport range."""
        bp = self.get(breakpoint)
        upper = self.max_width(bp)
        if upper is None:
            return f"(min-width: {bp.min_width}px)"
        return f"(min-width: {bp.min_width}px) and (max-width: {upper}px)"

    def __iter__(self) -> Iterator[Breakpoint]:
        return iter(self.sorted())

    def __len__(self) -> int:
        return len(self._breakpoints)

    def __contains__(self, item: object) -> bool:
        key = item.key if isinstance(item, Breakpoint) else item
        return any(bp.key == key for bp in self._breakpoints)
