from __future__ import annotations

import math

from image_library.domain.entities.breakpoint import Breakpoint
from image_library.domain.entities.image_context import ImageContext
from image_library.domain.exceptions import ConfigurationError, ValidationError


def resolve_min_width(context: ImageContext, breakpoint: Breakpoint, global_min_width: int) -> int:
    """Smallest variant width worth generating for a breakpoint.

    Without a configured max width the breakpoint's own min width is the floor,
    otherwise the context's min width (or 0); both are capped by the global floor.
    """
    max_width = context.get_max_width_for_breakpoint(breakpoint)
    if max_width is None:
        floor = breakpoint.min_width
    else:
        floor = context.get_min_width_for_breakpoint(breakpoint) or 0
    return min(floor, global_min_width)


def calculate_widths(
    width: int,
    height: int,
    file_size: int,
    *,
    min_width: int,
    size_step_multiplier: float,
    width_difference_threshold: int,
) -> list[int]:
    """Descending widths whose predicted file sizes shrink by a constant factor.

    The byte cost of one pixel (``pixel_price``) is taken from the rendered
    breakpoint file; each step multiplies the predicted size by
    ``size_step_multiplier`` and solves for the width that would produce it at the
    file's aspect ratio. Widths closer than ``width_difference_threshold`` to the
    previous candidate are skipped.
    """
    if width <= 0 or height <= 0 or file_size <= 0:
        raise ValidationError(
            f"Cannot derive responsive widths from a {width}x{height} image of {file_size} bytes"
        )
    if not 0 < size_step_multiplier < 1:
        raise ConfigurationError("Size step multiplier must be between 0 and 1 (exclusive)")

    ratio = height / width
    pixel_price = file_size / (width * height)

    widths: list[int] = []
    predicted = float(file_size)
    previous = width
    min_width = max(min_width, 1)
    while True:
        predicted *= size_step_multiplier
        candidate = int(math.floor(math.sqrt((predicted / pixel_price) / ratio)))
        if candidate < min_width or candidate >= previous:
            break
        if previous - candidate < width_difference_threshold:
            previous = candidate
            continue
        widths.append(candidate)
        previous = candidate
    return list(dict.fromkeys(widths))
