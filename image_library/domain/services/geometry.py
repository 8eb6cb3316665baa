from __future__ import annotations

from image_library.domain.entities.aspect_ratio import AspectRatio
from image_library.domain.entities.crop_data import CropPosition


def anchor_offset(
    src_w: int, src_h: int, width: int, height: int, position: CropPosition
) -> tuple[int, int]:
    """Top-left corner of a ``width`` x ``height`` box anchored inside the source."""
    spare_w = max(src_w - width, 0)
    spare_h = max(src_h - height, 0)
    pos = position.value
    if pos.endswith("left"):
        x = 0
    elif pos.endswith("right"):
        x = spare_w
    else:
        x = spare_w // 2
    if pos.startswith("top"):
        y = 0
    elif pos.startswith("bottom"):
        y = spare_h
    else:
        y = spare_h // 2
    return x, y


def auto_crop_size(
    src_w: int,
    src_h: int,
    aspect_ratio: AspectRatio | None,
    max_width: int | None,
) -> tuple[int, int]:
    """Largest box with the requested proportions inside the bounds.

    Bounds are the source height and the lesser of the source width and the
    configured max width. Full height is kept whenever the width derived from it fits.
    """
    if aspect_ratio is None:
        # nothing to crop; the later fit step applies the max width
        return src_w, src_h
    bound_w = min(max_width if max_width is not None else src_w, src_w)
    bound_h = src_h
    possible_w = bound_h * aspect_ratio.horizontal / aspect_ratio.vertical
    possible_h = bound_w * aspect_ratio.vertical / aspect_ratio.horizontal
    if possible_w <= bound_w:
        width, height = round(possible_w), bound_h
    else:
        width, height = bound_w, round(possible_h)
    return max(width, 1), max(height, 1)


def bounded_box(src_w: int, src_h: int, width: int, height: int, x: int, y: int) -> tuple[int, int, int, int]:
    """Clamp an explicit crop rectangle to the source extents, keeping its size when possible."""
    width = min(width, src_w)
    height = min(height, src_h)
    x = min(max(x, 0), src_w - width)
    y = min(max(y, 0), src_h - height)
    return x, y, x + width, y + height


def fit_width(src_w: int, src_h: int, max_width: int) -> tuple[int, int]:
    """Scale down (never up) to ``max_width`` preserving the aspect ratio."""
    if src_w <= max_width:
        return src_w, src_h
    return max_width, max(1, round(src_h * max_width / src_w))
