from __future__ import annotations

import uuid as uuid_lib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from image_library.domain.entities.crop_data import CropData


@dataclass(frozen=True)
class DerivedImage:
    """A source image attached to an owning record under a named context.

    Owns the generated file tree ``{base}/{source_uuid}/{uuid}/``.
    """

    id: str
    owner_type: str
    owner_id: str
    source_image_id: str
    context_key: str
    created_at: datetime
    relation: str = "images"
    uuid: str = field(default_factory=lambda: str(uuid_lib.uuid4()))
    context_configuration_hash: str | None = None
    sort_order: int = 1
    disk: str | None = None  # falls back to the source image's disk
    crop_data: dict[str, CropData | None] = field(default_factory=dict)  # breakpoint key -> crop
    alt_text: dict[str, str | None] = field(default_factory=dict)
    custom_properties: dict[str, Any] = field(default_factory=dict)

    def get_alt_text(self, locale: str, fallback_locale: str | None = None) -> str | None:
        text = self.alt_text.get(locale)
        if text is None and fallback_locale is not None:
            text = self.alt_text.get(fallback_locale)
        return text
