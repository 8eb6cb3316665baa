from __future__ import annotations

import uuid as uuid_lib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class SourceImage:
    """The immutable original upload every derived image is cut from."""

    id: str
    disk: str
    name: str
    extension: str  # without the leading dot, lower case
    mime_type: str
    width: int
    height: int
    size: int  # bytes of the stored (optimized) original
    created_at: datetime
    uuid: str = field(default_factory=lambda: str(uuid_lib.uuid4()))
    alt_text: dict[str, str | None] = field(default_factory=dict)  # locale -> text
    custom_properties: dict[str, Any] = field(default_factory=dict)

    @property
    def name_with_extension(self) -> str:
        return f"{self.name}.{self.extension}"

    def get_alt_text(self, locale: str, fallback_locale: str | None = None) -> str | None:
        text = self.alt_text.get(locale)
        if text is None and fallback_locale is not None:
            text = self.alt_text.get(fallback_locale)
        return text
