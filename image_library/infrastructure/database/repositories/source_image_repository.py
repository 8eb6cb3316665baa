from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from image_library.domain.entities.source_image import SourceImage
from image_library.infrastructure.database.repositories.base_repository import Repository


class SourceImageRepository(Repository[SourceImage]):
    table = "source_images"
    id_prefix = "src"

    def _to_row(self, entity: SourceImage) -> dict[str, Any]:
        return {
            "id": entity.id,
            "uuid": entity.uuid,
            "disk": entity.disk,
            "name": entity.name,
            "extension": entity.extension,
            "mime_type": entity.mime_type,
            "width": entity.width,
            "height": entity.height,
            "size": entity.size,
            "alt_text": json.dumps(entity.alt_text),
            "custom_properties": json.dumps(entity.custom_properties),
            "created_at": entity.created_at.isoformat(),
        }

    def _from_row(self, row: dict[str, Any]) -> SourceImage:
        # Supabase returns ISO strings for timestamps and may hand JSON columns back as text
        created_at = row["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        alt_text = row.get("alt_text") or {}
        if isinstance(alt_text, str):
            alt_text = json.loads(alt_text)
        custom = row.get("custom_properties") or {}
        if isinstance(custom, str):
            custom = json.loads(custom)
        return SourceImage(
            id=str(row["id"]),
            uuid=row["uuid"],
            disk=row["disk"],
            name=row["name"],
            extension=row["extension"],
            mime_type=row["mime_type"],
            width=row["width"],
            height=row["height"],
            size=row["size"],
            created_at=created_at,
            alt_text=alt_text,
            custom_properties=custom,
        )
