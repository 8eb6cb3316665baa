from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from image_library.domain.entities.crop_data import CropData, crop_data_to_dict
from image_library.domain.entities.derived_image import DerivedImage
from image_library.infrastructure.database.repositories.base_repository import Repository


class ImageRepository(Repository[DerivedImage]):
    """Derived images: a source image attached to an owner under a context."""

    table = "images"
    id_prefix = "img"

    def _to_row(self, entity: DerivedImage) -> dict[str, Any]:
        return {
            "id": entity.id,
            "uuid": entity.uuid,
            "owner_type": entity.owner_type,
            "owner_id": entity.owner_id,
            "relation": entity.relation,
            "source_image_id": entity.source_image_id,
            "context_key": entity.context_key,
            "context_configuration_hash": entity.context_configuration_hash,
            "sort_order": entity.sort_order,
            "disk": entity.disk,
            "crop_data": json.dumps(crop_data_to_dict(entity.crop_data)),
            "alt_text": json.dumps(entity.alt_text),
            "custom_properties": json.dumps(entity.custom_properties),
            "created_at": entity.created_at.isoformat(),
        }

    def _from_row(self, row: dict[str, Any]) -> DerivedImage:
        created_at = row["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        crop = row.get("crop_data") or {}
        if isinstance(crop, str):
            crop = json.loads(crop)
        alt_text = row.get("alt_text") or {}
        if isinstance(alt_text, str):
            alt_text = json.loads(alt_text)
        custom = row.get("custom_properties") or {}
        if isinstance(custom, str):
            custom = json.loads(custom)
        return DerivedImage(
            id=str(row["id"]),
            uuid=row["uuid"],
            owner_type=row["owner_type"],
            owner_id=str(row["owner_id"]),
            relation=row.get("relation") or "images",
            source_image_id=str(row["source_image_id"]),
            context_key=row["context_key"],
            context_configuration_hash=row.get("context_configuration_hash"),
            sort_order=row.get("sort_order", 1),
            disk=row.get("disk"),
            crop_data={key: CropData.from_dict(value) for key, value in crop.items()},
            alt_text=alt_text,
            custom_properties=custom,
            created_at=created_at,
        )

    def list_for_owner(
        self,
        owner_type: str,
        owner_id: str,
        relation: str | None = None,
        context_key: str | None = None,
    ) -> list[DerivedImage]:
        filters: dict[str, Any] = {"owner_type": owner_type, "owner_id": owner_id}
        if relation is not None:
            filters["relation"] = relation
        if context_key is not None:
            filters["context_key"] = context_key
        return sorted(self.list(**filters), key=lambda img: (img.sort_order, img.id))

    def list_by_source(self, source_image_id: str) -> list[DerivedImage]:
        return self.list(source_image_id=source_image_id)

    def next_sort_order(self, owner_type: str, owner_id: str, context_key: str) -> int:
        existing = self.list_for_owner(owner_type, owner_id, context_key=context_key)
        return max((img.sort_order for img in existing), default=0) + 1
