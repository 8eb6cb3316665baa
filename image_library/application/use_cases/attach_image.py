from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from image_library.application.registries import ImageContextRegistry
from image_library.application.use_cases.image_files import ImageFiles
from image_library.domain.entities.derived_image import DerivedImage
from image_library.domain.entities.image_context import ImageContext
from image_library.domain.entities.source_image import SourceImage
from image_library.infrastructure.database.repositories.image_repository import ImageRepository

logger = logging.getLogger(__name__)


@dataclass
class AttachImageUseCase:
    files: ImageFiles
    contexts: ImageContextRegistry

    @property
    def image_repo(self) -> ImageRepository:
        return self.files.image_repo

    def execute(
        self,
        owner_type: str,
        owner_id: str,
        source: SourceImage | str,
        context: ImageContext | str,
        *,
        relation: str = "images",
        single: bool = False,
        crop_data: Any = None,
        disk: str | None = None,
        alt_text: dict[str, str | None] | None = None,
        custom_properties: dict[str, Any] | None = None,
    ) -> DerivedImage:
        """
        Attach a source image to an owning record under a context.

        A single relation holds at most one image, and a context that does not
        allow multiple images holds at most one per owner; whatever already
        occupies the slot is deleted first. Creating the record triggers generation.
        """
        ctx = self.contexts.get(context.key if isinstance(context, ImageContext) else context)
        src = source if isinstance(source, SourceImage) else self.files.source(source)

        with self.image_repo.transaction():
            replaced: dict[str, DerivedImage] = {}
            if single:
                for existing in self.image_repo.list_for_owner(owner_type, owner_id, relation=relation):
                    replaced[existing.id] = existing
            if not ctx.get_allows_multiple():
                for existing in self.image_repo.list_for_owner(owner_type, owner_id, context_key=ctx.key):
                    replaced[existing.id] = existing
            for existing in replaced.values():
                logger.info("Replacing image %s on %s:%s", existing.id, owner_type, owner_id)
                self.image_repo.delete(existing.id)

            return self.image_repo.create(
                DerivedImage(
                    id="",
                    owner_type=owner_type,
                    owner_id=str(owner_id),
                    relation=relation,
                    source_image_id=src.id,
                    context_key=ctx.key,
                    created_at=datetime.now(UTC),
                    sort_order=self.image_repo.next_sort_order(owner_type, str(owner_id), ctx.key),
                    disk=disk,
                    crop_data=crop_data,
                    alt_text=dict(alt_text or {}),
                    custom_properties=dict(custom_properties or {}),
                )
            )
