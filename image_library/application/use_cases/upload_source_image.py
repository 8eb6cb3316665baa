from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import PurePath
from typing import Any

from image_library.application.use_cases.image_files import ImageFiles
from image_library.domain.entities.source_image import SourceImage
from image_library.domain.exceptions import StorageError, ValidationError
from image_library.domain.services.processing_service import ProcessingService

logger = logging.getLogger(__name__)


@dataclass
class UploadSourceImageUseCase:
    files: ImageFiles

    def execute(
        self,
        data: bytes,
        filename: str,
        *,
        mime_type: str | None = None,
        disk: str | None = None,
        alt_text: dict[str, str | None] | None = None,
        custom_properties: dict[str, Any] | None = None,
    ) -> SourceImage:
        """
        Store a new source image.

        The upload is validated and re-encoded before any record exists. The record
        and the ``original.{ext}`` file are written together: if either fails the
        record is rolled back, the partial files are removed and the error re-raised.
        """
        settings = self.files.settings
        mime_type = mime_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        self.validate(data, mime_type)

        extension = self._extension(filename, mime_type)
        optimized, img = ProcessingService.optimize(data, extension, self.files.quality(extension))
        if img.width <= 0 or img.height <= 0:
            raise ValidationError(f"Image '{filename}' has no pixels")

        disk_name = disk or settings.default_disk
        storage = self.files.disks.disk(disk_name)
        layout = self.files.layout
        repo = self.files.source_repo

        source: SourceImage | None = None
        try:
            with repo.transaction():
                source = repo.create(
                    SourceImage(
                        id="",
                        disk=disk_name,
                        name=PurePath(filename).stem,
                        extension=extension,
                        mime_type=mime_type,
                        width=img.width,
                        height=img.height,
                        size=len(optimized),
                        created_at=datetime.now(UTC),
                        alt_text=dict(alt_text or {}),
                        custom_properties=dict(custom_properties or {}),
                    )
                )
                storage.make_directory(layout.source_base(source))
                storage.put(layout.original_path(source), optimized)
        except Exception:
            if source is not None:
                try:
                    storage.delete_tree(layout.source_base(source))
                except StorageError:
                    logger.warning("Could not clean up files of failed upload %s", source.uuid)
            raise

        logger.info("Uploaded %s as source image %s (%dx%d)", filename, source.id, source.width, source.height)
        return source

    def validate(self, data: bytes, mime_type: str) -> None:
        settings = self.files.settings
        if mime_type not in settings.supported_mime_types:
            raise ValidationError(f"The file type {mime_type} is not supported")
        max_size = settings.max_file_size_bytes()
        if max_size is not None and len(data) > max_size:
            raise ValidationError(
                f"The file size {len(data)} is too large. The maximum file size is {max_size} bytes"
            )

    @staticmethod
    def _extension(filename: str, mime_type: str) -> str:
        suffix = PurePath(filename).suffix.lower().lstrip(".")
        if not suffix:
            guessed = mimetypes.guess_extension(mime_type) or ""
            suffix = guessed.lstrip(".")
        if not suffix:
            raise ValidationError(f"Cannot determine a file extension for '{filename}'")
        ProcessingService.format_for(suffix)
        return suffix
