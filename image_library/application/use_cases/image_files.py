from __future__ import annotations

import logging
from dataclasses import dataclass

from PIL import Image

from image_library.config import ImageLibrarySettings
from image_library.domain.entities.derived_image import DerivedImage
from image_library.domain.entities.source_image import SourceImage
from image_library.domain.exceptions import RecordNotFoundError
from image_library.domain.services.path_layout import PathLayout
from image_library.domain.services.processing_service import ProcessingService
from image_library.infrastructure.database.repositories.image_repository import ImageRepository
from image_library.infrastructure.database.repositories.source_image_repository import SourceImageRepository
from image_library.infrastructure.storage.disk_manager import BlobStorage, DiskManager

logger = logging.getLogger(__name__)


@dataclass
class ImageFiles:
    """Record lookups and encoded writes shared by the generation use cases."""

    settings: ImageLibrarySettings
    disks: DiskManager
    layout: PathLayout
    source_repo: SourceImageRepository
    image_repo: ImageRepository

    def image(self, image_id: str) -> DerivedImage:
        image = self.image_repo.get(image_id)
        if image is None:
            raise RecordNotFoundError(f"Image '{image_id}' not found")
        return image

    def source(self, source_id: str) -> SourceImage:
        source = self.source_repo.get(source_id)
        if source is None:
            raise RecordNotFoundError(f"Source image '{source_id}' not found")
        return source

    def disk_for(self, source: SourceImage, image: DerivedImage | None = None) -> BlobStorage:
        name = (image.disk if image is not None else None) or source.disk
        return self.disks.disk(name)

    def load_original(self, source: SourceImage) -> Image.Image:
        data = self.disk_for(source).get(self.layout.original_path(source))
        return ProcessingService.load(data)

    def quality(self, extension: str) -> int:
        if extension.lower() == "webp":
            return self.settings.webp_quality
        return self.settings.jpeg_quality

    def write(self, disk: BlobStorage, path: str, img: Image.Image, extension: str) -> int:
        data = ProcessingService.encode(img, extension, self.quality(extension))
        disk.put(path, data)
        return len(data)
