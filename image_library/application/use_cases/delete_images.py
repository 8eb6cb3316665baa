from __future__ import annotations

import logging
from dataclasses import dataclass

from image_library.application.use_cases.image_files import ImageFiles
from image_library.domain.entities.source_image import SourceImage

logger = logging.getLogger(__name__)


@dataclass
class SourceImageCleanup:
    """Source repository observer: deleting a source deletes its images and its whole tree."""

    files: ImageFiles

    def deleting(self, source: SourceImage) -> None:
        derived = self.files.image_repo.list_by_source(source.id)
        for image in derived:
            self.files.image_repo.delete(image.id)
        self.files.disk_for(source).delete_tree(self.files.layout.source_base(source))
        logger.info("Deleted source image %s and %d derived image(s)", source.id, len(derived))
