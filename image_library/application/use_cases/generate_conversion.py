from __future__ import annotations

import logging
from concurrent.futures import Future
from dataclasses import dataclass
from functools import partial
from pathlib import PurePosixPath
from typing import Any

from image_library.application.registries import ConversionRegistry
from image_library.application.use_cases.image_files import ImageFiles
from image_library.domain.entities.conversion_definition import ConversionDefinition
from image_library.domain.entities.crop_data import ConversionCrop, CropData
from image_library.domain.entities.source_image import SourceImage
from image_library.domain.services.derivation_service import DerivationService
from image_library.domain.services.processing_service import ProcessingService
from image_library.domain.services.responsive_widths import calculate_widths
from image_library.infrastructure.queue.task_queue import TaskQueue

logger = logging.getLogger(__name__)


@dataclass
class GenerateConversionUseCase:
    files: ImageFiles
    conversions: ConversionRegistry
    queue: TaskQueue

    def execute(
        self,
        source: SourceImage | str,
        name: str,
        crop_data: CropData | dict[str, Any] | None = None,
        force: bool = False,
    ) -> Future:
        """
        Render a named conversion of a source image.

        ``crop_data`` may carry ``rotate`` (clockwise, 0/90/180/270) and
        ``scale_x``/``scale_y`` (-1 mirrors) next to the crop box; an explicit crop
        always re-renders. Definitions flagged ``create_sync`` run inline and raise
        directly; the rest go through the queue. The returned future resolves to
        the written paths.
        """
        if isinstance(crop_data, dict):
            crop_data = ConversionCrop.from_dict(crop_data)
        definition = self.conversions.get(name)
        src = source if isinstance(source, SourceImage) else self.files.source(source)
        if definition.create_sync:
            future: Future = Future()
            future.set_result(self.render(src, definition, crop_data, force))
            return future
        return self.queue.enqueue(
            self.queue.task(
                f"generate-conversion:{src.id}:{definition.slug}",
                partial(self.render, src, definition, crop_data, force),
            )
        )

    def render(
        self,
        source: SourceImage,
        definition: ConversionDefinition,
        crop_data: CropData | None = None,
        force: bool = False,
    ) -> list[str]:
        settings = self.files.settings
        layout = self.files.layout
        disk = self.files.disk_for(source)
        path = layout.conversion_path(source, definition)
        if disk.exists(path):
            if not force and crop_data is None:
                logger.debug("Conversion %s of %s exists, skipping", definition.name, source.id)
                return []
            self._delete_existing(source, definition)

        rendered = DerivationService.render_conversion(self.files.load_original(source), definition, crop_data)
        disk.make_directory(layout.conversions_base(source))
        webp = settings.generate_webp and source.extension != "webp"

        written = [path]
        size = self.files.write(disk, path, rendered, source.extension)
        if webp:
            written.append(layout.conversion_path(source, definition, "webp"))
            self.files.write(disk, written[-1], rendered, "webp")

        if settings.generate_responsive_versions:
            widths = calculate_widths(
                rendered.width,
                rendered.height,
                size,
                min_width=settings.responsive_min_width,
                size_step_multiplier=settings.responsive_size_step_multiplier,
                width_difference_threshold=settings.responsive_width_difference_threshold,
            )
            for width in widths:
                variant = ProcessingService.fit_max(rendered, width)
                written.append(layout.conversion_responsive_path(source, definition, width))
                self.files.write(disk, written[-1], variant, source.extension)
                if webp:
                    written.append(layout.conversion_responsive_path(source, definition, width, "webp"))
                    self.files.write(disk, written[-1], variant, "webp")

        logger.info("Generated conversion %s of %s (%d file(s))", definition.name, source.id, len(written))
        return written

    def _delete_existing(self, source: SourceImage, definition: ConversionDefinition) -> None:
        disk = self.files.disk_for(source)
        for path in disk.files(self.files.layout.conversions_base(source)):
            stem = PurePosixPath(path).stem
            if stem == definition.slug or stem.startswith(f"{definition.slug}_w"):
                disk.delete(path)
