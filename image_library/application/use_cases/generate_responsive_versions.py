from __future__ import annotations

import logging
from dataclasses import dataclass

from image_library.application.registries import ImageContextRegistry
from image_library.application.use_cases.image_files import ImageFiles
from image_library.domain.entities.breakpoint import Breakpoint
from image_library.domain.services.processing_service import ProcessingService
from image_library.domain.services.responsive_widths import calculate_widths, resolve_min_width

logger = logging.getLogger(__name__)


@dataclass
class GenerateResponsiveVersionsUseCase:
    files: ImageFiles
    contexts: ImageContextRegistry

    def execute(self, image_id: str, breakpoint: Breakpoint | str) -> list[int]:
        """Write the ``_w{width}`` series for a rendered breakpoint file; returns the widths."""
        image = self.files.image(image_id)
        source = self.files.source(image.source_image_id)
        context = self.contexts.get(image.context_key)
        bp = context.breakpoints.get(breakpoint)
        if not context.get_generate_responsive_versions():
            return []

        settings = self.files.settings
        layout = self.files.layout
        disk = self.files.disk_for(source, image)

        data = disk.get(layout.breakpoint_path(source, image, bp))
        rendered = ProcessingService.load(data)
        widths = calculate_widths(
            rendered.width,
            rendered.height,
            len(data),
            min_width=resolve_min_width(context, bp, settings.responsive_min_width),
            size_step_multiplier=settings.responsive_size_step_multiplier,
            width_difference_threshold=settings.responsive_width_difference_threshold,
        )

        webp = context.get_generate_webp() and source.extension != "webp"
        for width in widths:
            variant = ProcessingService.fit_max(rendered, width)
            self.files.write(disk, layout.responsive_path(source, image, bp, width), variant, source.extension)
            if webp:
                self.files.write(disk, layout.responsive_path(source, image, bp, width, "webp"), variant, "webp")

        logger.debug("Responsive widths for image %s at %s: %s", image.id, bp.key, widths)
        return widths
