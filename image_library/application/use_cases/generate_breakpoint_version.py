from __future__ import annotations

import logging
from dataclasses import dataclass

from image_library.application.registries import ImageContextRegistry
from image_library.application.use_cases.image_files import ImageFiles
from image_library.domain.entities.breakpoint import Breakpoint
from image_library.domain.services.derivation_service import DerivationService

logger = logging.getLogger(__name__)


@dataclass
class GenerateBreakpointVersionUseCase:
    files: ImageFiles
    contexts: ImageContextRegistry

    def execute(self, image_id: str, breakpoint: Breakpoint | str) -> list[str]:
        """
        Render the crop of a derived image for one breakpoint.

        Writes ``{slug}.{ext}`` and, when the context asks for it, ``{slug}.webp``.
        Returns the written paths.
        """
        image = self.files.image(image_id)
        source = self.files.source(image.source_image_id)
        context = self.contexts.get(image.context_key)
        bp = context.breakpoints.get(breakpoint)

        rendered = DerivationService.render_breakpoint(
            self.files.load_original(source), bp, image.crop_data.get(bp.key), context
        )

        disk = self.files.disk_for(source, image)
        layout = self.files.layout
        disk.make_directory(layout.derived_base(source, image))

        written = [layout.breakpoint_path(source, image, bp)]
        self.files.write(disk, written[0], rendered, source.extension)
        if context.get_generate_webp() and source.extension != "webp":
            written.append(layout.breakpoint_path(source, image, bp, "webp"))
            self.files.write(disk, written[1], rendered, "webp")

        logger.debug("Rendered %s for image %s (%dx%d)", bp.key, image.id, rendered.width, rendered.height)
        return written
