from __future__ import annotations

from PIL import Image

from image_library.domain.entities.breakpoint import Breakpoint
from image_library.domain.entities.conversion_definition import ConversionDefinition
from image_library.domain.entities.crop_data import ConversionCrop, CropData, CropPosition
from image_library.domain.entities.image_context import ImageContext
from image_library.domain.services.geometry import auto_crop_size
from image_library.domain.services.processing_service import ProcessingService


class DerivationService:
    """State-free crop/fit/effects pipeline. Same inputs always give the same pixels."""

    @staticmethod
    def render_breakpoint(
        source: Image.Image,
        breakpoint: Breakpoint,
        crop_data: CropData | None,
        context: ImageContext,
    ) -> Image.Image:
        ps = ProcessingService
        position = context.get_crop_position_for_breakpoint(breakpoint)
        max_width = context.get_max_width_for_breakpoint(breakpoint)

        if crop_data is not None and crop_data.has_offset:
            out = ps.manual_crop(source, crop_data.width, crop_data.height, crop_data.x, crop_data.y)
        elif crop_data is not None:
            out = ps.crop(source, crop_data.width, crop_data.height, position)
        else:
            width, height = auto_crop_size(
                source.width,
                source.height,
                context.get_aspect_ratio_for_breakpoint(breakpoint),
                max_width,
            )
            out = ps.crop(source, width, height, position)

        if max_width is not None:
            out = ps.fit_max(out, max_width)

        # fixed order: blur, then greyscale, then sepia
        blur = context.get_blur_for_breakpoint(breakpoint)
        if blur is not None:
            out = ps.blur(out, blur)
        if context.get_greyscale_for_breakpoint(breakpoint) is True:
            out = ps.greyscale(out)
        if context.get_sepia_for_breakpoint(breakpoint) is True:
            out = ps.sepia(out)
        return out

    @staticmethod
    def render_conversion(
        source: Image.Image,
        definition: ConversionDefinition,
        crop_data: CropData | None = None,
    ) -> Image.Image:
        ps = ProcessingService
        target_width = DerivationService.conversion_width(definition)
        if crop_data is not None and crop_data.has_offset:
            out = ps.manual_crop(source, crop_data.width, crop_data.height, crop_data.x, crop_data.y)
        elif crop_data is not None:
            out = ps.crop(source, crop_data.width, crop_data.height, CropPosition.CENTER)
        else:
            width, height = auto_crop_size(
                source.width, source.height, definition.aspect_ratio, target_width
            )
            out = ps.crop(source, width, height, CropPosition.CENTER)

        if isinstance(crop_data, ConversionCrop):
            out = ps.orient(out, crop_data.rotate, crop_data.scale_x, crop_data.scale_y)

        if target_width is not None:
            out = ps.fit_max(out, target_width)

        effects = definition.effects
        out = ps.blur(out, effects.blur)
        out = ps.pixelate(out, effects.pixelate)
        if effects.greyscale:
            out = ps.greyscale(out)
        if effects.sepia:
            out = ps.sepia(out)
        out = ps.sharpen(out, effects.sharpen)
        return out

    @staticmethod
    def conversion_width(definition: ConversionDefinition) -> int | None:
        """Target width of a conversion; a lone default height is turned into a width."""
        if definition.default_width is not None:
            return definition.default_width
        ratio = definition.aspect_ratio
        if definition.default_height is not None and ratio is not None:
            return max(1, round(definition.default_height * ratio.horizontal / ratio.vertical))
        return None
