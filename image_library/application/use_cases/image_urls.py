from __future__ import annotations

import mimetypes
from dataclasses import dataclass

from image_library.application.dtos.image_dto import PictureData, PictureSource, ResponsiveVariant
from image_library.application.registries import ImageContextRegistry
from image_library.application.use_cases.image_files import ImageFiles
from image_library.domain.entities.breakpoint import Breakpoint
from image_library.domain.entities.conversion_definition import ConversionDefinition
from image_library.domain.entities.derived_image import DerivedImage
from image_library.domain.entities.source_image import SourceImage


@dataclass
class ImageUrlService:
    """URLs for stored files. Reads records and file listings only, never pixels."""

    files: ImageFiles
    contexts: ImageContextRegistry

    def url_for_path(self, disk_name: str, path: str) -> str:
        settings = self.files.settings
        disk = self.files.disks.disk(disk_name)
        if settings.should_use_temporary_urls(disk_name):
            return disk.temporary_url(path, settings.temporary_url_expiration_minutes(disk_name) * 60)
        return disk.url(path)

    def source_url(self, source: SourceImage) -> str:
        return self.url_for_path(source.disk, self.files.layout.original_path(source))

    def conversion_url(self, source: SourceImage, definition: ConversionDefinition, extension: str | None = None) -> str:
        return self.url_for_path(source.disk, self.files.layout.conversion_path(source, definition, extension))

    def url_for_breakpoint(
        self, image: DerivedImage, breakpoint: Breakpoint | str, extension: str | None = None
    ) -> str:
        source = self.files.source(image.source_image_id)
        bp = self.contexts.get(image.context_key).breakpoints.get(breakpoint)
        return self.url_for_path(self._disk(image, source), self.files.layout.breakpoint_path(source, image, bp, extension))

    def responsive_urls_for_breakpoint(
        self, image: DerivedImage, breakpoint: Breakpoint | str, extension: str | None = None
    ) -> list[ResponsiveVariant]:
        """Generated ``_w{width}`` variants, widest first."""
        source = self.files.source(image.source_image_id)
        bp = self.contexts.get(image.context_key).breakpoints.get(breakpoint)
        layout = self.files.layout
        disk_name = self._disk(image, source)
        variants = []
        for path in self.files.disks.disk(disk_name).files(layout.derived_base(source, image)):
            width = layout.responsive_width(path, source, image, bp, extension)
            if width is not None:
                variants.append(ResponsiveVariant(url=self.url_for_path(disk_name, path), width=width))
        return sorted(variants, key=lambda v: v.width, reverse=True)

    def srcset_for_breakpoint(
        self, image: DerivedImage, breakpoint: Breakpoint | str, extension: str | None = None
    ) -> str:
        variants = self.responsive_urls_for_breakpoint(image, breakpoint, extension)
        if not variants:
            return self.url_for_breakpoint(image, breakpoint, extension)
        return ", ".join(f"{v.url} {v.width}w" for v in variants)

    def picture_sources(self, image: DerivedImage, locale: str = "en", fallback_locale: str | None = None) -> PictureData:
        """Per-breakpoint ``<source>`` entries, largest breakpoint first, WebP before the original format."""
        source = self.files.source(image.source_image_id)
        context = self.contexts.get(image.context_key)
        registry = context.breakpoints
        extensions = [source.extension]
        if context.get_generate_webp() and source.extension != "webp":
            extensions.insert(0, "webp")

        sources = []
        for bp in reversed(registry.sorted()):
            for ext in extensions:
                sources.append(
                    PictureSource(
                        breakpoint=bp.key,
                        media=registry.media_query(bp),
                        type=mimetypes.guess_type(f"file.{ext}")[0] or f"image/{ext}",
                        srcset=self.srcset_for_breakpoint(image, bp, ext),
                    )
                )
        return PictureData(
            image_id=image.id,
            src=self.url_for_breakpoint(image, registry.sorted()[0]),
            alt=image.get_alt_text(locale, fallback_locale) or source.get_alt_text(locale, fallback_locale),
            sources=sources,
        )

    @staticmethod
    def _disk(image: DerivedImage, source: SourceImage) -> str:
        return image.disk or source.disk
