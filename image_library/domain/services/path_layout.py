from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import quote

from image_library.domain.entities.breakpoint import Breakpoint
from image_library.domain.entities.conversion_definition import ConversionDefinition
from image_library.domain.entities.derived_image import DerivedImage
from image_library.domain.entities.source_image import SourceImage


@dataclass(frozen=True)
class PathLayout:
    """Relative storage paths for originals and everything derived from them.

    {base}/{source_uuid}/original.{ext}
    {base}/{source_uuid}/{derived_uuid}/{slug}.{ext}
    {base}/{source_uuid}/{derived_uuid}/{slug}_w{width}.{ext}
    {base}/{source_uuid}/conversions/{name}.{ext}
    """

    base_path: str = "image-library"

    def source_base(self, source: SourceImage) -> str:
        return f"{self.base_path.rstrip('/')}/{source.uuid}"

    def original_path(self, source: SourceImage) -> str:
        return f"{self.source_base(source)}/original.{source.extension}"

    def derived_base(self, source: SourceImage, image: DerivedImage) -> str:
        return f"{self.source_base(source)}/{image.uuid}"

    def breakpoint_path(
        self,
        source: SourceImage,
        image: DerivedImage,
        breakpoint: Breakpoint,
        extension: str | None = None,
    ) -> str:
        ext = extension or source.extension
        return f"{self.derived_base(source, image)}/{quote(breakpoint.slug)}.{ext}"

    def responsive_path(
        self,
        source: SourceImage,
        image: DerivedImage,
        breakpoint: Breakpoint,
        width: int,
        extension: str | None = None,
    ) -> str:
        ext = extension or source.extension
        return f"{self.derived_base(source, image)}/{quote(breakpoint.slug)}_w{width}.{ext}"

    def responsive_width(
        self,
        path: str,
        source: SourceImage,
        image: DerivedImage,
        breakpoint: Breakpoint,
        extension: str | None = None,
    ) -> int | None:
        """Width encoded in a responsive variant path, or None for any other file."""
        ext = extension or source.extension
        prefix = re.escape(f"{self.derived_base(source, image)}/{quote(breakpoint.slug)}_w")
        match = re.fullmatch(rf"{prefix}(\d+)\.{re.escape(ext)}", path)
        return int(match.group(1)) if match else None

    def conversions_base(self, source: SourceImage) -> str:
        return f"{self.source_base(source)}/conversions"

    def conversion_path(
        self,
        source: SourceImage,
        definition: ConversionDefinition,
        extension: str | None = None,
    ) -> str:
        ext = extension or source.extension
        return f"{self.conversions_base(source)}/{definition.slug}.{ext}"

    def conversion_responsive_path(
        self,
        source: SourceImage,
        definition: ConversionDefinition,
        width: int,
        extension: str | None = None,
    ) -> str:
        ext = extension or source.extension
        return f"{self.conversions_base(source)}/{definition.slug}_w{width}.{ext}"
