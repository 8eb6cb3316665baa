"""Composition root and public entry point of the image library.

    library = ImageLibrary.create()
    library.register_image_context(
        library.context("hero").aspect_ratio("16:9").aspect_ratio_to("sm", "1:1")
    )
    source = library.upload(data, "photo.jpg")
    image = library.attach_image("post", "1", source, "hero")
    library.srcset_for_breakpoint(image, "md")
"""
from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Iterable

from supabase import Client

from image_library.application.dtos.image_dto import PictureData, ResponsiveVariant
from image_library.application.registries import ConversionRegistry, ImageContextRegistry
from image_library.application.use_cases.attach_image import AttachImageUseCase
from image_library.application.use_cases.delete_images import SourceImageCleanup
from image_library.application.use_cases.generate_breakpoint_version import GenerateBreakpointVersionUseCase
from image_library.application.use_cases.generate_conversion import GenerateConversionUseCase
from image_library.application.use_cases.generate_responsive_versions import GenerateResponsiveVersionsUseCase
from image_library.application.use_cases.image_files import ImageFiles
from image_library.application.use_cases.image_urls import ImageUrlService
from image_library.application.use_cases.regenerate_images import AssetState, RegenerationController
from image_library.application.use_cases.upload_source_image import UploadSourceImageUseCase
from image_library.config import ImageLibrarySettings
from image_library.domain.entities.breakpoint import Breakpoint
from image_library.domain.entities.conversion_definition import ConversionDefinition
from image_library.domain.entities.crop_data import CropData
from image_library.domain.entities.derived_image import DerivedImage
from image_library.domain.entities.image_context import ImageContext
from image_library.domain.entities.source_image import SourceImage
from image_library.domain.services.path_layout import PathLayout
from image_library.infrastructure.database.repositories.image_repository import ImageRepository
from image_library.infrastructure.database.repositories.source_image_repository import SourceImageRepository
from image_library.infrastructure.database.supabase_client import get_supabase_client
from image_library.infrastructure.queue.task_queue import TaskQueue, make_queue
from image_library.infrastructure.storage.disk_manager import DiskManager

logger = logging.getLogger(__name__)


class ImageLibrary:
    def __init__(
        self,
        settings: ImageLibrarySettings,
        disks: DiskManager,
        source_repo: SourceImageRepository,
        image_repo: ImageRepository,
        queue: TaskQueue,
    ) -> None:
        self.settings = settings
        self.breakpoints = settings.breakpoint_registry()
        self.layout = PathLayout(settings.base_path)
        self.disks = disks
        self.source_repo = source_repo
        self.image_repo = image_repo
        self.queue = queue
        self.contexts = ImageContextRegistry()
        self.conversions = ConversionRegistry()

        self.files = ImageFiles(settings, disks, self.layout, source_repo, image_repo)
        self.uploads = UploadSourceImageUseCase(self.files)
        self.attachments = AttachImageUseCase(self.files, self.contexts)
        self.urls = ImageUrlService(self.files, self.contexts)
        self.conversion_generator = GenerateConversionUseCase(self.files, self.conversions, queue)
        self.controller = RegenerationController(
            self.files,
            self.contexts,
            queue,
            GenerateBreakpointVersionUseCase(self.files, self.contexts),
            GenerateResponsiveVersionsUseCase(self.files, self.contexts),
        )
        image_repo.observe(self.controller)
        source_repo.observe(SourceImageCleanup(self.files))

    @classmethod
    def create(
        cls,
        settings: ImageLibrarySettings | None = None,
        disks: DiskManager | None = None,
        queue: TaskQueue | None = None,
        client: Client | None = None,
    ) -> ImageLibrary:
        settings = settings or ImageLibrarySettings.from_env()
        client = client if client is not None else get_supabase_client()
        return cls(
            settings,
            disks or DiskManager.from_settings(settings),
            SourceImageRepository(client),
            ImageRepository(client),
            queue or make_queue(settings.queue_connection, settings.queue),
        )

    # --------- contexts and conversions ---------
    def context(self, key: str) -> ImageContext:
        """A new, unregistered context bound to the configured breakpoints and defaults."""
        return ImageContext.make(key, self.breakpoints, self.settings.context_defaults())

    def register_image_contexts(self, contexts: Iterable[ImageContext]) -> None:
        self.contexts.register_many(contexts)

    def register_image_context(self, context: ImageContext) -> None:
        self.contexts.register(context)

    def remove_image_context(self, key: str) -> None:
        self.contexts.remove(key)

    def get_image_context(self, key: str) -> ImageContext:
        return self.contexts.get(key)

    def get_image_contexts(self) -> list[ImageContext]:
        return self.contexts.all()

    def add_conversion_definition(self, definition: ConversionDefinition | dict) -> None:
        if isinstance(definition, dict):
            definition = ConversionDefinition.from_dict(definition)
        self.conversions.add(definition)

    # --------- records ---------
    def upload(self, data: bytes, filename: str, **attributes: Any) -> SourceImage:
        """Store a source image and render every registered conversion of it."""
        source = self.uploads.execute(data, filename, **attributes)
        for definition in self.conversions.all():
            self.conversion_generator.execute(source, definition.name)
        return source

    def attach_image(
        self,
        owner_type: str,
        owner_id: str,
        source: SourceImage | str,
        context: ImageContext | str,
        **attributes: Any,
    ) -> DerivedImage:
        return self.attachments.execute(owner_type, owner_id, source, context, **attributes)

    def images_for(
        self, owner_type: str, owner_id: str, relation: str | None = None, context: str | None = None
    ) -> list[DerivedImage]:
        return self.image_repo.list_for_owner(owner_type, owner_id, relation=relation, context_key=context)

    def update_image(self, image_id: str, **changes: Any) -> DerivedImage:
        return self.image_repo.update(image_id, **changes)

    def delete_image(self, image_id: str) -> bool:
        return self.image_repo.delete(image_id)

    def delete_source_image(self, source_id: str) -> bool:
        return self.source_repo.delete(source_id)

    # --------- generation ---------
    def generate(self, image: DerivedImage | str) -> Future:
        if isinstance(image, str):
            image = self.files.image(image)
        return self.controller.generate(image)

    def regenerate(self, image_id: str, force: bool = False, delete_stale: bool = False) -> bool:
        return self.controller.regenerate(image_id, force=force, delete_stale=delete_stale)

    def regenerate_all(self, context_key: str | None = None, only_changed: bool = False) -> int:
        return self.controller.regenerate_all(context_key, only_changed)

    def state(self, image_id: str) -> AssetState:
        return self.controller.state(image_id)

    def generate_conversion(
        self,
        source: SourceImage | str,
        name: str,
        crop_data: CropData | dict[str, Any] | None = None,
        force: bool = False,
    ) -> Future:
        return self.conversion_generator.execute(source, name, crop_data, force)

    def generate_conversions(self, force: bool = False) -> int:
        """Render every registered conversion for every source image."""
        count = 0
        for source in self.source_repo.list():
            for definition in self.conversions.all():
                self.conversion_generator.execute(source, definition.name, force=force)
                count += 1
        return count

    # --------- urls ---------
    def source_url(self, source: SourceImage) -> str:
        return self.urls.source_url(source)

    def conversion_url(self, source: SourceImage, name: str, extension: str | None = None) -> str:
        return self.urls.conversion_url(source, self.conversions.get(name), extension)

    def url_for_breakpoint(
        self, image: DerivedImage, breakpoint: Breakpoint | str, extension: str | None = None
    ) -> str:
        return self.urls.url_for_breakpoint(image, breakpoint, extension)

    def responsive_urls_for_breakpoint(
        self, image: DerivedImage, breakpoint: Breakpoint | str, extension: str | None = None
    ) -> list[ResponsiveVariant]:
        return self.urls.responsive_urls_for_breakpoint(image, breakpoint, extension)

    def srcset_for_breakpoint(
        self, image: DerivedImage, breakpoint: Breakpoint | str, extension: str | None = None
    ) -> str:
        return self.urls.srcset_for_breakpoint(image, breakpoint, extension)

    def picture_sources(self, image: DerivedImage, locale: str = "en", fallback_locale: str | None = None) -> PictureData:
        return self.urls.picture_sources(image, locale, fallback_locale)

    def close(self) -> None:
        self.queue.close()
