"""Settings for the image library.

Values default to the stock configuration and can be overridden from the
environment with ``ImageLibrarySettings.from_env()``.
"""
from __future__ import annotations

import os
import re
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from image_library.domain.entities.breakpoint import DEFAULT_BREAKPOINTS, Breakpoint, BreakpointRegistry
from image_library.domain.entities.crop_data import CropPosition
from image_library.domain.entities.image_context import ContextDefaults
from image_library.domain.exceptions import ConfigurationError

_SIZE_UNITS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
    "TB": 1024**4,
}


class BreakpointSettings(BaseModel):
    key: str = Field(..., description="Breakpoint key used in crop data and file names", examples=["md"])
    min_width: int = Field(..., description="Viewport width where the breakpoint starts", gt=0)
    label: str | None = Field(None, description="Human readable name")


class TemporaryUrlSettings(BaseModel):
    enabled: bool = Field(False, description="Serve signed, expiring URLs for this disk")
    expiration_minutes: int = Field(5, description="Lifetime of temporary URLs", gt=0)


class DiskSettings(BaseModel):
    driver: Literal["local", "supabase"] = "local"
    root: str = Field(".local_storage", description="Filesystem root for the local driver")
    url: str = Field("/storage", description="Public URL prefix for the local driver")
    bucket: str | None = Field(None, description="Bucket for the supabase driver")


class ImageLibrarySettings(BaseModel):
    base_path: str = "image-library"
    default_disk: str = "public"
    default_crop_position: CropPosition = CropPosition.CENTER
    generate_webp: bool = True
    generate_responsive_versions: bool = True
    responsive_width_difference_threshold: int = Field(100, ge=0)
    responsive_size_step_multiplier: float = Field(0.7, gt=0, lt=1)
    responsive_min_width: int = Field(100, ge=0)
    queue_connection: str = "sync"
    queue: str = "default"
    supported_mime_types: list[str] = Field(
        default_factory=lambda: [
            "image/jpeg",
            "image/png",
            "image/gif",
            "image/webp",
            "image/bmp",
            "image/tiff",
        ]
    )
    max_file_size: int | str | None = "10MB"
    jpeg_quality: int = Field(85, ge=1, le=100)
    webp_quality: int = Field(80, ge=1, le=100)
    url_signing_key: str = "change-me"
    disks: dict[str, DiskSettings] = Field(default_factory=lambda: {"public": DiskSettings()})
    temporary_urls: dict[str, TemporaryUrlSettings] = Field(
        default_factory=lambda: {"default": TemporaryUrlSettings()}
    )
    breakpoints: list[BreakpointSettings] = Field(
        default_factory=lambda: [
            BreakpointSettings(key=bp.key, min_width=bp.min_width, label=bp.label)
            for bp in DEFAULT_BREAKPOINTS
        ]
    )

    @field_validator("max_file_size")
    @classmethod
    def _check_max_file_size(cls, value: int | str | None) -> int | str | None:
        if value is not None:
            parse_file_size(value)
        return value

    @classmethod
    def create(cls, **values: Any) -> ImageLibrarySettings:
        try:
            return cls(**values)
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid image library settings: {exc}") from exc

    @classmethod
    def from_env(cls) -> ImageLibrarySettings:
        values: dict[str, Any] = {}
        env = {
            "base_path": "IMAGE_LIBRARY_BASE_PATH",
            "default_disk": "IMAGE_LIBRARY_DISK",
            "default_crop_position": "IMAGE_LIBRARY_CROP_POSITION",
            "generate_webp": "IMAGE_LIBRARY_GENERATE_WEBP",
            "generate_responsive_versions": "IMAGE_LIBRARY_GENERATE_RESPONSIVE_VERSIONS",
            "responsive_width_difference_threshold": "IMAGE_LIBRARY_WIDTH_DIFFERENCE_THRESHOLD",
            "responsive_size_step_multiplier": "IMAGE_LIBRARY_SIZE_STEP_MULTIPLIER",
            "responsive_min_width": "IMAGE_LIBRARY_RESPONSIVE_MIN_WIDTH",
            "queue_connection": "QUEUE_CONNECTION",
            "queue": "IMAGE_LIBRARY_QUEUE",
            "max_file_size": "IMAGE_LIBRARY_MAX_FILE_SIZE",
            "url_signing_key": "IMAGE_LIBRARY_URL_SIGNING_KEY",
        }
        for field_name, var in env.items():
            raw = os.getenv(var)
            if raw is not None and raw != "":
                values[field_name] = raw
        disk = values.get("default_disk", "public")
        driver = "supabase" if os.getenv("SUPABASE_DISABLED", "0") != "1" and os.getenv("SUPABASE_URL") else "local"
        values["disks"] = {
            disk: DiskSettings(
                driver=driver,
                root=os.getenv("IMAGE_LIBRARY_STORAGE_ROOT", ".local_storage"),
                url=os.getenv("IMAGE_LIBRARY_PUBLIC_URL", "/storage"),
                bucket=os.getenv("SUPABASE_STORAGE_BUCKET", "images"),
            )
        }
        if os.getenv("IMAGE_LIBRARY_TEMPORARY_URLS", "0") == "1":
            values["temporary_urls"] = {
                "default": TemporaryUrlSettings(
                    enabled=True,
                    expiration_minutes=int(os.getenv("IMAGE_LIBRARY_TEMPORARY_URL_MINUTES", "5")),
                )
            }
        return cls.create(**values)

    # --------- derived views ---------
    def breakpoint_registry(self) -> BreakpointRegistry:
        return BreakpointRegistry(Breakpoint(bp.key, bp.min_width, bp.label) for bp in self.breakpoints)

    def context_defaults(self) -> ContextDefaults:
        return ContextDefaults(
            crop_position=self.default_crop_position,
            generate_webp=self.generate_webp,
            generate_responsive_versions=self.generate_responsive_versions,
        )

    def max_file_size_bytes(self) -> int | None:
        if self.max_file_size is None:
            return None
        return parse_file_size(self.max_file_size)

    def should_use_temporary_urls(self, disk: str) -> bool:
        return self._temporary_url_settings(disk).enabled

    def temporary_url_expiration_minutes(self, disk: str) -> int:
        return self._temporary_url_settings(disk).expiration_minutes

    def _temporary_url_settings(self, disk: str) -> TemporaryUrlSettings:
        if disk in self.temporary_urls:
            return self.temporary_urls[disk]
        return self.temporary_urls.get("default", TemporaryUrlSettings())


def parse_file_size(value: int | str) -> int:
    """Bytes from an int or a string like ``"10MB"`` / ``"512 kb"``."""
    if isinstance(value, int):
        return value
    text = value.strip().upper()
    if text.isdigit():
        return int(text)
    match = re.fullmatch(r"(\d+)\s*([KMGT]?B)", text)
    if not match:
        raise ConfigurationError(f"Invalid max file size value '{value}'")
    return int(match.group(1)) * _SIZE_UNITS[match.group(2)]
