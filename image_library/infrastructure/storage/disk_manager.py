from __future__ import annotations

from typing import Protocol

from image_library.config import ImageLibrarySettings
from image_library.domain.exceptions import ConfigurationError
from image_library.infrastructure.database.supabase_client import get_supabase_client
from image_library.infrastructure.storage.local_storage import LocalDiskStorage
from image_library.infrastructure.storage.supabase_storage import SupabaseStorage


class BlobStorage(Protocol):
    def put(self, path: str, data: bytes) -> None: ...
    def get(self, path: str) -> bytes: ...
    def exists(self, path: str) -> bool: ...
    def size(self, path: str) -> int: ...
    def delete(self, path: str) -> None: ...
    def delete_tree(self, prefix: str) -> None: ...
    def make_directory(self, path: str) -> None: ...
    def files(self, directory: str) -> list[str]: ...
    def url(self, path: str) -> str: ...
    def temporary_url(self, path: str, ttl_seconds: int) -> str: ...


class DiskManager:
    """Named blob stores, e.g. ``public`` on local disk and ``s3`` on a bucket."""

    def __init__(self, disks: dict[str, BlobStorage]) -> None:
        self._disks = dict(disks)

    @classmethod
    def from_settings(cls, settings: ImageLibrarySettings) -> DiskManager:
        disks: dict[str, BlobStorage] = {}
        for name, cfg in settings.disks.items():
            if cfg.driver == "supabase":
                disks[name] = SupabaseStorage(get_supabase_client(), bucket=cfg.bucket)
            else:
                disks[name] = LocalDiskStorage(cfg.root, base_url=cfg.url, signing_key=settings.url_signing_key)
        return cls(disks)

    def disk(self, name: str) -> BlobStorage:
        try:
            return self._disks[name]
        except KeyError as exc:
            raise ConfigurationError(f"Disk '{name}' is not configured") from exc

    def add(self, name: str, storage: BlobStorage) -> None:
        self._disks[name] = storage

    def names(self) -> list[str]:
        return list(self._disks)
