from __future__ import annotations

import logging
import os
from pathlib import Path

from supabase import Client

from image_library.domain.exceptions import StorageError
from image_library.infrastructure.storage.local_storage import LocalDiskStorage

logger = logging.getLogger(__name__)


class SupabaseStorage:
    """Blob store adapter for a Supabase Storage bucket with a local fake fallback.

    When ``SUPABASE_DISABLED=1`` or no client is configured every call is served
    from ``SUPABASE_STORAGE_LOCAL_DIR`` instead.
    """

    list_page_size = 100

    def __init__(self, client: Client | None, bucket: str | None = None) -> None:
        self.client = client
        self.bucket = bucket or os.getenv("SUPABASE_STORAGE_BUCKET", "images")
        self.disabled = os.getenv("SUPABASE_DISABLED", "0") == "1" or client is None
        self.local: LocalDiskStorage | None = None
        if self.disabled:
            self.local = LocalDiskStorage(
                Path(os.getenv("SUPABASE_STORAGE_LOCAL_DIR", ".local_storage")) / self.bucket,
                base_url=f"/storage/{self.bucket}",
            )

    def _bucket(self):
        return self.client.storage.from_(self.bucket)  # type: ignore[union-attr]

    def put(self, path: str, data: bytes) -> None:
        if self.local is not None:
            self.local.put(path, data)
            return
        try:  # pragma: no cover - network
            self._bucket().upload(path=path, file=data, file_options={"upsert": "true"})
        except Exception as exc:  # pragma: no cover
            raise StorageError(f"Storage upload failed: {exc}") from exc

    def get(self, path: str) -> bytes:
        if self.local is not None:
            return self.local.get(path)
        try:  # pragma: no cover - network
            return self._bucket().download(path)
        except Exception as exc:  # pragma: no cover
            raise StorageError(f"Storage download failed: {exc}") from exc

    def exists(self, path: str) -> bool:
        if self.local is not None:
            return self.local.exists(path)
        directory, _, name = path.rpartition("/")  # pragma: no cover - network
        return any(entry.get("name") == name for entry in self._list(directory))  # pragma: no cover

    def size(self, path: str) -> int:
        if self.local is not None:
            return self.local.size(path)
        return len(self.get(path))  # pragma: no cover - network

    def delete(self, path: str) -> None:
        if self.local is not None:
            self.local.delete(path)
            return
        try:  # pragma: no cover - network
            self._bucket().remove([path])
        except Exception as exc:  # pragma: no cover
            raise StorageError(f"Storage delete failed: {exc}") from exc

    def delete_tree(self, prefix: str) -> None:
        if self.local is not None:
            self.local.delete_tree(prefix)
            return
        paths = self._walk(prefix.strip("/"))
        if paths:
            try:
                self._bucket().remove(paths)
            except Exception as exc:  # pragma: no cover - network
                raise StorageError(f"Storage delete failed: {exc}") from exc

    def make_directory(self, path: str) -> None:
        # buckets have no real directories
        if self.local is not None:
            self.local.make_directory(path)

    def files(self, directory: str) -> list[str]:
        if self.local is not None:
            return self.local.files(directory)
        prefix = directory.strip("/")
        return sorted(
            f"{prefix}/{entry['name']}" for entry in self._list(prefix) if entry.get("id") is not None
        )

    def url(self, path: str) -> str:
        if self.local is not None:
            return self.local.url(path)
        return self._bucket().get_public_url(path)  # pragma: no cover - network

    def temporary_url(self, path: str, ttl_seconds: int) -> str:
        if self.local is not None:
            return self.local.temporary_url(path, ttl_seconds)
        try:  # pragma: no cover - network
            res = self._bucket().create_signed_url(path, ttl_seconds)
        except Exception as exc:  # pragma: no cover
            raise StorageError(f"Storage signed url failed: {exc}") from exc
        return res.get("signedURL") or res.get("signedUrl")  # pragma: no cover

    # --------- helpers ---------
    def _list(self, directory: str) -> list[dict]:
        """Every entry of a directory; the bucket API returns at most one page per call."""
        entries: list[dict] = []
        offset = 0
        while True:
            try:
                page = self._bucket().list(
                    directory,
                    {"limit": self.list_page_size, "offset": offset, "sortBy": {"column": "name", "order": "asc"}},
                ) or []
            except Exception as exc:
                raise StorageError(f"Storage list failed: {exc}") from exc
            entries.extend(page)
            if len(page) < self.list_page_size:
                return entries
            offset += len(page)

    def _walk(self, prefix: str) -> list[str]:
        paths: list[str] = []
        for entry in self._list(prefix):
            child = f"{prefix}/{entry['name']}"
            if entry.get("id") is None:
                paths.extend(self._walk(child))
            else:
                paths.append(child)
        return paths
