from __future__ import annotations

import hashlib
import hmac
import logging
import shutil
import time
from pathlib import Path
from urllib.parse import quote, urlencode

from image_library.domain.exceptions import StorageError

logger = logging.getLogger(__name__)


class LocalDiskStorage:
    """Blob store backed by a directory on the local filesystem.

    Paths are always relative and use forward slashes; they are resolved under
    ``root`` and may not escape it.
    """

    def __init__(self, root: str | Path, base_url: str = "/storage", signing_key: str = "change-me") -> None:
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")
        self.signing_key = signing_key.encode("utf-8")
        self.root.mkdir(parents=True, exist_ok=True)

    def _full_path(self, path: str) -> Path:
        full = (self.root / path.lstrip("/")).resolve()
        if full != self.root and self.root not in full.parents:
            raise StorageError(f"Path '{path}' escapes the storage root")
        return full

    def put(self, path: str, data: bytes) -> None:
        full = self._full_path(path)
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            full.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Storage write failed for '{path}': {exc}") from exc
        logger.debug("Wrote %s (%d bytes)", path, len(data))

    def get(self, path: str) -> bytes:
        try:
            return self._full_path(path).read_bytes()
        except OSError as exc:
            raise StorageError(f"Storage read failed for '{path}': {exc}") from exc

    def exists(self, path: str) -> bool:
        return self._full_path(path).is_file()

    def size(self, path: str) -> int:
        try:
            return self._full_path(path).stat().st_size
        except OSError as exc:
            raise StorageError(f"Storage stat failed for '{path}': {exc}") from exc

    def delete(self, path: str) -> None:
        full = self._full_path(path)
        try:
            if full.exists():
                full.unlink()
        except OSError as exc:
            raise StorageError(f"Storage delete failed for '{path}': {exc}") from exc

    def delete_tree(self, prefix: str) -> None:
        full = self._full_path(prefix)
        if full == self.root:
            raise StorageError("Refusing to delete the storage root")
        try:
            if full.is_dir():
                shutil.rmtree(full)
        except OSError as exc:
            raise StorageError(f"Storage delete failed for '{prefix}': {exc}") from exc
        logger.debug("Deleted tree %s", prefix)

    def make_directory(self, path: str) -> None:
        try:
            self._full_path(path).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Storage mkdir failed for '{path}': {exc}") from exc

    def files(self, directory: str) -> list[str]:
        """Files directly inside ``directory`` as relative paths, sorted."""
        full = self._full_path(directory)
        if not full.is_dir():
            return []
        prefix = directory.strip("/")
        return sorted(f"{prefix}/{p.name}" for p in full.iterdir() if p.is_file())

    def url(self, path: str) -> str:
        return f"{self.base_url}/{quote(path.lstrip('/'))}"

    def temporary_url(self, path: str, ttl_seconds: int) -> str:
        expires = int(time.time()) + int(ttl_seconds)
        signature = self.sign(path, expires)
        return f"{self.url(path)}?{urlencode({'expires': expires, 'signature': signature})}"

    def sign(self, path: str, expires: int) -> str:
        message = f"{path.lstrip('/')}:{expires}".encode("utf-8")
        return hmac.new(self.signing_key, message, hashlib.sha256).hexdigest()

    def verify(self, path: str, expires: int, signature: str) -> bool:
        if expires < time.time():
            return False
        return hmac.compare_digest(self.sign(path, expires), signature)
