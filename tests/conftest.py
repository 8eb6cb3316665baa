import os
import sys
from io import BytesIO
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Ensure project root is on sys.path so 'image_library' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")

from image_library.config import DiskSettings, ImageLibrarySettings  # noqa: E402
from image_library.infrastructure.queue.task_queue import SyncTaskQueue  # noqa: E402
from image_library.infrastructure.storage.disk_manager import DiskManager  # noqa: E402
from image_library.infrastructure.storage.local_storage import LocalDiskStorage  # noqa: E402
from image_library.library import ImageLibrary  # noqa: E402


def make_image_bytes(width: int = 1200, height: int = 800, fmt: str = "JPEG") -> bytes:
    """Smooth colour gradient with a few hard edges, encoded as ``fmt``."""
    xs = np.linspace(0, 255, width, dtype=np.float32)
    ys = np.linspace(0, 255, height, dtype=np.float32)
    r = np.tile(xs, (height, 1))
    g = np.tile(ys[:, None], (1, width))
    b = np.full((height, width), 128, dtype=np.float32)
    b[height // 4 : height // 2, width // 4 : width // 2] = 255
    arr = np.stack([r, g, b], axis=-1).astype(np.uint8)
    buf = BytesIO()
    Image.fromarray(arr).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture()
def image_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture()
def storage_root(tmp_path) -> Path:
    return tmp_path / "storage"


@pytest.fixture()
def settings(storage_root) -> ImageLibrarySettings:
    return ImageLibrarySettings.create(
        disks={"public": DiskSettings(root=str(storage_root), url="/storage")},
        url_signing_key="test-key",
    )


@pytest.fixture()
def storage(storage_root) -> LocalDiskStorage:
    return LocalDiskStorage(storage_root, base_url="/storage", signing_key="test-key")


@pytest.fixture()
def library(settings, storage) -> ImageLibrary:
    lib = ImageLibrary.create(
        settings=settings,
        disks=DiskManager({"public": storage}),
        queue=SyncTaskQueue(),
    )
    yield lib
    lib.close()


@pytest.fixture()
def make_image():
    return make_image_bytes
