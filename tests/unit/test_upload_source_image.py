"""
Tests for validating and storing source images.
"""
from __future__ import annotations

import pytest

from image_library.config import ImageLibrarySettings
from image_library.domain.exceptions import StorageError, ValidationError
from image_library.infrastructure.storage.disk_manager import DiskManager
from image_library.library import ImageLibrary


class TestUpload:
    def test_stores_optimized_original(self, library, storage, make_image):
        source = library.upload(make_image(320, 200), "Holiday Photo.jpg", alt_text={"en": "Beach"})

        assert source.id == "src_1"
        assert (source.width, source.height) == (320, 200)
        assert source.extension == "jpg"
        assert source.mime_type == "image/jpeg"
        assert source.name == "Holiday Photo"
        path = f"image-library/{source.uuid}/original.jpg"
        assert storage.exists(path)
        assert storage.size(path) == source.size
        assert library.source_url(source) == f"/storage/{path}"
        assert source.get_alt_text("nl", "en") == "Beach"

    def test_png_keeps_extension(self, library, make_image):
        source = library.upload(make_image(64, 64, "PNG"), "logo.png")
        assert source.extension == "png"
        assert source.mime_type == "image/png"

    def test_unsupported_mime_type(self, library):
        with pytest.raises(ValidationError, match="not supported"):
            library.upload(b"%PDF-1.4", "doc.pdf")
        assert library.source_repo.list() == []

    def test_file_too_large(self, storage, make_image):
        settings = ImageLibrarySettings.create(max_file_size="1KB")
        lib = ImageLibrary.create(settings=settings, disks=DiskManager({"public": storage}))
        with pytest.raises(ValidationError, match="too large"):
            lib.upload(make_image(400, 400), "big.jpg")
        assert lib.source_repo.list() == []

    def test_undecodable_image(self, library):
        with pytest.raises(ValidationError):
            library.upload(b"\xff\xd8 garbage", "broken.jpg")
        assert library.source_repo.list() == []

    def test_write_failure_rolls_back_record_and_files(self, library, storage, storage_root, monkeypatch, make_image):
        def fail_put(path, data):
            raise StorageError("disk full")

        monkeypatch.setattr(storage, "put", fail_put)
        with pytest.raises(StorageError):
            library.upload(make_image(64, 64), "photo.jpg")

        assert library.source_repo.list() == []
        assert [p for p in storage_root.rglob("*") if p.is_file()] == []
