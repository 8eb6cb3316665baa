from urllib.parse import parse_qs, urlparse

import pytest

from image_library.config import DiskSettings, ImageLibrarySettings, TemporaryUrlSettings
from image_library.infrastructure.queue.task_queue import SyncTaskQueue
from image_library.infrastructure.storage.disk_manager import DiskManager
from image_library.library import ImageLibrary


@pytest.fixture()
def attached(library, storage, make_image):
    library.register_image_context(library.context("hero").generate_responsive_versions(False))
    source = library.upload(make_image(320, 200), "photo.jpg")
    image = library.attach_image("post", "1", source, "hero")
    base = library.layout.derived_base(source, image)
    # responsive files are only listed, never decoded
    for width in (500, 300, 900):
        storage.put(f"{base}/md_w{width}.jpg", b"x")
        storage.put(f"{base}/md_w{width}.webp", b"x")
    storage.put(f"{base}/lg_w400.jpg", b"x")
    return source, image, base


def test_url_for_breakpoint(library, attached):
    source, image, base = attached
    assert library.url_for_breakpoint(image, "md") == f"/storage/{base}/md.jpg"
    assert library.url_for_breakpoint(image, "md", "webp") == f"/storage/{base}/md.webp"


def test_responsive_urls_sorted_widest_first(library, attached):
    _, image, base = attached
    variants = library.responsive_urls_for_breakpoint(image, "md")
    assert [v.width for v in variants] == [900, 500, 300]
    assert variants[0].url == f"/storage/{base}/md_w900.jpg"


def test_srcset(library, attached):
    _, image, base = attached
    assert library.srcset_for_breakpoint(image, "md", "webp") == (
        f"/storage/{base}/md_w900.webp 900w, /storage/{base}/md_w500.webp 500w, /storage/{base}/md_w300.webp 300w"
    )
    # no variants: plain breakpoint url
    assert library.srcset_for_breakpoint(image, "sm") == f"/storage/{base}/sm.jpg"


def test_picture_sources(library, attached):
    _, image, base = attached
    picture = library.picture_sources(image)
    assert picture.src == f"/storage/{base}/sm.jpg"
    assert [s.breakpoint for s in picture.sources][:2] == ["2xl", "2xl"]
    md = [s for s in picture.sources if s.breakpoint == "md"]
    assert [s.type for s in md] == ["image/webp", "image/jpeg"]
    assert md[0].media == "(min-width: 768px) and (max-width: 1023px)"


def test_temporary_urls(tmp_path, make_image):
    settings = ImageLibrarySettings.create(
        disks={"public": DiskSettings(root=str(tmp_path))},
        temporary_urls={"public": TemporaryUrlSettings(enabled=True, expiration_minutes=10)},
        url_signing_key="secret",
    )
    lib = ImageLibrary.create(settings=settings, disks=DiskManager.from_settings(settings), queue=SyncTaskQueue())
    source = lib.upload(make_image(64, 64), "photo.jpg")
    url = urlparse(lib.source_url(source))
    query = parse_qs(url.query)
    disk = lib.disks.disk("public")
    assert disk.verify(lib.layout.original_path(source), int(query["expires"][0]), query["signature"][0])
