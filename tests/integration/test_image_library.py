"""
End-to-end flow through the library facade: upload, attach, generate, serve.
"""
from __future__ import annotations

import pytest

from image_library.application.use_cases.regenerate_images import AssetState
from image_library.domain.services.processing_service import ProcessingService


@pytest.fixture()
def hero(library):
    ctx = (
        library.context("hero")
        .label("Hero banner")
        .aspect_ratio("16:9")
        .aspect_ratio_for("sm", "1:1")
        .max_width_for("sm", 300)
    )
    library.register_image_contexts([ctx])
    return ctx


def test_upload_attach_and_serve(library, storage, hero, image_bytes):
    source = library.upload(image_bytes, "landscape.jpg")
    assert (source.width, source.height) == (1200, 800)

    image = library.attach_image("article", "42", source, "hero", alt_text={"en": "Mountains"})
    assert library.state(image.id) is AssetState.READY
    base = f"image-library/{source.uuid}/{image.uuid}"

    sm = ProcessingService.load(storage.get(f"{base}/sm.jpg"))
    assert sm.size == (300, 300)
    assert storage.exists(f"{base}/sm.webp")

    md = ProcessingService.load(storage.get(f"{base}/md.jpg"))
    assert md.size == (1200, 675)

    variants = library.responsive_urls_for_breakpoint(image, "md")
    widths = [v.width for v in variants]
    assert widths and widths == sorted(set(widths), reverse=True)
    assert all(100 <= w < 1200 for w in widths)
    for width in widths:
        assert storage.exists(f"{base}/md_w{width}.jpg")
        assert storage.exists(f"{base}/md_w{width}.webp")
        variant = ProcessingService.load(storage.get(f"{base}/md_w{width}.jpg"))
        assert variant.width == width

    # 300px crop is too small for a width series above the threshold
    assert library.responsive_urls_for_breakpoint(image, "sm") == []

    picture = library.picture_sources(image, locale="en")
    assert picture.alt == "Mountains"
    assert picture.src == f"/storage/{base}/sm.jpg"
    md_webp = next(s for s in picture.sources if s.breakpoint == "md" and s.type == "image/webp")
    assert md_webp.srcset.startswith(f"/storage/{base}/md_w{widths[0]}.webp {widths[0]}w")


def test_configuration_change_regenerates_files(library, storage, hero, image_bytes):
    source = library.upload(image_bytes, "landscape.jpg")
    image = library.attach_image("article", "42", source, "hero")
    base = f"image-library/{source.uuid}/{image.uuid}"

    hero.aspect_ratio_from("md", "1:1").generate_responsive_versions(False)
    assert library.regenerate_all(only_changed=True) == 1

    assert ProcessingService.load(storage.get(f"{base}/lg.jpg")).size == (800, 800)
    assert not any("_w" in path for path in storage.files(base))


def test_removing_everything(library, storage, storage_root, hero, image_bytes):
    source = library.upload(image_bytes, "landscape.jpg")
    library.attach_image("article", "42", source, "hero")
    library.delete_source_image(source.id)

    assert library.images_for("article", "42") == []
    assert library.source_repo.get(source.id) is None
    assert not (storage_root / "image-library" / source.uuid).exists()
