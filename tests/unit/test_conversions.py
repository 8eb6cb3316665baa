import pytest

from image_library.application.registries import ConversionRegistry
from image_library.domain.entities.conversion_definition import ConversionDefinition
from image_library.domain.entities.crop_data import CropData
from image_library.domain.entities.effects import Effects
from image_library.domain.exceptions import ConfigurationError, TaskFailure
from image_library.domain.services.processing_service import ProcessingService


class TestDefinition:
    def test_from_dict_and_back(self):
        definition = ConversionDefinition.from_dict(
            {"name": "Thumb Square", "aspect_ratio": "1:1", "default_width": 150, "effects": {"grayscale": True}}
        )
        assert definition.slug == "thumb-square"
        assert definition.effects == Effects(greyscale=True)
        assert definition.to_dict()["aspect_ratio"] == "1:1"
        assert definition.validate()

    @pytest.mark.parametrize(
        "values",
        [
            {"aspect_ratio": "1:1"},
            {"name": "x"},
            {"name": "x", "aspect_ratio": "1:1", "default_width": 0},
            {"name": "x", "aspect_ratio": "1:1", "effects": {"blur": 150}},
        ],
    )
    def test_invalid_definitions(self, values):
        definition = ConversionDefinition.from_dict(values)
        assert definition.validate() is False
        with pytest.raises(ConfigurationError):
            ConversionRegistry().add(definition)

    def test_unknown_name(self):
        with pytest.raises(ConfigurationError):
            ConversionRegistry().get("nope")


class TestGenerate:
    def test_upload_renders_registered_conversions(self, library, storage, make_image):
        library.add_conversion_definition(
            {"name": "thumb", "aspect_ratio": "1:1", "default_width": 120, "effects": {"sepia": True}}
        )
        source = library.upload(make_image(320, 200), "photo.jpg")

        base = library.layout.conversions_base(source)
        assert storage.exists(f"{base}/thumb.jpg")
        assert storage.exists(f"{base}/thumb.webp")
        assert ProcessingService.load(storage.get(f"{base}/thumb.jpg")).size == (120, 120)
        assert library.conversion_url(source, "thumb") == f"/storage/{base}/thumb.jpg"

    def test_existing_file_is_skipped_unless_forced(self, library, make_image):
        library.add_conversion_definition(ConversionDefinition(name="card", aspect_ratio="4:3", create_sync=True))
        source = library.upload(make_image(320, 200), "photo.jpg")

        assert library.generate_conversion(source, "card").result() == []
        written = library.generate_conversion(source, "card", force=True).result()
        assert written[0].endswith("conversions/card.jpg")

    def test_manual_crop(self, library, storage, make_image):
        library.add_conversion_definition(ConversionDefinition(name="detail", aspect_ratio="1:1", create_sync=True))
        source = library.upload(make_image(320, 200), "photo.jpg")
        library.generate_conversion(source, "detail", CropData(60, 40, 10, 10), force=True)
        data = storage.get(f"{library.layout.conversions_base(source)}/detail.jpg")
        assert ProcessingService.load(data).size == (60, 40)

    def test_explicit_crop_rerenders_with_orientation(self, library, storage, make_image):
        library.add_conversion_definition(ConversionDefinition(name="detail", aspect_ratio="1:1", create_sync=True))
        source = library.upload(make_image(320, 200), "photo.jpg")
        crop = {"width": 60, "height": 40, "x": 0, "y": 0, "rotate": 90, "scale_x": -1}

        written = library.generate_conversion(source, "detail", crop).result()
        assert written
        data = storage.get(f"{library.layout.conversions_base(source)}/detail.jpg")
        assert ProcessingService.load(data).size == (40, 60)

    def test_queued_failure_surfaces_as_task_failure(self, library, storage, make_image):
        library.add_conversion_definition(ConversionDefinition(name="thumb", aspect_ratio="1:1"))
        source = library.upload(make_image(64, 64), "photo.jpg")
        storage.delete(library.layout.original_path(source))
        with pytest.raises(TaskFailure):
            library.generate_conversion(source, "thumb", force=True).result()
