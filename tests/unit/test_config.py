import pytest

from image_library.config import ImageLibrarySettings, TemporaryUrlSettings, parse_file_size
from image_library.domain.entities.crop_data import CropPosition
from image_library.domain.exceptions import ConfigurationError


def test_defaults():
    settings = ImageLibrarySettings.create()
    assert settings.base_path == "image-library"
    assert settings.default_disk == "public"
    assert settings.responsive_size_step_multiplier == 0.7
    assert settings.responsive_width_difference_threshold == 100
    assert settings.responsive_min_width == 100
    assert settings.max_file_size_bytes() == 10 * 1024 * 1024
    assert settings.breakpoint_registry().keys() == ["sm", "md", "lg", "xl", "2xl"]


@pytest.mark.parametrize(
    "value, expected",
    [(2048, 2048), ("512", 512), ("10MB", 10 * 1024**2), ("1 kb", 1024), ("2GB", 2 * 1024**3)],
)
def test_parse_file_size(value, expected):
    assert parse_file_size(value) == expected


def test_parse_file_size_rejects_unknown_unit():
    with pytest.raises(ConfigurationError):
        parse_file_size("10 parsecs")


@pytest.mark.parametrize(
    "values",
    [
        {"responsive_size_step_multiplier": 1.0},
        {"max_file_size": "lots"},
        {"default_crop_position": "middle"},
    ],
)
def test_invalid_settings_raise_configuration_error(values):
    with pytest.raises(ConfigurationError):
        ImageLibrarySettings.create(**values)


def test_temporary_urls_per_disk():
    settings = ImageLibrarySettings.create(
        temporary_urls={"s3": TemporaryUrlSettings(enabled=True, expiration_minutes=15)}
    )
    assert settings.should_use_temporary_urls("s3")
    assert settings.temporary_url_expiration_minutes("s3") == 15
    assert not settings.should_use_temporary_urls("public")
    assert settings.temporary_url_expiration_minutes("public") == 5


def test_from_env(monkeypatch):
    monkeypatch.setenv("IMAGE_LIBRARY_BASE_PATH", "media")
    monkeypatch.setenv("IMAGE_LIBRARY_CROP_POSITION", "top")
    monkeypatch.setenv("IMAGE_LIBRARY_GENERATE_WEBP", "false")
    monkeypatch.setenv("QUEUE_CONNECTION", "threads")
    monkeypatch.setenv("IMAGE_LIBRARY_TEMPORARY_URLS", "1")
    settings = ImageLibrarySettings.from_env()
    assert settings.base_path == "media"
    assert settings.default_crop_position is CropPosition.TOP
    assert settings.generate_webp is False
    assert settings.queue_connection == "threads"
    assert settings.should_use_temporary_urls("public")
    assert settings.disks["public"].driver == "local"
    assert settings.context_defaults().crop_position is CropPosition.TOP
