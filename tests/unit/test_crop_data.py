import pytest

from image_library.domain.entities.crop_data import ConversionCrop, CropData, normalize_crop_data
from image_library.domain.exceptions import ValidationError


def test_from_dict_coerces_numbers():
    assert CropData.from_dict({"width": "100", "height": 80, "x": "5", "y": 7.0}) == CropData(100, 80, 5, 7)


@pytest.mark.parametrize("entry", [None, {}, "100x80", {"x": 3}])
def test_entries_without_size_mean_no_crop(entry):
    assert CropData.from_dict(entry) is None


@pytest.mark.parametrize(
    "entry",
    [
        {"width": 100},
        {"height": 80},
        {"width": 100, "height": 80, "x": "left"},
        {"width": 0, "height": 80},
    ],
)
def test_malformed_entries_are_rejected(entry):
    with pytest.raises(ValidationError):
        CropData.from_dict(entry)


def test_normalize_rejects_partial_breakpoint_entry():
    with pytest.raises(ValidationError):
        normalize_crop_data(["sm", "md"], {"md": {"width": 100}})


def test_conversion_crop_from_dict():
    crop = ConversionCrop.from_dict({"width": 60, "height": 40, "rotate": "90", "scale_x": -1})
    assert crop == ConversionCrop(60, 40, rotate=90, scale_x=-1, scale_y=1)
    assert crop.to_dict()["rotate"] == 90


@pytest.mark.parametrize("values", [{"rotate": 45}, {"scale_x": 2}, {"scale_y": 0}])
def test_conversion_crop_rejects_bad_orientation(values):
    with pytest.raises(ValidationError):
        ConversionCrop(60, 40, **values)
