"""
Unit tests for background removal and upscaling of stored design assets.
"""
import httpx
import pytest
from PIL import Image

from gunmerch.services.postprocess import ImagePostProcessor
from gunmerch.utils import imaging


@pytest.fixture
def matting(mocker):
    m = mocker.Mock()
    m.name = "remove.bg"
    m.is_configured = False
    return m


@pytest.fixture
def processor(designs, assets, settings, activity, matting):
    return ImagePostProcessor(designs, assets, settings, activity, matting)


@pytest.fixture
def design_with_image(designs, assets, sample_design_data, make_shape_image):
    design_id = designs.create_design(sample_design_data)
    ref = assets.save_image(design_id, make_shape_image())
    designs.attach_image(design_id, ref)
    return design_id


@pytest.mark.unit
class TestRemoveBackground:

    def test_local_matting_and_crop(self, processor, designs, assets, design_with_image):
        result = processor.remove_background(design_with_image)

        assert result.ok
        assert result.data["method"] == "local"
        img = assets.open_image(designs.get_design(design_with_image)["image"])
        assert img.mode == "RGBA"
        assert img.size == (101, 101)
        assert img.getpixel((0, 0))[3] == 0

    def test_remote_matting(self, processor, matting, designs, assets, design_with_image, png_bytes):
        matting.is_configured = True
        cutout = Image.new("RGBA", (120, 120), (0, 0, 0, 0))
        cutout.paste((255, 0, 0, 255), (40, 40, 80, 80))
        matting.matte.return_value = png_bytes(cutout)

        result = processor.remove_background(design_with_image)

        assert result.ok
        assert result.data["method"] == "remove.bg"
        assert result.data["size"] == [80, 80]

    def test_remote_failure_keeps_asset(self, processor, matting, designs, assets, design_with_image):
        matting.is_configured = True
        matting.matte.side_effect = httpx.ConnectError("down")
        before = assets.read_bytes(designs.get_design(design_with_image)["image"])

        result = processor.remove_background(design_with_image)

        assert result.code == "matting_failed"
        assert assets.read_bytes(designs.get_design(design_with_image)["image"]) == before

    def test_nothing_left_to_crop(self, processor, designs, assets, sample_design_data):
        design_id = designs.create_design(sample_design_data)
        designs.attach_image(design_id, assets.save_image(design_id, Image.new("RGB", (40, 40), (9, 9, 9))))

        assert processor.remove_background(design_id).code == "no_content"

    def test_requires_image(self, processor, designs, sample_design_data):
        design_id = designs.create_design(sample_design_data)

        assert processor.remove_background(design_id).code == "no_image"
        assert processor.remove_background(999).code == "design_not_found"


@pytest.mark.unit
class TestUpscale:

    def test_upscale_4x_regenerates_thumbnails(self, processor, designs, assets, design_with_image):
        thumb = assets.thumbnail_path(design_with_image, "large")
        thumb.unlink()

        result = processor.upscale(design_with_image)

        assert result.ok
        assert result.data["size"] == [800, 640]
        assert result.data["backend"] == "lanczos"
        assert assets.thumbnail_path(design_with_image, "large") is not None
        with Image.open(assets.thumbnail_path(design_with_image, "large")) as t:
            assert t.size == (800, 640)

    def test_basic_backend_setting(self, processor, settings, design_with_image):
        settings.update({"upscale_backend": "basic"})

        assert processor.upscale(design_with_image).data["backend"] == "basic"

    def test_memory_error_reported(self, processor, mocker, design_with_image):
        mocker.patch.object(imaging, "upscale", side_effect=MemoryError)

        assert processor.upscale(design_with_image).code == "too_large"
