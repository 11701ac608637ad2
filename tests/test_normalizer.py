"""
Image normalizer: dimension cap, size budget, quality floor, decode failures.
"""

import time
from io import BytesIO
from unittest.mock import patch

import pytest
from PIL import Image

from creator import normalizer
from creator.errors import ImageDecodeError
from creator.normalizer import make_thumbnail, normalize_image, normalize_image_async, scaled_size
from creator.utils import data_uri_to_bytes


def _decoded_size(data_uri: str):
    with Image.open(BytesIO(data_uri_to_bytes(data_uri))) as img:
        return img.format, img.size


@pytest.mark.unit
@pytest.mark.normalizer
class TestScaledSize:

    def test_small_image_unchanged(self):
        assert scaled_size(800, 600, 1200) == (800, 600)

    def test_exact_cap_unchanged(self):
        assert scaled_size(1200, 1200, 1200) == (1200, 1200)

    def test_landscape_scaled_to_cap(self):
        assert scaled_size(3000, 2000, 1200) == (1200, 800)

    def test_portrait_scaled_to_cap(self):
        assert scaled_size(1000, 2500, 1200) == (480, 1200)

    def test_shorter_side_is_rounded(self):
        # 1001 * 1200 / 1999 = 600.9
        assert scaled_size(1999, 1001, 1200) == (1200, 601)

    def test_extreme_ratio_keeps_one_pixel(self):
        assert scaled_size(10000, 2, 1200) == (1200, 1)


@pytest.mark.unit
@pytest.mark.normalizer
class TestNormalizeImage:

    def test_returns_jpeg_data_uri(self, image_factory):
        data_uri = normalize_image(image_factory(640, 480))
        assert data_uri.startswith("data:image/jpeg;base64,")
        fmt, size = _decoded_size(data_uri)
        assert fmt == "JPEG"
        assert size == (640, 480)

    @pytest.mark.parametrize("width,height", [(3000, 2000), (900, 2700), (1999, 1001), (2400, 2400)])
    def test_longer_side_capped_and_ratio_kept(self, image_factory, width, height):
        _, (w, h) = _decoded_size(normalize_image(image_factory(width, height)))
        assert max(w, h) == 1200
        if width >= height:
            assert abs(h - height * 1200 / width) <= 1
        else:
            assert abs(w - width * 1200 / height) <= 1

    def test_smooth_image_fits_budget_at_start_quality(self, image_factory):
        with patch.object(normalizer, "_encode_jpeg", wraps=normalizer._encode_jpeg) as spy:
            data_uri = normalize_image(image_factory(3000, 2000))
        assert len(data_uri) <= 300 * 1024
        assert spy.call_count == 1
        assert spy.call_args[0][1] == 85

    def test_quality_steps_down_to_floor(self, image_factory):
        raw = image_factory(800, 600, noise=True)
        with patch.object(normalizer, "_encode_jpeg", wraps=normalizer._encode_jpeg) as spy:
            data_uri = normalize_image(raw, target_bytes=1000)

        qualities = [c[0][1] for c in spy.call_args_list]
        assert qualities == [85, 75, 65, 55, 45, 35, 25, 15]
        # best effort: still returns an image above budget
        assert len(data_uri) > 1000
        assert _decoded_size(data_uri)[1] == (800, 600)

    def test_budget_or_floor(self, image_factory):
        raw = image_factory(1600, 1200, noise=True)
        with patch.object(normalizer, "_encode_jpeg", wraps=normalizer._encode_jpeg) as spy:
            data_uri = normalize_image(raw, target_bytes=200 * 1024)
        final_quality = spy.call_args[0][1]
        assert len(data_uri) <= 200 * 1024 or final_quality == 15

    def test_transparent_png_is_flattened(self, image_factory):
        data_uri = normalize_image(image_factory(300, 200, mode="RGBA"))
        with Image.open(BytesIO(data_uri_to_bytes(data_uri))) as img:
            assert img.mode == "RGB"
            assert img.size == (300, 200)

    def test_same_input_same_output(self, image_factory):
        raw = image_factory(1500, 1000)
        assert normalize_image(raw) == normalize_image(raw)

    @pytest.mark.parametrize("raw", [b"", b"definitely not an image", b"\x89PNG\r\n\x1a\n" + b"\x00" * 20])
    def test_unreadable_bytes_raise_decode_error(self, raw):
        with pytest.raises(ImageDecodeError):
            normalize_image(raw)


@pytest.mark.unit
@pytest.mark.normalizer
class TestNormalizeImageAsync:

    @pytest.mark.asyncio
    async def test_runs_normalization(self, image_factory):
        data_uri = await normalize_image_async(image_factory(2000, 1000), timeout=10)
        assert _decoded_size(data_uri)[1] == (1200, 600)

    @pytest.mark.asyncio
    async def test_decode_failure_propagates(self):
        with pytest.raises(ImageDecodeError):
            await normalize_image_async(b"garbage", timeout=10)

    @pytest.mark.asyncio
    async def test_stalled_decode_becomes_decode_error(self):
        def stalled(raw, **kwargs):
            time.sleep(0.5)
            return "data:image/jpeg;base64,"

        with patch.object(normalizer, "normalize_image", side_effect=stalled):
            with pytest.raises(ImageDecodeError, match="longer than"):
                await normalize_image_async(b"anything", timeout=0.05)


@pytest.mark.unit
@pytest.mark.normalizer
class TestMakeThumbnail:

    def test_fits_thumbnail_box(self, image_factory):
        thumb = make_thumbnail(image_factory(1600, 900), size=256)
        with Image.open(BytesIO(thumb)) as img:
            assert img.format == "JPEG"
            assert img.size == (256, 144)

    def test_unreadable_bytes_raise_decode_error(self):
        with pytest.raises(ImageDecodeError):
            make_thumbnail(b"nope")
