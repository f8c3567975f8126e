import numpy as np
import pytest
from PIL import Image

from imgrecipe.core.raster import RasterBuffer

pytestmark = pytest.mark.unit


class TestRasterBuffer:

    def test_blank(self):
        buf = RasterBuffer.blank(4, 2, (255, 0, 0, 255))
        assert buf.size == (4, 2)
        assert buf.pixels.shape == (2, 4, 4)
        assert (buf.pixels[..., 0] == 255).all()

    def test_gray_input_expanded(self):
        buf = RasterBuffer(np.full((3, 5), 7, dtype=np.uint8))
        assert buf.pixels.shape == (3, 5, 4)
        assert (buf.rgb == 7).all()
        assert (buf.alpha == 255).all()

    def test_float_input_clipped_and_rounded(self):
        buf = RasterBuffer(np.array([[[-5.0, 127.6, 300.0]]]))
        assert buf.pixels[0, 0].tolist() == [0, 128, 255, 255]

    def test_empty_rejected(self):
        with pytest.raises(ValueError, match="non-zero"):
            RasterBuffer(np.zeros((0, 3, 4), dtype=np.uint8))

    def test_bad_channel_count(self):
        with pytest.raises(ValueError, match="Expected"):
            RasterBuffer(np.zeros((2, 2, 2), dtype=np.uint8))

    def test_pil_round_trip(self):
        image = Image.new("RGB", (6, 3), (10, 20, 30))
        buf = RasterBuffer.from_pil(image)
        assert buf.pixels[0, 0].tolist() == [10, 20, 30, 255]
        assert buf.to_pil().size == (6, 3)

    def test_from_pil_is_writable(self):
        buf = RasterBuffer.from_pil(Image.new("L", (2, 2), 0))
        buf.pixels[0, 0, 0] = 9
        assert buf.pixels[0, 0, 0] == 9

    def test_replace_changes_dimensions(self):
        buf = RasterBuffer.blank(4, 4)
        buf.replace(np.zeros((2, 8, 4), dtype=np.uint8))
        assert buf.size == (8, 2)

    def test_copy_and_load_are_independent(self):
        a = RasterBuffer.blank(2, 2, (1, 1, 1, 255))
        b = a.copy()
        b.pixels[...] = 9
        assert a.pixels[0, 0, 0] == 1

        a.load(b)
        b.pixels[...] = 50
        assert a.pixels[0, 0, 0] == 9

    def test_same_pixels(self):
        a = RasterBuffer.blank(2, 2, (1, 2, 3, 4))
        assert a.same_pixels(a.copy())
        assert not a.same_pixels(RasterBuffer.blank(2, 3, (1, 2, 3, 4)))

    def test_luminance(self):
        buf = RasterBuffer.blank(1, 1, (255, 0, 0, 255))
        assert buf.luminance()[0, 0] == pytest.approx(0.299 * 255)
