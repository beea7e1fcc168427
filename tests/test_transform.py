import math

import numpy as np
from PIL import Image

from poster_service.codec import HIGH_QUALITY
from poster_service.transform import (
    anchor_from_corner,
    paste_element,
    rotate_into_frame,
    transform_element,
)


def _pattern(size=32) -> Image.Image:
    """Left half red, right half green, with a blue square in the top-left corner."""
    im = Image.new("RGB", (size, size), (0, 200, 0))
    im.paste((200, 0, 0), (0, 0, size // 2, size))
    im.paste((0, 0, 200), (0, 0, size // 4, size // 4))
    return im


class TestAnchorFromCorner:
    def test_offsets_by_half_the_footprint(self):
        assert anchor_from_corner(top=20, left=10, width=40, height=60) == (30, 50)

    def test_odd_sizes_truncate(self):
        assert anchor_from_corner(top=0, left=0, width=5, height=7) == (2, 3)

    def test_negative_sizes_truncate_toward_zero(self):
        assert anchor_from_corner(top=0, left=0, width=-5, height=-7) == (-2, -3)


class TestTransformElement:
    def test_output_is_exact_footprint(self):
        out = transform_element(_pattern(), 50, 30, padding=10)
        assert out.size == (50, 30)

    def test_zero_angle_is_the_plain_resize(self):
        src = _pattern()
        out = transform_element(src, 40, 40)
        expected = src.resize((40, 40), HIGH_QUALITY)
        assert np.array_equal(np.asarray(out.convert("RGB")), np.asarray(expected))

    def test_full_turn_matches_zero_angle(self):
        src = _pattern()
        still = np.asarray(transform_element(src, 40, 40, angle=0).convert("RGB"), dtype=np.int16)
        turned = np.asarray(transform_element(src, 40, 40, angle=2 * math.pi).convert("RGB"), dtype=np.int16)
        assert np.abs(still - turned).max() <= 2

    def test_rotation_is_clockwise(self):
        src = _pattern(20).convert("RGB")
        out = rotate_into_frame(src, math.pi / 2, (20, 20)).convert("RGB")
        # the red left half ends up on top after a clockwise quarter turn
        assert out.getpixel((10, 2)) == (200, 0, 0)
        assert out.getpixel((10, 17)) == (0, 200, 0)
        # blue top-left corner moves to the top-right
        assert out.getpixel((18, 1)) == (0, 0, 200)

    def test_rotation_corners_use_fill(self):
        src = Image.new("RGB", (20, 20), (255, 0, 0))
        out = rotate_into_frame(src, math.pi / 4, (40, 40), fill=(0, 0, 255, 255))
        assert out.getpixel((0, 0)) == (0, 0, 255, 255)
        assert out.getpixel((20, 20))[:3] == (255, 0, 0)

    def test_rotation_without_fill_leaves_transparent_corners(self):
        src = Image.new("RGB", (20, 20), (255, 0, 0))
        out = rotate_into_frame(src, math.pi / 4, (40, 40))
        assert out.getpixel((0, 0)) == (0, 0, 0, 0)

    def test_padding_shrinks_before_rotation(self):
        src = Image.new("RGB", (10, 10), (255, 0, 0))
        out = transform_element(src, 40, 40, padding=20, angle=2 * math.pi, fill=(0, 0, 255, 255))
        # 20x20 content centered in a 40x40 frame
        assert out.getpixel((2, 2))[:3] == (0, 0, 255)
        assert out.getpixel((20, 20))[:3] == (255, 0, 0)

    def test_palette_images_are_resampled(self):
        src = Image.new("RGB", (10, 10), (255, 0, 0)).convert("P")
        out = transform_element(src, 20, 20)
        assert out.mode in ("RGB", "RGBA")


class TestPasteElement:
    def test_replaces_pixels_and_clips(self):
        canvas = Image.new("RGB", (10, 10), (255, 255, 255))
        paste_element(canvas, Image.new("RGB", (6, 6), (0, 0, 0)), (7, 7))
        assert canvas.getpixel((8, 8)) == (0, 0, 0)
        assert canvas.getpixel((6, 6)) == (255, 255, 255)
