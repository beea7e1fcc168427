import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from PIL import ImageFont

from poster_service.errors import FontError, FontNotFound, FontParseError
from poster_service.fonts import Font, FontCache


class TestFontCache:
    def test_loads_once_and_reuses(self, font_cache):
        first = font_cache.get("default.ttc")
        second = font_cache.get("default.ttc")
        assert first is second
        assert len(font_cache) == 1
        assert "default.ttc" in font_cache

    def test_sized_font_is_freetype(self, font_cache):
        font = font_cache.get("default.ttc").at_size(24.0)
        assert isinstance(font, ImageFont.FreeTypeFont)
        assert font.size == 24

    def test_missing_font_is_not_cached(self, font_cache):
        with pytest.raises(FontNotFound):
            font_cache.get("missing.ttf")
        assert "missing.ttf" not in font_cache
        assert len(font_cache) == 0

    def test_malformed_font_is_not_cached(self, font_dir):
        (font_dir / "broken.ttf").write_bytes(b"definitely not a font")
        cache = FontCache(font_dir)
        with pytest.raises(FontParseError):
            cache.get("broken.ttf")
        assert len(cache) == 0

    def test_names_cannot_escape_font_dir(self, font_dir, font_bytes):
        (font_dir.parent / "outside.ttf").write_bytes(font_bytes)
        cache = FontCache(font_dir)
        with pytest.raises(FontNotFound):
            cache.get("../outside.ttf")

    def test_font_errors_share_a_base(self, font_cache):
        with pytest.raises(FontError):
            font_cache.get("missing.ttf")

    def test_injected_loader(self, font_bytes):
        calls = []

        def loader(name):
            calls.append(name)
            return font_bytes

        cache = FontCache("/nonexistent", loader=loader)
        cache.get("a.ttf")
        cache.get("a.ttf")
        assert calls == ["a.ttf"]

    def test_concurrent_loads_keep_one_entry(self, font_bytes):
        barrier = threading.Barrier(8)

        def loader(name):
            # hold every thread here so they all miss the cache together
            barrier.wait(timeout=5)
            return font_bytes

        cache = FontCache("/nonexistent", loader=loader)
        with ThreadPoolExecutor(max_workers=8) as pool:
            fonts = list(pool.map(lambda _: cache.get("shared.ttf"), range(8)))

        assert len(cache) == 1
        assert all(f is fonts[0] for f in fonts)
        assert fonts[0].data == font_bytes

    def test_unreadable_font_is_a_font_error(self, font_dir, monkeypatch):
        def deny(self):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(Path, "read_bytes", deny)
        cache = FontCache(font_dir)
        with pytest.raises(FontError, match="Permission denied"):
            cache.get("default.ttc")
        assert len(cache) == 0


class TestFont:
    def test_sized_faces_are_reused(self, font_cache):
        font = font_cache.get("default.ttc")
        assert font.at_size(24) is font.at_size(24)
        assert font.at_size(30) is not font.at_size(24)

    def test_sized_faces_do_not_affect_equality(self, font_bytes):
        a = Font(name="a.ttf", data=font_bytes)
        b = Font(name="a.ttf", data=font_bytes)
        a.at_size(20)
        assert a == b
        assert hash(a) == hash(b)

    def test_unusable_size_is_a_font_error(self, font_cache):
        with pytest.raises(FontError):
            font_cache.get("default.ttc").at_size(-3)
