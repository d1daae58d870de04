import struct

import pytest

from dmsview.palette import (
    Palette,
    PaletteFormat,
    convert_color,
    load_palette,
    read_palette,
)

COLORS = [0xFF112233, 0x80FF0000, 0x0000FF00, 0x7F0000FF]


def _write_palette(path, colors, fourcc=b"DPAL"):
    path.write_bytes(
        fourcc + struct.pack("<I", len(colors)) + struct.pack(f"<{len(colors)}I", *colors)
    )
    return path


def test_argb8888_is_unchanged():
    assert convert_color(0x12345678, PaletteFormat.ARGB8888) == 0x12345678


def test_unknown_format_is_unchanged():
    assert convert_color(0x12345678, 99) == 0x12345678


def test_white_fills_sixteen_bits():
    assert convert_color(0xFFFFFFFF, PaletteFormat.RGB565) == 0xFFFF
    assert convert_color(0xFFFFFFFF, PaletteFormat.ARGB1555) == 0xFFFF


def test_rgb565_red_lands_in_top_bits():
    assert convert_color(0x00F80000, PaletteFormat.RGB565) == 0xF800


@pytest.mark.parametrize("color", COLORS)
def test_rgb565_ignores_alpha(color):
    assert convert_color(color | 0xFF000000, PaletteFormat.RGB565) == convert_color(
        color & 0x00FFFFFF, PaletteFormat.RGB565
    )


@pytest.mark.parametrize("color", COLORS)
def test_rgb565_drops_low_bits(color):
    assert convert_color(color, PaletteFormat.RGB565) == convert_color(
        color & 0xFFF8FCF8, PaletteFormat.RGB565
    )


@pytest.mark.parametrize("color", COLORS)
def test_argb4444_drops_low_nibbles(color):
    assert convert_color(color, PaletteFormat.ARGB4444) == convert_color(
        color & 0xF0F0F0F0, PaletteFormat.ARGB4444
    )


def test_argb1555_alpha_is_top_bit_only():
    assert convert_color(0x80000000, PaletteFormat.ARGB1555) == convert_color(
        0xFF000000, PaletteFormat.ARGB1555
    )
    assert convert_color(0x7F000000, PaletteFormat.ARGB1555) == convert_color(
        0x00000000, PaletteFormat.ARGB1555
    )


def test_read_palette_round_trip(tmp_path):
    path = _write_palette(tmp_path / "test.pal", COLORS)
    palette = read_palette(path)
    assert palette == Palette(fourcc=b"DPAL", colors=tuple(COLORS))
    assert len(palette) == len(COLORS)


def test_load_palette_applies_offset_and_format(tmp_path):
    path = _write_palette(tmp_path / "test.pal", COLORS)
    entries = load_palette(path, PaletteFormat.RGB565, 16)
    assert list(entries) == list(range(16, 16 + len(COLORS)))
    assert list(entries.values()) == [
        convert_color(c, PaletteFormat.RGB565) for c in COLORS
    ]


def test_load_palette_argb8888_keeps_colours(tmp_path):
    path = _write_palette(tmp_path / "test.pal", COLORS)
    assert list(load_palette(path, PaletteFormat.ARGB8888, 0).values()) == COLORS


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_palette(tmp_path / "absent.pal")


def test_truncated_colours_raise(tmp_path):
    path = tmp_path / "short.pal"
    path.write_bytes(b"DPAL" + struct.pack("<I", 4) + struct.pack("<I", 1))
    with pytest.raises(ValueError):
        read_palette(path)


def test_truncated_header_raises(tmp_path):
    path = tmp_path / "tiny.pal"
    path.write_bytes(b"DP")
    with pytest.raises(ValueError):
        load_palette(path, PaletteFormat.RGB565, 0)