"""Palette files and colour conversion to the hardware palette formats.

A palette file holds a four-byte tag, a little-endian 32-bit colour count
and that many little-endian 32-bit colours in 0xAARRGGBB form.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from os import PathLike
from typing import Union

_HEADER = struct.Struct("<4sI")


class PaletteFormat(IntEnum):
    """Palette entry formats understood by the renderer."""

    ARGB1555 = 0
    RGB565 = 1
    ARGB4444 = 2
    ARGB8888 = 3


@dataclass(frozen=True)
class Palette:
    """Colours read from a palette file, in 0xAARRGGBB form."""

    fourcc: bytes
    colors: tuple[int, ...]

    def __len__(self) -> int:
        return len(self.colors)


def convert_color(color: int, fmt: Union[PaletteFormat, int]) -> int:
    """Convert a 0xAARRGGBB colour into the given palette format.

    Unknown formats leave the colour unchanged.
    """
    color &= 0xFFFFFFFF
    if fmt == PaletteFormat.ARGB4444:
        return (
            ((color & 0xF0000000) >> 10)
            | ((color & 0x00F00000) >> 10)
            | ((color & 0x0000F000) >> 8)
            | ((color & 0x000000F0) >> 4)
        )
    if fmt == PaletteFormat.RGB565:
        return (
            ((color & 0x00F80000) >> 8)
            | ((color & 0x0000FC00) >> 5)
            | ((color & 0x000000F8) >> 3)
        )
    if fmt == PaletteFormat.ARGB1555:
        return (
            ((color & 0x80000000) >> 16)
            | ((color & 0x00F80000) >> 9)
            | ((color & 0x0000F800) >> 6)
            | ((color & 0x000000F8) >> 3)
        )
    return color


def read_palette(path: Union[str, PathLike]) -> Palette:
    """Read a palette file; raises ValueError if it is truncated."""
    with open(path, "rb") as handle:
        data = handle.read()
    if len(data) < _HEADER.size:
        raise ValueError(f"{path}: palette header is truncated")
    fourcc, count = _HEADER.unpack_from(data)
    end = _HEADER.size + 4 * count
    if len(data) < end:
        raise ValueError(f"{path}: expected {count} colours, file is too short")
    colors = struct.unpack_from(f"<{count}I", data, _HEADER.size)
    return Palette(fourcc=fourcc, colors=tuple(colors))


def load_palette(
    path: Union[str, PathLike], fmt: Union[PaletteFormat, int], offset: int
) -> dict[int, int]:
    """Read a palette and return its converted entries keyed by palette slot."""
    palette = read_palette(path)
    return {
        slot: convert_color(color, fmt)
        for slot, color in enumerate(palette.colors, start=offset)
    }