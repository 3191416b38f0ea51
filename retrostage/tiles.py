"""Stage tile data: 128x128 chunk definitions, collision masks and tile graphics.

A chunk file holds one 3-byte entry per 16x16 tile slot of every chunk::

    byte 0   bits 4-5 visual plane, bits 2-3 direction, bits 0-1 tile index high bits
    byte 1   tile index low byte
    byte 2   high nibble path A collision flags, low nibble path B collision flags

A collision mask file holds, for each of the 1024 tiles and each of the two
collision paths::

    u8       high nibble non-zero for a ceiling tile, low nibble tile flags
    i32 LE   angles
    8 bytes  sixteen 4-bit column heights, high nibble first
    u8       solidity bits for columns 8-15
    u8       solidity bits for columns 0-7

A tile graphics file is laid out as::

    u16 BE   width
    u16 BE   height
    128 RGB  palette entries 0x00-0x7F (ignored)
    128 RGB  palette entries 0x80-0xFF
    run-length coded pixels: FF v n writes v n times, FF FF ends the data
"""

from __future__ import annotations

import struct
from collections.abc import Callable, MutableSequence
from dataclasses import dataclass, field
from typing import Protocol

from retrostage.stage import TILE_COUNT, TILE_SIZE, TILELAYER_CHUNK_W

__all__ = [
    "CHUNKTILE_COUNT",
    "CPATH_COUNT",
    "TILE_DATASIZE",
    "TILESET_SIZE",
    "ChunkTiles",
    "CollisionMasks",
    "TilesetGraphics",
    "read_chunk_tiles",
    "read_collision_masks",
    "read_tileset_gfx",
    "copy_tile",
]

CHUNKTILE_COUNT = 0x200 * (8 * 8)
CPATH_COUNT = 2
TILE_DATASIZE = TILE_SIZE * TILE_SIZE
TILESET_SIZE = TILE_COUNT * TILE_DATASIZE

_EMPTY_HEIGHT = 0x40
_SOLID_ROOF = 0xF


class _Readable(Protocol):
    def read(self, size: int) -> bytes: ...


def _read_exact(stream: _Readable, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise EOFError("unexpected end of tile data")
    return data


def _read_u8(stream: _Readable) -> int:
    return _read_exact(stream, 1)[0]


def _read_u16_be(stream: _Readable) -> int:
    data = _read_exact(stream, 2)
    return (data[0] << 8) | data[1]


@dataclass(frozen=True)
class ChunkTiles:
    """Per-slot tile data of every 128x128 chunk."""

    gfx_data_pos: tuple[int, ...]
    tile_index: tuple[int, ...]
    direction: tuple[int, ...]
    visual_plane: tuple[int, ...]
    collision_flags: tuple[tuple[int, ...], tuple[int, ...]]


def read_chunk_tiles(stream: _Readable) -> ChunkTiles:
    """Parse the chunk definitions from a binary stream."""
    data = _read_exact(stream, CHUNKTILE_COUNT * 3)
    gfx_data_pos = []
    tile_index = []
    direction = []
    visual_plane = []
    flags_a = []
    flags_b = []
    for first, second, third in zip(data[0::3], data[1::3], data[2::3]):
        first &= 0x3F
        visual_plane.append(first >> 4)
        direction.append((first >> 2) & 0x3)
        index = second + ((first & 0x3) << 8)
        tile_index.append(index)
        gfx_data_pos.append(index << 8)
        flags_a.append(third >> 4)
        flags_b.append(third & 0xF)
    return ChunkTiles(
        gfx_data_pos=tuple(gfx_data_pos),
        tile_index=tuple(tile_index),
        direction=tuple(direction),
        visual_plane=tuple(visual_plane),
        collision_flags=(tuple(flags_a), tuple(flags_b)),
    )


def _zeros(count: int) -> Callable[[], list[int]]:
    return lambda: [0] * count


@dataclass
class CollisionMasks:
    """Height masks of every tile for one collision path, 16 columns per tile."""

    floor_masks: list[int] = field(default_factory=_zeros(TILE_COUNT * TILE_SIZE))
    l_wall_masks: list[int] = field(default_factory=_zeros(TILE_COUNT * TILE_SIZE))
    r_wall_masks: list[int] = field(default_factory=_zeros(TILE_COUNT * TILE_SIZE))
    roof_masks: list[int] = field(default_factory=_zeros(TILE_COUNT * TILE_SIZE))
    angles: list[int] = field(default_factory=_zeros(TILE_COUNT))
    flags: list[int] = field(default_factory=_zeros(TILE_COUNT))


def _read_collision_tile(stream: _Readable, masks: CollisionMasks, tile: int) -> None:
    header = _read_u8(stream)
    is_ceiling = (header >> 4) != 0
    masks.flags[tile] = header & 0xF
    (masks.angles[tile],) = struct.unpack("<i", _read_exact(stream, 4))

    heights: list[int] = []
    for packed in _read_exact(stream, TILE_SIZE // 2):
        heights.extend((packed >> 4, packed & 0xF))
    upper_bits = _read_u8(stream)
    lower_bits = _read_u8(stream)
    half = TILE_SIZE // 2
    solid = [bool(lower_bits >> c & 1) for c in range(half)]
    solid += [bool(upper_bits >> c & 1) for c in range(half)]

    if is_ceiling:
        roof = [h if s else -_EMPTY_HEIGHT for h, s in zip(heights, solid)]
        floor = [0 if s else _EMPTY_HEIGHT for s in solid]

        def reaches(c: int, h: int) -> bool:
            return c <= roof[h]

    else:
        floor = [h if s else _EMPTY_HEIGHT for h, s in zip(heights, solid)]
        roof = [_SOLID_ROOF if s else -_EMPTY_HEIGHT for s in solid]

        def reaches(c: int, h: int) -> bool:
            return c >= floor[h]

    columns = range(TILE_SIZE)
    l_wall = [next((h for h in columns if reaches(c, h)), _EMPTY_HEIGHT) for c in columns]
    r_wall = [
        next((h for h in reversed(columns) if reaches(c, h)), -_EMPTY_HEIGHT) for c in columns
    ]

    base = tile * TILE_SIZE
    window = slice(base, base + TILE_SIZE)
    masks.floor_masks[window] = floor
    masks.roof_masks[window] = roof
    masks.l_wall_masks[window] = l_wall
    masks.r_wall_masks[window] = r_wall


def read_collision_masks(stream: _Readable) -> tuple[CollisionMasks, CollisionMasks]:
    """Parse the collision masks of both paths from a binary stream."""
    paths = tuple(CollisionMasks() for _ in range(CPATH_COUNT))
    for tile in range(TILE_COUNT):
        for masks in paths:
            _read_collision_tile(stream, masks, tile)
    return paths  # type: ignore[return-value]


@dataclass
class TilesetGraphics:
    """Pixels of the 16x16 tile sheet and the upper half of its palette.

    ``palette`` holds the colours of palette indices 0x80 to 0xFF, in order.
    """

    width: int
    height: int
    palette: tuple[tuple[int, int, int], ...]
    pixels: bytearray = field(default_factory=lambda: bytearray(TILESET_SIZE))


def read_tileset_gfx(stream: _Readable) -> TilesetGraphics:
    """Parse run-length coded tile graphics; the first pixel's colour becomes 0."""
    width = _read_u16_be(stream)
    height = _read_u16_be(stream)
    _read_exact(stream, 0x80 * 3)
    raw_palette = _read_exact(stream, 0x80 * 3)
    palette = tuple(zip(raw_palette[0::3], raw_palette[1::3], raw_palette[2::3]))

    pixels = bytearray()
    while True:
        value = _read_u8(stream)
        if value == 0xFF:
            value = _read_u8(stream)
            if value == 0xFF:
                break
            pixels.extend(bytes([value]) * _read_u8(stream))
        else:
            pixels.append(value)
        if len(pixels) > TILESET_SIZE:
            raise ValueError("tile graphics data is too long")
    pixels.extend(bytes(TILESET_SIZE - len(pixels)))

    transparent = pixels[0]
    if transparent:
        pixels = bytearray(pixels.replace(bytes([transparent]), b"\x00"))
    return TilesetGraphics(width=width, height=height, palette=palette, pixels=pixels)


def copy_tile(
    tileset: TilesetGraphics | MutableSequence[int], dest: int, src: int
) -> None:
    """Copy the pixels of tile ``src`` over those of tile ``dest``."""
    pixels = tileset.pixels if isinstance(tileset, TilesetGraphics) else tileset
    for tile in (dest, src):
        if not 0 <= tile < TILE_COUNT:
            raise IndexError(f"tile {tile} out of range")
    src_start = TILELAYER_CHUNK_W * src
    dest_start = TILELAYER_CHUNK_W * dest
    pixels[dest_start:dest_start + TILE_DATASIZE] = pixels[src_start:src_start + TILE_DATASIZE]