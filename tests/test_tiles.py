import io
import struct

import pytest

from retrostage.tiles import (
    CHUNKTILE_COUNT,
    TILE_DATASIZE,
    TILESET_SIZE,
    TilesetGraphics,
    copy_tile,
    read_chunk_tiles,
    read_collision_masks,
    read_tileset_gfx,
)

TILES = 0x400
RECORD = 15


def chunk_file(entries):
    data = bytearray(CHUNKTILE_COUNT * 3)
    for slot, entry in entries.items():
        data[slot * 3:slot * 3 + 3] = bytes(entry)
    return io.BytesIO(bytes(data))


def collision_record(header, angle, heights, upper_bits, lower_bits):
    packed = bytes((heights[i] << 4) | heights[i + 1] for i in range(0, 16, 2))
    return bytes([header]) + struct.pack("<i", angle) + packed + bytes([upper_bits, lower_bits])


def collision_file(records):
    data = bytearray(TILES * 2 * RECORD)
    for (tile, path), record in records.items():
        start = (tile * 2 + path) * RECORD
        data[start:start + RECORD] = record
    return io.BytesIO(bytes(data))


def gfx_file(palette_top, pixel_data, width=16, height=16):
    head = struct.pack(">HH", width, height) + bytes(0x80 * 3)
    return io.BytesIO(head + bytes(palette_top) + bytes(pixel_data))


def test_chunk_tile_index_and_flags():
    chunks = read_chunk_tiles(chunk_file({5: (0x00, 0x22, 0x3C)}))
    assert chunks.tile_index[5] == 0x22
    assert chunks.gfx_data_pos[5] == 0x22 << 8
    assert chunks.collision_flags[0][5] == 0x3
    assert chunks.collision_flags[1][5] == 0xC


def test_chunk_fields_separate_bits():
    chunks = read_chunk_tiles(chunk_file({0: (0x10, 0, 0), 1: (0x04, 0, 0), 2: (0x01, 0, 0)}))
    assert (chunks.visual_plane[0], chunks.direction[0], chunks.tile_index[0]) == (1, 0, 0)
    assert (chunks.visual_plane[1], chunks.direction[1], chunks.tile_index[1]) == (0, 1, 0)
    assert (chunks.visual_plane[2], chunks.direction[2], chunks.tile_index[2]) == (0, 0, 256)


def test_chunk_top_bits_ignored():
    plain = read_chunk_tiles(chunk_file({3: (0x15, 0x40, 0)}))
    masked = read_chunk_tiles(chunk_file({3: (0xD5, 0x40, 0)}))
    assert plain.tile_index[3] == masked.tile_index[3]
    assert plain.direction[3] == masked.direction[3]
    assert plain.visual_plane[3] == masked.visual_plane[3]


def test_chunk_invariants():
    entries = {i: (i % 256, (i * 7) % 256, (i * 13) % 256) for i in range(0, CHUNKTILE_COUNT, 97)}
    chunks = read_chunk_tiles(chunk_file(entries))
    assert len(chunks.tile_index) == CHUNKTILE_COUNT
    for index, pos in zip(chunks.tile_index, chunks.gfx_data_pos):
        assert index < TILES
        assert pos == index << 8
    assert max(chunks.visual_plane) <= 3
    assert max(chunks.direction) <= 3


def test_chunk_truncated():
    with pytest.raises(EOFError):
        read_chunk_tiles(io.BytesIO(bytes(10)))


def test_empty_tile_masks():
    path_a, path_b = read_collision_masks(collision_file({}))
    assert path_a.floor_masks[:16] == [0x40] * 16
    assert path_a.roof_masks[:16] == [-0x40] * 16
    assert path_a.l_wall_masks[:16] == [0x40] * 16
    assert path_b.r_wall_masks[:16] == [-0x40] * 16


def test_solid_regular_tile():
    record = collision_record(0x03, -5, [0] * 16, 0xFF, 0xFF)
    path_a, path_b = read_collision_masks(collision_file({(2, 0): record}))
    base = 2 * 16
    assert path_a.flags[2] == 3
    assert path_a.angles[2] == -5
    assert path_a.floor_masks[base:base + 16] == [0] * 16
    assert path_a.roof_masks[base:base + 16] == [0xF] * 16
    assert path_a.l_wall_masks[base:base + 16] == [0] * 16
    assert path_a.r_wall_masks[base:base + 16] == [15] * 16
    assert path_b.floor_masks[base:base + 16] == [0x40] * 16


def test_solid_ceiling_tile():
    record = collision_record(0x10, 7, [15] * 16, 0xFF, 0xFF)
    _, path_b = read_collision_masks(collision_file({(1, 1): record}))
    base = 16
    assert path_b.flags[1] == 0
    assert path_b.angles[1] == 7
    assert path_b.roof_masks[base:base + 16] == [15] * 16
    assert path_b.floor_masks[base:base + 16] == [0] * 16
    assert path_b.l_wall_masks[base:base + 16] == [0] * 16
    assert path_b.r_wall_masks[base:base + 16] == [15] * 16


def test_solidity_bit_order():
    heights = list(range(16))
    record = collision_record(0x00, 0, heights, 0x00, 0xFF)
    path_a, _ = read_collision_masks(collision_file({(0, 0): record}))
    assert path_a.floor_masks[:8] == heights[:8]
    assert path_a.floor_masks[8:16] == [0x40] * 8
    assert path_a.roof_masks[8:16] == [-0x40] * 8


def test_collision_truncated():
    with pytest.raises(EOFError):
        read_collision_masks(io.BytesIO(bytes(RECORD * 3)))


def test_gfx_run_length_and_transparency():
    palette = bytes(range(128)) * 3
    gfx = read_tileset_gfx(gfx_file(palette, [7, 1, 2, 0xFF, 3, 4, 7, 0xFF, 0xFF], width=32, height=64))
    assert (gfx.width, gfx.height) == (32, 64)
    assert gfx.pixels[:8] == bytes([0, 1, 2, 3, 3, 3, 3, 0])
    assert len(gfx.pixels) == TILESET_SIZE
    assert len(gfx.palette) == 128
    assert gfx.palette[0] == (0, 1, 2)


def test_gfx_too_long():
    runs = [0xFF, 1, 0xFF] * (TILESET_SIZE // 255 + 2) + [0xFF, 0xFF]
    with pytest.raises(ValueError):
        read_tileset_gfx(gfx_file(bytes(384), runs))


def test_gfx_truncated():
    with pytest.raises(EOFError):
        read_tileset_gfx(gfx_file(bytes(384), [1, 2, 3]))


def test_copy_tile_round_trip():
    pixels = bytearray(TILESET_SIZE)
    pixels[3 * TILE_DATASIZE:4 * TILE_DATASIZE] = bytes(range(256))
    gfx = TilesetGraphics(width=16, height=16, palette=(), pixels=pixels)
    copy_tile(gfx, 9, 3)
    assert gfx.pixels[9 * TILE_DATASIZE:10 * TILE_DATASIZE] == bytes(range(256))
    assert gfx.pixels[3 * TILE_DATASIZE:4 * TILE_DATASIZE] == bytes(range(256))
    assert gfx.pixels[8 * TILE_DATASIZE:9 * TILE_DATASIZE] == bytes(TILE_DATASIZE)


def test_copy_tile_on_buffer():
    pixels = bytearray(TILESET_SIZE)
    pixels[0:TILE_DATASIZE] = b"\x05" * TILE_DATASIZE
    copy_tile(pixels, TILES - 1, 0)
    assert pixels[-TILE_DATASIZE:] == b"\x05" * TILE_DATASIZE
    assert len(pixels) == TILESET_SIZE


@pytest.mark.parametrize("dest,src", [(TILES, 0), (0, -1)])
def test_copy_tile_out_of_range(dest, src):
    with pytest.raises(IndexError):
        copy_tile(bytearray(TILESET_SIZE), dest, src)