"""Stage data: act layouts, backgrounds, stage timing and file paths.

An act layout file is laid out as::

    u8       title card length, then that many characters
    4 bytes  active tile layers
    u8       tile layer mid point
    u8       width in chunks
    u8       height in chunks
    height rows of width chunk indices, each a u16 BE
    u8       type name count, then that many strings (length byte + characters)
    u16 BE   object count, then per object:
                 u8       type
                 u8       property value
                 u16 BE   x position in pixels
                 u16 BE   y position in pixels

A background file is laid out as::

    u8       background layer count
    u8       horizontal parallax entry count, then per entry:
                 u8 parallax factor, u8 scroll speed, u8 deform flag
    u8       vertical parallax entry count, entries as above
    per background layer:
        u8 width, u8 height, u8 type, u8 parallax factor, u8 scroll speed
        run-length coded line scroll data ending in FF FF
        height rows of width chunk indices, each a u8
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Protocol

__all__ = [
    "LAYER_COUNT",
    "PARALLAX_COUNT",
    "TILE_COUNT",
    "TILE_SIZE",
    "CHUNK_SIZE",
    "TILELAYER_CHUNK_W",
    "TILELAYER_CHUNK_H",
    "TILELAYER_SCROLL_MAX",
    "TileLayerType",
    "StageMode",
    "TileInfo",
    "DeformationMode",
    "TileLayer",
    "LineScroll",
    "ActObject",
    "ActLayout",
    "StageBackground",
    "StageTimer",
    "StageFolderTracker",
    "stage_file_path",
    "act_file_path",
    "read_act_layout",
    "read_stage_background",
]

LAYER_COUNT = 9
PARALLAX_COUNT = 0x100
TILE_COUNT = 0x400
TILE_SIZE = 0x10
CHUNK_SIZE = 0x80
TILELAYER_CHUNK_W = 0x100
TILELAYER_CHUNK_H = 0x100
TILELAYER_SCROLL_MAX = TILELAYER_CHUNK_H * CHUNK_SIZE

_STAGE_ROOT = "Data/Stages/"


class _Readable(Protocol):
    def read(self, size: int) -> bytes: ...


class TileLayerType(IntEnum):
    NOSCROLL = 0
    HSCROLL = 1
    VSCROLL = 2
    CLOUD_3D = 3
    SKY_3D = 4


class StageMode(IntEnum):
    LOAD = 0
    NORMAL = 1
    PAUSED = 2


class TileInfo(IntEnum):
    INDEX = 0
    DIRECTION = 1
    VISUALPLANE = 2
    SOLIDITYA = 3
    SOLIDITYB = 4
    FLAGSA = 5
    ANGLEA = 6
    FLAGSB = 7
    ANGLEB = 8


class DeformationMode(IntEnum):
    FG = 0
    FG_WATER = 1
    BG = 2
    BG_WATER = 3


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


@dataclass
class TileLayer:
    """One layer of chunks with its scrolling settings."""

    width: int = 0
    height: int = 0
    type: TileLayerType = TileLayerType.NOSCROLL
    parallax_factor: int = 0
    scroll_speed: int = 0
    scroll_pos: int = 0
    angle: int = 0
    x_pos: int = 0
    y_pos: int = 0
    z_pos: int = 0
    tiles: tuple[tuple[int, ...], ...] = ()
    line_scroll: bytes = field(default_factory=lambda: bytes(TILELAYER_SCROLL_MAX))


@dataclass
class LineScroll:
    """Parallax entries for horizontal or vertical line scrolling."""

    parallax_factor: list[int] = field(default_factory=list)
    scroll_speed: list[int] = field(default_factory=list)
    scroll_pos: list[int] = field(default_factory=list)
    line_pos: list[int] = field(default_factory=list)
    deform: list[int] = field(default_factory=list)

    @property
    def entry_count(self) -> int:
        return len(self.parallax_factor)


@dataclass(frozen=True)
class ActObject:
    """An object placed in an act layout, at a position in pixels."""

    type: int
    property_value: int
    x: int
    y: int

    @property
    def x_pos(self) -> int:
        """Horizontal position in 16.16 fixed point, as a signed 32-bit value."""
        return _to_int32(self.x << 16)

    @property
    def y_pos(self) -> int:
        """Vertical position in 16.16 fixed point, as a signed 32-bit value."""
        return _to_int32(self.y << 16)


@dataclass
class ActLayout:
    """The foreground layout, title card and objects of one act."""

    title_card_text: str
    title_card_word2: int
    active_tile_layers: tuple[int, int, int, int]
    layer_mid_point: int
    foreground: TileLayer
    type_names: tuple[str, ...]
    objects: tuple[ActObject, ...]

    @property
    def pixel_width(self) -> int:
        return self.foreground.width << 7

    @property
    def pixel_height(self) -> int:
        return self.foreground.height << 7

    @property
    def water_level(self) -> int:
        return self.pixel_height + 128


@dataclass
class StageBackground:
    """Background layers and the parallax tables that scroll them."""

    layers: tuple[TileLayer, ...] = ()
    h_parallax: LineScroll = field(default_factory=LineScroll)
    v_parallax: LineScroll = field(default_factory=LineScroll)


@dataclass
class StageTimer:
    """The stage clock, advanced once per frame."""

    frame_counter: int = 0
    milliseconds: int = 0
    seconds: int = 0
    minutes: int = 0

    def tick(self, refresh_rate: int) -> None:
        """Advance one frame at ``refresh_rate`` frames per second."""
        if refresh_rate <= 0:
            raise ValueError("refresh rate must be positive")
        self.frame_counter += 1
        if self.frame_counter == refresh_rate:
            self.frame_counter = 0
            self.seconds += 1
            if self.seconds > 59:
                self.seconds = 0
                self.minutes += 1
                if self.minutes > 59:
                    self.minutes = 0
        self.milliseconds = 100 * self.frame_counter // refresh_rate

    def reset(self) -> None:
        self.frame_counter = 0
        self.milliseconds = 0
        self.seconds = 0
        self.minutes = 0


@dataclass
class StageFolderTracker:
    """Remembers which stage folder is loaded, to skip reloading its files."""

    current: str = ""

    def check(self, folder: str) -> bool:
        """True if ``folder`` is already current; otherwise make it current."""
        if self.current == folder:
            return True
        self.current = folder
        return False

    def reset(self) -> None:
        self.current = ""


def stage_file_path(folder: str, file_name: str) -> str:
    """Path of a file inside a stage folder."""
    return f"{_STAGE_ROOT}{folder}/{file_name}"


def act_file_path(folder: str, act_id: str, extension: str) -> str:
    """Path of an act file, such as its layout, inside a stage folder."""
    return f"{_STAGE_ROOT}{folder}/Act{act_id}{extension}"


def _read_exact(stream: _Readable, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise EOFError("unexpected end of stage data")
    return data


def _read_u8(stream: _Readable) -> int:
    return _read_exact(stream, 1)[0]


def _read_u16_be(stream: _Readable) -> int:
    data = _read_exact(stream, 2)
    return (data[0] << 8) | data[1]


def read_act_layout(stream: _Readable) -> ActLayout:
    """Parse an act layout from a binary stream."""
    title = _read_exact(stream, _read_u8(stream))
    word2 = len(title)
    for index, char in enumerate(title):
        if char == ord("-"):
            word2 = index + 1

    active = tuple(_read_exact(stream, 4))
    mid_point = _read_u8(stream)
    width = _read_u8(stream)
    height = _read_u8(stream)
    tiles = tuple(
        tuple(_read_u16_be(stream) for _ in range(width)) for _ in range(height)
    )

    type_names = tuple(
        _read_exact(stream, _read_u8(stream)).decode("latin-1")
        for _ in range(_read_u8(stream))
    )

    objects = []
    for _ in range(_read_u16_be(stream)):
        obj_type = _read_u8(stream)
        prop = _read_u8(stream)
        x = _read_u16_be(stream)
        y = _read_u16_be(stream)
        objects.append(ActObject(obj_type, prop, x, y))

    foreground = TileLayer(
        width=width, height=height, type=TileLayerType.HSCROLL, tiles=tiles
    )
    return ActLayout(
        title_card_text=title.decode("latin-1"),
        title_card_word2=word2,
        active_tile_layers=active,  # type: ignore[arg-type]
        layer_mid_point=mid_point,
        foreground=foreground,
        type_names=type_names,
        objects=tuple(objects),
    )


def _read_line_scroll(stream: _Readable, into: LineScroll) -> None:
    for _ in range(_read_u8(stream)):
        into.parallax_factor.append(_read_u8(stream))
        into.scroll_speed.append(_read_u8(stream) << 10)
        into.scroll_pos.append(0)
        into.line_pos.append(0)
        into.deform.append(_read_u8(stream))


def _read_scroll_runs(stream: _Readable) -> bytes:
    data = bytearray()
    while True:
        value = _read_u8(stream)
        if value == 0xFF:
            value = _read_u8(stream)
            if value == 0xFF:
                break
            data.extend([value] * (_read_u8(stream) - 1))
        else:
            data.append(value)
        if len(data) > TILELAYER_SCROLL_MAX:
            raise ValueError("line scroll data is too long")
    return bytes(data) + bytes(TILELAYER_SCROLL_MAX - len(data))


def read_stage_background(stream: _Readable) -> StageBackground:
    """Parse stage backgrounds from a binary stream."""
    layer_count = _read_u8(stream)
    if layer_count > LAYER_COUNT - 1:
        raise ValueError(f"too many background layers: {layer_count}")

    background = StageBackground()
    _read_line_scroll(stream, background.h_parallax)
    _read_line_scroll(stream, background.v_parallax)

    layers = []
    for _ in range(layer_count):
        width = _read_u8(stream)
        height = _read_u8(stream)
        layer_type = _read_u8(stream)
        parallax_factor = _read_u8(stream)
        scroll_speed = _read_u8(stream) << 10
        line_scroll = _read_scroll_runs(stream)
        tiles = tuple(tuple(_read_exact(stream, width)) for _ in range(height))
        layers.append(
            TileLayer(
                width=width,
                height=height,
                type=TileLayerType(layer_type) if layer_type in TileLayerType._value2member_map_ else layer_type,  # type: ignore[arg-type]
                parallax_factor=parallax_factor,
                scroll_speed=scroll_speed,
                tiles=tiles,
                line_scroll=line_scroll,
            )
        )
    background.layers = tuple(layers)
    return background