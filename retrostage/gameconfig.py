"""Game configuration: window text, global variables and the stage lists.

The game configuration file is laid out as::

    string   window title
    string   data name
    string   description
    u8       script count, then that many strings (script paths)
    u8       global variable count, then per variable:
                 string   name
                 i32 BE   value
    u8       sound effect count, then that many strings (sound paths)
    u8       player count, then per player three strings:
                 animation file, script path, name
    four stage lists, in the order presentation, regular, special, bonus;
    each is a u8 count followed per stage by:
                 string   folder
                 string   act id
                 string   name
                 u8       highlighted flag

Every string is a length byte followed by that many characters.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Protocol

from retrostage.reader import FileSystem

__all__ = [
    "EngineState",
    "RetroLanguage",
    "BytecodeFormat",
    "StageListCategory",
    "SceneInfo",
    "GameConfig",
    "read_game_config",
    "load_game_config",
    "get_lower_rate",
    "frame_skip_indices",
]

DEFAULT_GAME_CONFIG_PATH = "Data/Game/GameConfig.bin"


class _Readable(Protocol):
    def read(self, size: int) -> bytes: ...


class EngineState(IntEnum):
    """What the engine's main loop is doing."""

    SYSMENU = 0
    MAINGAME = 1
    INITSYSMENU = 2
    EXITGAME = 3


class RetroLanguage(IntEnum):
    EN = 0
    FR = 1
    IT = 2
    DE = 3
    ES = 4
    JP = 5


class BytecodeFormat(IntEnum):
    MOBILE = 0
    PC = 1


class StageListCategory(IntEnum):
    """The four stage lists, in the order the game uses them."""

    PRESENTATION = 0
    REGULAR = 1
    BONUS = 2
    SPECIAL = 3


# Special stages are stored before bonus stages in the file.
_FILE_CATEGORY_ORDER = (
    StageListCategory.PRESENTATION,
    StageListCategory.REGULAR,
    StageListCategory.SPECIAL,
    StageListCategory.BONUS,
)


@dataclass(frozen=True)
class SceneInfo:
    """One entry of a stage list."""

    name: str
    folder: str
    id: str
    highlighted: bool = False


@dataclass
class GameConfig:
    """Everything read from the game configuration file."""

    window_text: str = ""
    data_name: str = ""
    description: str = ""
    script_paths: tuple[str, ...] = ()
    global_variables: dict[str, int] = field(default_factory=dict)
    sfx_paths: tuple[str, ...] = ()
    players: tuple[tuple[str, str, str], ...] = ()
    stage_lists: dict[StageListCategory, tuple[SceneInfo, ...]] = field(
        default_factory=lambda: {category: () for category in StageListCategory}
    )

    def stage(self, category: StageListCategory | int, index: int) -> SceneInfo:
        """Return the stage at ``index`` in the given list, raising IndexError if absent."""
        stages = self.stage_lists[StageListCategory(category)]
        if not 0 <= index < len(stages):
            raise IndexError(f"no stage {index} in {StageListCategory(category).name} list")
        return stages[index]


def _read_exact(stream: _Readable, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise EOFError("unexpected end of game configuration")
    return data


def _read_u8(stream: _Readable) -> int:
    return _read_exact(stream, 1)[0]


def _read_string(stream: _Readable) -> str:
    return _read_exact(stream, _read_u8(stream)).decode("latin-1")


def _read_strings(stream: _Readable) -> tuple[str, ...]:
    return tuple(_read_string(stream) for _ in range(_read_u8(stream)))


def read_game_config(stream: _Readable) -> GameConfig:
    """Parse a game configuration from a binary stream."""
    window_text = _read_string(stream)
    data_name = _read_string(stream)
    description = _read_string(stream)
    script_paths = _read_strings(stream)

    global_variables: dict[str, int] = {}
    for _ in range(_read_u8(stream)):
        name = _read_string(stream)
        (value,) = struct.unpack(">i", _read_exact(stream, 4))
        global_variables[name] = value

    sfx_paths = _read_strings(stream)

    players = tuple(
        (_read_string(stream), _read_string(stream), _read_string(stream))
        for _ in range(_read_u8(stream))
    )

    stage_lists: dict[StageListCategory, tuple[SceneInfo, ...]] = {}
    for category in _FILE_CATEGORY_ORDER:
        stages = []
        for _ in range(_read_u8(stream)):
            folder = _read_string(stream)
            act_id = _read_string(stream)
            name = _read_string(stream)
            highlighted = bool(_read_u8(stream))
            stages.append(SceneInfo(name=name, folder=folder, id=act_id, highlighted=highlighted))
        stage_lists[category] = tuple(stages)

    return GameConfig(
        window_text=window_text,
        data_name=data_name,
        description=description,
        script_paths=script_paths,
        global_variables=global_variables,
        sfx_paths=sfx_paths,
        players=players,
        stage_lists={category: stage_lists[category] for category in StageListCategory},
    )


def load_game_config(filesystem: FileSystem, path: str = DEFAULT_GAME_CONFIG_PATH) -> GameConfig:
    """Open ``path`` through ``filesystem`` and parse it; FileLoadError if absent."""
    with filesystem.open(path) as stream:
        return read_game_config(stream)


def _c_mod(a: int, b: int) -> int:
    remainder = abs(a) % abs(b)
    return -remainder if a < 0 else remainder


def _c_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


def get_lower_rate(intend_rate: int, target_rate: int) -> int:
    """Greatest common divisor of two rates; ``target_rate`` when ``intend_rate`` is 0."""
    result = target_rate
    while intend_rate:
        result, intend_rate = intend_rate, _c_mod(result, intend_rate)
    return result


def frame_skip_indices(target_refresh_rate: int, refresh_rate: int) -> tuple[int, int]:
    """Return (render frame index, skip frame index) for the two rates."""
    lower = get_lower_rate(target_refresh_rate, refresh_rate)
    if lower == 0:
        raise ValueError("refresh rates must not both be zero")
    return _c_div(target_refresh_rate, lower), _c_div(refresh_rate, lower)