import io
import math
import struct

import pytest

from retrostage.datapack import FileLoadError
from retrostage.gameconfig import (
    EngineState,
    GameConfig,
    SceneInfo,
    StageListCategory,
    frame_skip_indices,
    get_lower_rate,
    load_game_config,
    read_game_config,
)
from retrostage.reader import FileSystem


def _s(text):
    raw = text.encode("latin-1")
    return bytes([len(raw)]) + raw


def _stage(folder, act_id, name, highlighted):
    return _s(folder) + _s(act_id) + _s(name) + bytes([highlighted])


def _config_bytes():
    out = _s("Window") + _s("Data") + _s("Desc")
    out += bytes([2]) + _s("Global/A.txt") + _s("Global/B.txt")
    out += bytes([2]) + _s("Lives") + struct.pack(">i", 3) + _s("Neg") + struct.pack(">i", -2)
    out += bytes([1]) + _s("Global/Jump.wav")
    out += bytes([1]) + _s("P.ani") + _s("P.txt") + _s("PLAYER")
    # File order: presentation, regular, special, bonus
    out += bytes([1]) + _stage("Title", "1", "TITLE", 0)
    out += bytes([2]) + _stage("R1", "1", "ZONE 1", 1) + _stage("R1", "2", "ZONE 2", 0)
    out += bytes([1]) + _stage("Special", "1", "SPECIAL 1", 0)
    out += bytes([0])
    return out


def test_header_strings():
    config = read_game_config(io.BytesIO(_config_bytes()))
    assert config.window_text == "Window"
    assert config.data_name == "Data"
    assert config.description == "Desc"


def test_lists_of_paths_and_players():
    config = read_game_config(io.BytesIO(_config_bytes()))
    assert config.script_paths == ("Global/A.txt", "Global/B.txt")
    assert config.sfx_paths == ("Global/Jump.wav",)
    assert config.players == (("P.ani", "P.txt", "PLAYER"),)


def test_global_variables_big_endian_signed_in_order():
    config = read_game_config(io.BytesIO(_config_bytes()))
    assert list(config.global_variables.items()) == [("Lives", 3), ("Neg", -2)]


def test_special_and_bonus_swapped():
    config = read_game_config(io.BytesIO(_config_bytes()))
    assert config.stage_lists[StageListCategory.SPECIAL] == (
        SceneInfo(name="SPECIAL 1", folder="Special", id="1", highlighted=False),
    )
    assert config.stage_lists[StageListCategory.BONUS] == ()


def test_stage_lookup():
    config = read_game_config(io.BytesIO(_config_bytes()))
    stage = config.stage(StageListCategory.REGULAR, 0)
    assert stage.name == "ZONE 1"
    assert stage.highlighted is True
    assert config.stage(1, 1).id == "2"


def test_stage_lookup_out_of_range():
    config = read_game_config(io.BytesIO(_config_bytes()))
    with pytest.raises(IndexError):
        config.stage(StageListCategory.BONUS, 0)
    with pytest.raises(IndexError):
        config.stage(StageListCategory.REGULAR, -1)


def test_empty_config_has_all_categories():
    config = GameConfig()
    assert set(config.stage_lists) == set(StageListCategory)


def test_truncated_stream_raises():
    data = _config_bytes()
    with pytest.raises(EOFError):
        read_game_config(io.BytesIO(data[:-3]))


def test_load_from_loose_file(tmp_path):
    target = tmp_path / "Data" / "Game" / "GameConfig.bin"
    target.parent.mkdir(parents=True)
    target.write_bytes(_config_bytes())
    config = load_game_config(FileSystem(tmp_path, {}), "Data/Game/GameConfig.bin")
    assert config.window_text == "Window"
    assert len(config.stage_lists[StageListCategory.REGULAR]) == 2


def test_load_missing_file(tmp_path):
    with pytest.raises(FileLoadError):
        load_game_config(FileSystem(tmp_path, {}), "Data/Game/GameConfig.bin")


def test_engine_state_values():
    assert EngineState.EXITGAME == 3
    assert EngineState(1) is EngineState.MAINGAME


@pytest.mark.parametrize("a,b", [(60, 60), (60, 144), (30, 75), (48, 120)])
def test_lower_rate_is_gcd(a, b):
    assert get_lower_rate(a, b) == math.gcd(a, b)


def test_lower_rate_zero_intend_returns_target():
    assert get_lower_rate(0, 75) == 75


@pytest.mark.parametrize("target,refresh", [(60, 60), (60, 144), (60, 75)])
def test_frame_skip_indices_ratio(target, refresh):
    render, skip = frame_skip_indices(target, refresh)
    assert render * refresh == skip * target
    assert math.gcd(render, skip) == 1


def test_frame_skip_indices_equal_rates():
    assert frame_skip_indices(60, 60) == (1, 1)


def test_frame_skip_indices_both_zero():
    with pytest.raises(ValueError):
        frame_skip_indices(0, 0)