# retrostage

`retrostage` reads the data of a retro side-scrolling game engine: the packed
data file that holds the game's assets, the game configuration, stage act
layouts, backgrounds, 128x128 chunk tiles, collision masks and the 16x16
tileset graphics. It also carries the engine's camera logic, which keeps the
player on screen while a stage scrolls.

It needs nothing beyond the Python standard library (3.10 or later).

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Packed data files

`retrostage.datapack.DataPack` opens a packed data file and finds where a file
lies inside it with `locate(path)`, which returns a `PackEntry` (path, offset,
size). A path that is not in the pack raises `FileLoadError`.
`split_pack_path` splits a pack path into its directory (with its trailing
`/`) and file name; `copy_file_path` turns every `/` into a backslash.

## Reading files

`retrostage.reader.FileSystem` opens game files from mod overrides, from a
packed data file or from loose files below a base folder, in that order. Mod
overrides are a mapping of game paths (matched without regard to case) to
files relative to the base folder.

```python
from retrostage.reader import FileSystem
from retrostage.gameconfig import load_game_config

fs = FileSystem(".", {})
fs.check_data_file("Data.rsdk")  # True if the pack could be opened

config = load_game_config(fs, "Data/Game/GameConfig.bin")
print(config.window_text)
print(config.stage(1, 0))
```

`FileSystem.open` returns a `VirtualFile`, a context manager. Files inside a
pack are stored with every byte inverted; `VirtualFile` undoes that as it
reads. It offers `read`, `read_byte`, `read_string` (length byte followed by
characters), `read_u32_le`, `read_u32_be`, `tell`, `seek` and `at_end`, with
positions relative to the start of the file. `info()` returns a `FileInfo`
snapshot that `FileSystem.reopen` opens again at the same position. A missing
file raises `FileLoadError`; reading past the end with the fixed-size readers
raises `EOFError`.

## Game configuration

`retrostage.gameconfig.read_game_config` parses a configuration from any
binary stream; `load_game_config` opens it through a `FileSystem` first. The
resulting `GameConfig` holds the window text, data name, description, script
and sound paths, global variables, players and four stage lists keyed by
`StageListCategory`. `GameConfig.stage(category, index)` returns a
`SceneInfo` or raises `IndexError`.

`get_lower_rate` gives the greatest common divisor of two refresh rates, and
`frame_skip_indices(target_refresh_rate, refresh_rate)` the render and skip
frame indices derived from it. The module also defines the `EngineState`,
`RetroLanguage` and `BytecodeFormat` enumerations.

## Stages

`retrostage.stage` builds stage file paths with `stage_file_path(folder,
name)` and `act_file_path(folder, act_id, extension)`, and parses act layouts
and backgrounds from an open stream with `read_act_layout` (returning an
`ActLayout` with its foreground `TileLayer`, title card and `ActObject`s) and
`read_stage_background` (returning a `StageBackground` of layers and
horizontal and vertical `LineScroll` tables). `StageTimer.tick(refresh_rate)`
advances the stage clock one frame; `StageFolderTracker.check(folder)` tells
whether a stage folder is already loaded and records it if not.

## Tiles

`retrostage.tiles` reads chunk tiles (`read_chunk_tiles`), the collision
masks of both collision paths (`read_collision_masks`) and run-length coded
tileset graphics (`read_tileset_gfx`), in which the colour of the first pixel
becomes transparent (0). `copy_tile(tileset, dest, src)` copies one 16x16
tile's pixels over another's.

## Camera

`retrostage.camera.Camera` follows a `CameraTarget` in one of four styles:
`follow`, `follow_cd_style` (the camera leads ahead of a fast or dashing
target), `follow_h_locked` and `follow_locked`. Set the stage size in chunks
with `set_bounds`, place the window with `centre_on` before the first frame,
and restore the starting scroll state with `reset`. Target positions are
16.16 fixed point; the camera's scroll values and boundaries are in pixels.

## What it does not do

This is a library for reading game data and computing camera scroll. It has
no command to run, and it does not draw, play sound, take input, run game
scripts or drive a main game loop.