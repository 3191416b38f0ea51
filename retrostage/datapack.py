"""Lookup of files stored inside a packed game data file.

A data pack starts with a header::

    u32 LE   header size (bytes before the first directory's data)
    u8       directory count
    repeated directory count times:
        u8       name length
        bytes    directory name, ending in '/'
        u32 LE   offset of the directory's files, relative to the header end

Each directory's files follow one another as::

    u8       name length
    bytes    file name
    u32 LE   file size
    bytes    file contents, every byte inverted (XOR 0xFF)
"""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from typing import BinaryIO

__all__ = [
    "FileLoadError",
    "PackEntry",
    "DataPack",
    "split_pack_path",
    "copy_file_path",
]


class FileLoadError(OSError):
    """Raised when a file cannot be opened or found."""


@dataclass(frozen=True)
class PackEntry:
    """Where one file's contents lie inside a data pack."""

    path: str
    offset: int
    size: int


def split_pack_path(file_path: str) -> tuple[str, str]:
    """Split a pack path into its directory (with trailing '/') and file name."""
    directory, slash, name = file_path.rpartition("/")
    if not slash:
        return "", file_path
    return directory + slash, name


def copy_file_path(path: str) -> str:
    """Return the path with every '/' turned into a backslash."""
    return path.replace("/", "\\")


def _read_exact(stream: BinaryIO, size: int, file_path: str) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise FileLoadError(f"Couldn't load file '{file_path}': data pack is truncated")
    return data


def _read_u8(stream: BinaryIO, file_path: str) -> int:
    return _read_exact(stream, 1, file_path)[0]


def _read_u32(stream: BinaryIO, file_path: str) -> int:
    return struct.unpack("<I", _read_exact(stream, 4, file_path))[0]


def _read_name(stream: BinaryIO, file_path: str) -> str:
    length = _read_u8(stream, file_path)
    return _read_exact(stream, length, file_path).decode("latin-1")


class DataPack:
    """A packed data file whose entries can be located by path."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)
        try:
            with open(self.path, "rb") as stream:
                stream.seek(0, os.SEEK_END)
                self.size = stream.tell()
        except OSError as exc:
            raise FileLoadError(f"Couldn't open data file '{self.path}'") from exc

    def locate(self, file_path: str) -> PackEntry:
        """Find a file in the pack, raising FileLoadError if it is absent."""
        directory, name = split_pack_path(file_path)
        try:
            with open(self.path, "rb") as stream:
                return self._locate(stream, file_path, directory, name)
        except FileLoadError:
            raise
        except OSError as exc:
            raise FileLoadError(f"Couldn't load file '{file_path}'") from exc

    def _locate(self, stream: BinaryIO, file_path: str, directory: str, name: str) -> PackEntry:
        header_size = _read_u32(stream, file_path)
        dir_count = _read_u8(stream, file_path)

        for index in range(dir_count):
            dir_name = _read_name(stream, file_path)
            dir_offset = _read_u32(stream, file_path)
            if dir_name != directory:
                continue
            if index == dir_count - 1:
                next_offset = self.size - header_size
            else:
                _read_name(stream, file_path)
                next_offset = _read_u32(stream, file_path)
            break
        else:
            raise FileLoadError(f"Couldn't load file '{file_path}'")

        limit = next_offset + header_size
        position = dir_offset + header_size
        stream.seek(position)
        while True:
            entry_name = _read_name(stream, file_path)
            entry_size = _read_u32(stream, file_path)
            position += 1 + len(entry_name) + 4
            found = entry_name == name
            if not found:
                position += entry_size
            # Past the directory's end: the file would belong to the next one.
            if position >= limit:
                raise FileLoadError(f"Couldn't load file '{file_path}'")
            if found:
                return PackEntry(file_path, position, entry_size)
            stream.seek(position)