"""Opening game files from a data pack, a mod folder or loose files on disk."""

from __future__ import annotations

import logging
import os
import struct
from collections.abc import Mapping
from dataclasses import dataclass
from typing import BinaryIO

from retrostage.datapack import DataPack, FileLoadError

__all__ = ["FileInfo", "VirtualFile", "FileSystem"]

_log = logging.getLogger(__name__)

_INVERT = bytes(b ^ 0xFF for b in range(256))


@dataclass(frozen=True)
class FileInfo:
    """A snapshot of an open file, enough to reopen it at the same position."""

    file_name: str
    path: str
    file_size: int
    virtual_file_offset: int
    position: int
    encrypted: bool
    is_mod: bool


class VirtualFile:
    """A readable window onto a file, possibly stored inverted inside a pack."""

    def __init__(
        self,
        stream: BinaryIO,
        *,
        file_name: str,
        path: str,
        offset: int,
        size: int,
        encrypted: bool,
        is_mod: bool,
        position: int = 0,
    ) -> None:
        self._stream = stream
        self.file_name = file_name
        self.path = path
        self.offset = offset
        self.size = size
        self.encrypted = encrypted
        self.is_mod = is_mod
        self._position = position

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; fewer are returned at the end of the file."""
        if size < 0:
            raise ValueError("size must not be negative")
        count = max(0, min(size, self.size - self._position))
        if count == 0:
            return b""
        self._stream.seek(self.offset + self._position)
        data = self._stream.read(count)
        self._position += len(data)
        if self.encrypted:
            data = data.translate(_INVERT)
        return data

    def _read_exact(self, size: int) -> bytes:
        data = self.read(size)
        if len(data) != size:
            raise EOFError(f"unexpected end of file '{self.file_name}'")
        return data

    def read_byte(self) -> int:
        """Read one unsigned byte, raising EOFError at the end of the file."""
        return self._read_exact(1)[0]

    def read_string(self) -> str:
        """Read a string stored as a length byte followed by its characters."""
        length = self.read_byte()
        return self._read_exact(length).decode("latin-1")

    def read_u32_le(self) -> int:
        """Read a little-endian 32-bit unsigned integer."""
        return struct.unpack("<I", self._read_exact(4))[0]

    def read_u32_be(self) -> int:
        """Read a big-endian 32-bit unsigned integer."""
        return struct.unpack(">I", self._read_exact(4))[0]

    def tell(self) -> int:
        """Current position, relative to the start of this file."""
        return self._position

    def seek(self, position: int) -> None:
        """Move to ``position``, relative to the start of this file."""
        if position < 0:
            raise ValueError("position must not be negative")
        self._position = position

    def at_end(self) -> bool:
        """True once every byte of the file has been read."""
        return self._position >= self.size

    def info(self) -> FileInfo:
        """Snapshot the file so it can be reopened later with the same state."""
        return FileInfo(
            file_name=self.file_name,
            path=self.path,
            file_size=self.size,
            virtual_file_offset=self.offset,
            position=self._position,
            encrypted=self.encrypted,
            is_mod=self.is_mod,
        )

    @property
    def closed(self) -> bool:
        return self._stream.closed

    def close(self) -> None:
        """Close the underlying file."""
        self._stream.close()

    def __enter__(self) -> VirtualFile:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class FileSystem:
    """Resolves game file paths to mod files, pack entries or loose files."""

    def __init__(
        self,
        base_path: str | os.PathLike[str] = ".",
        mod_files: Mapping[str, str] | None = None,
    ) -> None:
        self.base_path = os.fspath(base_path)
        self.mod_files = {key.lower(): value for key, value in (mod_files or {}).items()}
        self.data_pack: DataPack | None = None

    @property
    def using_data_file(self) -> bool:
        return self.data_pack is not None

    def check_data_file(self, path: str | os.PathLike[str]) -> bool:
        """Use the pack at ``path`` if it can be opened; report whether it was."""
        full_path = os.path.join(self.base_path, os.fspath(path))
        try:
            self.data_pack = DataPack(full_path)
        except FileLoadError:
            self.data_pack = None
            return False
        return True

    def open(self, file_path: str) -> VirtualFile:
        """Open a game file, raising FileLoadError if it cannot be found."""
        mod_path = self.mod_files.get(file_path.lower())
        if mod_path is not None:
            real_path = os.path.join(self.base_path, mod_path)
            return self._open_loose(file_path, real_path, is_mod=True)

        if self.data_pack is not None:
            entry = self.data_pack.locate(file_path)
            try:
                stream = open(self.data_pack.path, "rb")
            except OSError as exc:
                raise FileLoadError(f"Couldn't load file '{file_path}'") from exc
            _log.debug("Loaded File '%s'", file_path)
            return VirtualFile(
                stream,
                file_name=file_path,
                path=self.data_pack.path,
                offset=entry.offset,
                size=entry.size,
                encrypted=True,
                is_mod=False,
            )

        return self._open_loose(file_path, os.path.join(self.base_path, file_path), is_mod=False)

    def _open_loose(self, file_path: str, real_path: str, *, is_mod: bool) -> VirtualFile:
        try:
            stream = open(real_path, "rb")
        except OSError as exc:
            _log.debug("Couldn't load file '%s'", file_path)
            raise FileLoadError(f"Couldn't load file '{file_path}'") from exc
        size = stream.seek(0, os.SEEK_END)
        _log.debug("Loaded File '%s'", real_path)
        return VirtualFile(
            stream,
            file_name=file_path,
            path=real_path,
            offset=0,
            size=size,
            encrypted=False,
            is_mod=is_mod,
        )

    def reopen(self, info: FileInfo) -> VirtualFile:
        """Open the file described by ``info`` again, at its saved position."""
        try:
            stream = open(info.path, "rb")
        except OSError as exc:
            raise FileLoadError(f"Couldn't load file '{info.file_name}'") from exc
        return VirtualFile(
            stream,
            file_name=info.file_name,
            path=info.path,
            offset=info.virtual_file_offset,
            size=info.file_size,
            encrypted=info.encrypted,
            is_mod=info.is_mod,
            position=info.position,
        )