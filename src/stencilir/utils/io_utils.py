"""
Centralized file I/O utilities.

- Single place for encoding handling
- Use Path.read_bytes()/read_text() consistently (no raw open/read)
"""

from pathlib import Path
from typing import Union

from .config import DEFAULT_FILE_ENCODING


def _as_path(path: Union[Path, str]) -> Path:
    return Path(path) if not isinstance(path, Path) else path


def read_binary_file(path: Union[Path, str]) -> bytes:
    return _as_path(path).read_bytes()


def write_binary_file(path: Union[Path, str], data: bytes) -> None:
    _as_path(path).write_bytes(data)


def read_text_file(path: Union[Path, str]) -> str:
    """Read text file with standard encoding."""
    return _as_path(path).read_text(encoding=DEFAULT_FILE_ENCODING)


def write_text_file(path: Union[Path, str], text: str) -> None:
    _as_path(path).write_text(text, encoding=DEFAULT_FILE_ENCODING)
