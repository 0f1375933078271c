from __future__ import annotations

import os
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO

from loguru import logger


def write_atomically(destination: Path, write: Callable[[BinaryIO], None]) -> None:
    """Write through a sibling temp file renamed into place, so ``destination`` is never partial."""
    fd, tmp_name = tempfile.mkstemp(dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as tmp:
            write(tmp)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_path, destination)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


class ImageCache:
    """The single on-disk copy of the most recently generated image."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def write(self, data: bytes) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        write_atomically(self._path, lambda f: f.write(data))
        logger.debug(f"Image cache updated: {self._path} ({len(data)} bytes)")

    def save_to(self, destination: str | Path) -> Path:
        dest = Path(destination).expanduser()
        if dest.suffix.lower() != ".png":
            dest = dest.with_name(dest.name + ".png")
        dest.parent.mkdir(parents=True, exist_ok=True)

        def copy(out: BinaryIO) -> None:
            with open(self._path, "rb") as src:
                shutil.copyfileobj(src, out)

        write_atomically(dest, copy)
        logger.info(f"Image saved: {self._path} -> {dest}")
        return dest

    def remove(self) -> None:
        self._path.unlink(missing_ok=True)
