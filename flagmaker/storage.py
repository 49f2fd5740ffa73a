"""Saved flag files and the hand-off of the active flag.

One text file per generated flag, named after the source image, lives in a
dedicated directory.  The "active" flag is whatever a sink was last given;
:class:`ActiveFlagSink` keeps it in a single file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Union

from flagmaker.config import FLAG_SUFFIX
from flagmaker.encoder import decode
from flagmaker.errors import FlagFormatError, PersistenceError

logger = logging.getLogger(__name__)

FlagSink = Callable[[str], None]


class FlagStore:
    """Directory of saved flags (created on first use)."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(self.directory, str(exc)) from exc

    def path_for(self, source: Union[str, Path]) -> Path:
        return self.directory / (Path(source).stem + FLAG_SUFFIX)

    def save(self, source: Union[str, Path], flag: str) -> Path:
        """Write ``flag`` under the source image's base name."""
        target = self.path_for(source)
        try:
            target.write_text(flag, encoding="utf-8")
        except OSError as exc:
            logger.error("Could not save flag file: %s", exc)
            raise PersistenceError(target, str(exc)) from exc
        logger.info("Saved flag %s", target.name)
        return target

    def list_flags(self) -> List[Path]:
        if not self.directory.is_dir():
            return []
        return sorted(p for p in self.directory.glob(f"*{FLAG_SUFFIX}") if p.is_file())

    def resolve(self, name_or_path: Union[str, Path]) -> Path:
        """Accept a saved flag's name (with or without suffix) or a path."""
        candidate = Path(name_or_path)
        if candidate.is_file():
            return candidate
        if candidate.suffix != FLAG_SUFFIX:
            candidate = candidate.with_name(candidate.name + FLAG_SUFFIX)
        return self.directory / candidate.name

    def load(self, name_or_path: Union[str, Path]) -> str:
        """Read a saved flag and check it parses as an encoded flag."""
        path = self.resolve(name_or_path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("Could not load saved flag: %s", exc)
            raise PersistenceError(path, str(exc)) from exc
        flag = text.strip()
        decode(flag)
        return flag


class ActiveFlagSink:
    """Keeps the active flag in one file, replaced on every update."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def __call__(self, flag: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_name(self.path.name + ".tmp")
            tmp.write_text(flag, encoding="utf-8")
            tmp.replace(self.path)
        except OSError as exc:
            raise PersistenceError(self.path, str(exc)) from exc

    def read(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(self.path, str(exc)) from exc


def set_flag(sink: FlagSink, flag: str) -> None:
    """Hand a non-empty flag to the downstream sink."""
    if not flag:
        raise FlagFormatError("Flag content was empty")
    sink(flag)
    logger.info("Flag has been set (%d tokens)", flag.count(",") + 1)
