"""Exceptions raised by tweeweave."""

from pathlib import Path
from typing import Union


class TweeweaveError(Exception):
    """Base class for tweeweave errors."""


class StaleAnchorError(TweeweaveError):
    """A passage's recorded title line can't be located unambiguously.

    Raised when the file was changed on disk so the recorded line no longer
    appears, or when several identical title lines make the match ambiguous.
    """

    def __init__(self, path: Union[str, Path], title_line: str, matches: int):
        self.path = Path(path)
        self.title_line = title_line
        self.matches = matches
        if matches == 0:
            reason = "not found"
        else:
            reason = f"found {matches} times"
        super().__init__(f"{self.path}: title line {title_line!r} {reason}")


class StoryLoadError(TweeweaveError):
    """A story folder couldn't be loaded because one of its files failed."""

    def __init__(self, path: Union[str, Path], cause: Exception):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Failed to load {self.path}: {cause}")
