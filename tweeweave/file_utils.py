#!/usr/bin/env python3
"""
File Utilities

Thin file-system helpers used by the story loader and the CLI tools:
reading/writing story files, listing a story folder, polling it for
changes and asking the user for a folder.

Files are read and written with newline translation disabled so a file
that is saved without edits comes back byte-identical (CRLF included).
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from tweeweave.config import EXCLUDED_DIRS, WATCH_INTERVAL

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Change event kinds
ADDED = 'added'
REMOVED = 'removed'
CHANGED = 'changed'


@dataclass(frozen=True)
class FileChangeEvent:
    """A file-level change inside a watched folder."""
    kind: str  # ADDED, REMOVED or CHANGED
    path: Path


# =============================================================================
# READ / WRITE
# =============================================================================

def read_file(path: PathLike) -> str:
    """Read a story file as UTF-8 text. Raises OSError on failure."""
    with open(path, 'r', encoding='utf-8', newline='') as f:
        return f.read()


def write_file(path: PathLike, text: str) -> None:
    """Write a story file as UTF-8 text. Raises OSError on failure."""
    with open(path, 'w', encoding='utf-8', newline='') as f:
        f.write(text)


# =============================================================================
# FOLDER LISTING
# =============================================================================

def is_excluded_path(path: PathLike) -> bool:
    """Check if a path lies inside an excluded (dependency) directory.

    Args:
        path: Path relative to the story folder

    Examples:
        >>> is_excluded_path('node_modules/pkg/index.js')
        True
        >>> is_excluded_path('src/start.twee')
        False
    """
    return any(part in EXCLUDED_DIRS for part in Path(path).parts)


def files_in_folder(folder: PathLike,
                    is_excluded: Callable[[PathLike], bool] = is_excluded_path) -> List[Path]:
    """List every file under a folder, recursively.

    Args:
        folder: Story folder
        is_excluded: Predicate on folder-relative paths; excluded
            directories are not descended into

    Returns:
        File paths in sorted order
    """
    folder = Path(folder)
    if not folder.is_dir():
        raise NotADirectoryError(f"Not a directory: {folder}")

    files = []
    for dirpath, dirnames, filenames in os.walk(folder):
        relative_dir = Path(dirpath).relative_to(folder)
        dirnames[:] = [d for d in dirnames if not is_excluded(relative_dir / d)]
        for filename in filenames:
            if not is_excluded(relative_dir / filename):
                files.append(Path(dirpath) / filename)

    return sorted(files)


# =============================================================================
# WATCHING
# =============================================================================

def snapshot_folder(folder: PathLike,
                    is_excluded: Callable[[PathLike], bool] = is_excluded_path) -> Dict[Path, Tuple[int, int]]:
    """Record (mtime_ns, size) for every file in a folder."""
    snapshot = {}
    for path in files_in_folder(folder, is_excluded):
        try:
            stat = path.stat()
        except FileNotFoundError:
            # Deleted between listing and stat; the next poll reports it
            continue
        snapshot[path] = (stat.st_mtime_ns, stat.st_size)
    return snapshot


def diff_snapshots(old: Dict[Path, Tuple[int, int]],
                   new: Dict[Path, Tuple[int, int]]) -> List[FileChangeEvent]:
    """Compare two folder snapshots and return the file-level changes."""
    events = []
    for path in sorted(new):
        if path not in old:
            events.append(FileChangeEvent(ADDED, path))
        elif new[path] != old[path]:
            events.append(FileChangeEvent(CHANGED, path))
    for path in sorted(old):
        if path not in new:
            events.append(FileChangeEvent(REMOVED, path))
    return events


def watch_folder(folder: PathLike,
                 interval: float = WATCH_INTERVAL,
                 stop_event: Optional[threading.Event] = None,
                 is_excluded: Callable[[PathLike], bool] = is_excluded_path,
                 max_polls: Optional[int] = None) -> Iterator[FileChangeEvent]:
    """Poll a folder and yield file changes as they happen.

    Files already present when watching starts are not reported. Directory
    changes are never reported, only the files inside them.

    Args:
        folder: Folder to watch
        interval: Seconds between polls
        stop_event: Set it to stop watching
        is_excluded: Predicate on folder-relative paths to ignore
        max_polls: Stop after this many polls (None: run until stopped)

    Yields:
        FileChangeEvent for each added, removed or changed file
    """
    previous = snapshot_folder(folder, is_excluded)
    logger.info(f"Watching {folder} ({len(previous)} files)")

    polls = 0
    while stop_event is None or not stop_event.is_set():
        if max_polls is not None and polls >= max_polls:
            return
        if stop_event is not None:
            if stop_event.wait(interval):
                return
        else:
            time.sleep(interval)
        polls += 1

        current = snapshot_folder(folder, is_excluded)
        for event in diff_snapshots(previous, current):
            logger.debug(f"File {event.kind}: {event.path}")
            yield event
        previous = current


# =============================================================================
# FOLDER PROMPT
# =============================================================================

def prompt_for_folder(input_func: Callable[[str], str] = input) -> Optional[Path]:
    """Ask the user for a story folder.

    Returns:
        The chosen folder, or None if the answer was blank or not a folder
    """
    answer = input_func("Story folder: ").strip()
    if not answer:
        return None

    folder = Path(answer).expanduser()
    if not folder.is_dir():
        logger.warning(f"Not a folder: {folder}")
        return None
    return folder
