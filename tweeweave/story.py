#!/usr/bin/env python3
"""
Story Module

Loads a whole Twee story folder into one in-memory passage graph.

Pipeline:
1. List the folder (dependency folders such as node_modules skipped)
2. Read every story file; any read failure fails the whole load
3. Parse each file into passages
4. Resolve links once across all files

File change events (see file_utils.watch_folder) can be applied to a loaded
story; the affected file is parsed again from scratch and links are
resolved again. Nothing here is thread-safe: callers that watch and save
at the same time must run read-parse-edit-save for a file as one step.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from tweeweave.config import (
    SCRIPT_EXTENSIONS,
    STORY_DATA_PASSAGE,
    STORY_TITLE_PASSAGE,
    STYLESHEET_EXTENSIONS,
    TWEE_EXTENSIONS,
)
from tweeweave.errors import StoryLoadError
from tweeweave.file_utils import (
    ADDED,
    CHANGED,
    REMOVED,
    FileChangeEvent,
    files_in_folder,
    read_file,
)
from tweeweave.links import resolve_links
from tweeweave.models import Passage, StoryFile
from tweeweave.parse_passages import parse_passages
from tweeweave.save_passages import save_passages

logger = logging.getLogger(__name__)


def is_story_file(path: Path) -> bool:
    return path.suffix.lower() in TWEE_EXTENSIONS


@dataclass
class Story:
    """A loaded story folder."""

    folder: Path
    files: Dict[Path, StoryFile] = field(default_factory=dict)
    story_data: Dict[str, Any] = field(default_factory=dict)
    story_title: str = ''
    js_files: List[Path] = field(default_factory=list)
    css_files: List[Path] = field(default_factory=list)

    @property
    def passages(self) -> List[Passage]:
        """All passages, in file order then parse order."""
        return [p for path in sorted(self.files) for p in self.files[path].passages]

    def find(self, title: str) -> List[Passage]:
        """Return every passage with the given title."""
        return [p for p in self.passages if p.title == title]

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def add_file(self, path: Path, file_text: str) -> StoryFile:
        """Parse a file's text into the story without resolving links."""
        passages = parse_passages(file_text, path)
        story_file = passages[0].file if passages else StoryFile(name=path.name, path=path)
        self.files[path] = story_file
        return story_file

    def refresh(self) -> None:
        """Resolve links and re-read story data after files changed."""
        passages = self.passages
        resolve_links(passages)
        self.story_title, self.story_data = read_special_passages(passages)

    def reload_file(self, path: Union[str, Path]) -> StoryFile:
        """Parse one file again, replacing its previous passages."""
        path = Path(path)
        story_file = self.add_file(path, read_file(path))
        self.refresh()
        logger.info(f"Reloaded {path} ({len(story_file.passages)} passages)")
        return story_file

    def remove_file(self, path: Union[str, Path]) -> None:
        """Drop a file and its passages from the story."""
        path = Path(path)
        if self.files.pop(path, None) is not None:
            self.refresh()
            logger.info(f"Removed {path}")

    def apply_change(self, event: FileChangeEvent) -> bool:
        """Apply a file change event to the story.

        Returns:
            True if the story changed
        """
        path = event.path
        if path.suffix.lower() in SCRIPT_EXTENSIONS + STYLESHEET_EXTENSIONS:
            return self._apply_asset_change(event)
        if not is_story_file(path):
            return False

        if event.kind == REMOVED:
            if path not in self.files:
                return False
            self.remove_file(path)
        elif event.kind in (ADDED, CHANGED):
            self.reload_file(path)
        else:
            raise ValueError(f"Unknown change kind: {event.kind}")
        return True

    def _apply_asset_change(self, event: FileChangeEvent) -> bool:
        assets = self.js_files if event.path.suffix.lower() in SCRIPT_EXTENSIONS else self.css_files
        if event.kind == ADDED and event.path not in assets:
            assets.append(event.path)
            assets.sort()
            return True
        if event.kind == REMOVED and event.path in assets:
            assets.remove(event.path)
            return True
        return event.kind == CHANGED

    def save(self, passages: Optional[List[Passage]] = None) -> List[Path]:
        """Save passages (default: all) back to their files."""
        return save_passages(self.passages if passages is None else passages)


# =============================================================================
# SPECIAL PASSAGES
# =============================================================================

def read_special_passages(passages: List[Passage]):
    """Read the StoryTitle text and the StoryData JSON.

    Returns:
        Tuple of (story_title, story_data); StoryData that isn't a JSON
        object is logged and read as {}
    """
    story_title = ''
    story_data = {}
    for passage in passages:
        if passage.title == STORY_TITLE_PASSAGE:
            story_title = passage.content.strip()
        elif passage.title == STORY_DATA_PASSAGE:
            try:
                data = json.loads(passage.content)
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid StoryData in {passage.file_path}: {e}")
                continue
            if isinstance(data, dict):
                story_data = data
            else:
                logger.warning(f"Invalid StoryData in {passage.file_path}: not an object")
    return story_title, story_data


# =============================================================================
# LOADING
# =============================================================================

def read_story_files(paths: List[Path]) -> Dict[Path, str]:
    """Read every story file, failing the whole batch on the first error."""
    texts = {}
    for path in paths:
        try:
            texts[path] = read_file(path)
        except OSError as e:
            raise StoryLoadError(path, e) from e
    return texts


def load_story(folder: Union[str, Path]) -> Story:
    """Load a story folder.

    Args:
        folder: Story folder to scan recursively

    Returns:
        Story with all passages parsed and links resolved

    Raises:
        StoryLoadError: The folder couldn't be listed or a file couldn't be read
    """
    folder = Path(folder)
    try:
        paths = files_in_folder(folder)
    except OSError as e:
        raise StoryLoadError(folder, e) from e

    story = Story(folder=folder)
    story.js_files = [p for p in paths if p.suffix.lower() in SCRIPT_EXTENSIONS]
    story.css_files = [p for p in paths if p.suffix.lower() in STYLESHEET_EXTENSIONS]

    texts = read_story_files([p for p in paths if is_story_file(p)])
    for path, file_text in texts.items():
        story.add_file(path, file_text)
    story.refresh()

    logger.info(
        f"Loaded {len(story.passages)} passages from {len(story.files)} files in {folder}"
    )
    return story


# =============================================================================
# CLI INTERFACE
# =============================================================================

def main():
    """Main entry point for command-line usage."""
    import argparse
    import sys
    import threading

    from tweeweave.config import LOG_LEVEL, WATCH_INTERVAL
    from tweeweave.file_utils import prompt_for_folder, watch_folder
    from tweeweave.links import dangling_links

    parser = argparse.ArgumentParser(
        description='Load a Twee story folder and report its link graph'
    )
    parser.add_argument('folder', type=Path, nargs='?',
                        help='Story folder (asked for if omitted)')
    parser.add_argument('--watch', action='store_true',
                        help='Keep running and reload files as they change')
    parser.add_argument('--interval', type=float, default=WATCH_INTERVAL,
                        help=f'Seconds between change polls (default: {WATCH_INTERVAL})')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')

    args = parser.parse_args()
    logging.basicConfig(level='DEBUG' if args.verbose else LOG_LEVEL,
                        format='%(levelname)s %(name)s: %(message)s')

    folder = args.folder or prompt_for_folder()
    if folder is None:
        print("Error: no story folder selected", file=sys.stderr)
        return 2

    try:
        story = load_story(folder)
    except StoryLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    def report():
        dangling = {p.title: dangling_links(p) for p in story.passages if dangling_links(p)}
        print(f"✓ {len(story.passages)} passages in {len(story.files)} files", file=sys.stderr)
        for title, links in sorted(dangling.items()):
            print(f"  {title}: missing {', '.join(links)}", file=sys.stderr)

    report()
    if not args.watch:
        return 0

    stop_event = threading.Event()
    try:
        for event in watch_folder(folder, interval=args.interval, stop_event=stop_event):
            try:
                changed = story.apply_change(event)
            except OSError as e:
                logger.error(f"Could not reload {event.path}: {e}")
                continue
            if changed:
                report()
    except KeyboardInterrupt:
        stop_event.set()
    except OSError as e:
        logger.error(f"Stopped watching {folder}: {e}")
        return 2
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
