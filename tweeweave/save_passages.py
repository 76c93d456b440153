#!/usr/bin/env python3
"""
Save Passages Module

Writes edited passages back into their Twee source files.

Only title lines are rewritten. Each passage remembers the exact text of
its title line as last read or written (title_line); saving looks that
line up in the file text as read and swaps in a freshly built one. Body
text and everything else in the file stays byte-identical, and passages
whose title, tags, metadata, position and size are unchanged are not
touched at all.

Implementation notes:
- Idempotent: saving twice without edits writes the same text
- A recorded title line that is missing from the file, or present more
  than once, raises StaleAnchorError and nothing is written for that file

Usage:
    python3 -m tweeweave.save_passages src/ [--normalize]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List

from tweeweave.config import LOG_LEVEL, PASSAGE_MARKER
from tweeweave.errors import StaleAnchorError, StoryLoadError
from tweeweave.file_utils import read_file, write_file
from tweeweave.meta import encode_meta, update_meta_layout
from tweeweave.models import Passage

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_STALE = 1
EXIT_ERROR = 2


# =============================================================================
# TITLE LINE RENDERING
# =============================================================================

def render_title_line(passage: Passage) -> str:
    """Build the title line for a passage's current state.

    Format: ":: <title>[ [<tags>]] <metadata JSON>" (no line terminator)
    """
    tags = f" [{' '.join(passage.tags)}]" if passage.tags else ''
    meta = encode_meta(passage.meta, passage.position, passage.size)
    return f"{PASSAGE_MARKER} {passage.title}{tags} {meta}"


def is_changed(passage: Passage) -> bool:
    """Check if a passage's title line needs rewriting."""
    return render_title_line(passage) != passage.rendered_baseline


def mark_changed(passage: Passage) -> None:
    """Force a passage's title line to be rewritten on the next save."""
    passage.rendered_baseline = ''


def find_line(text: str, line: str) -> List[int]:
    """Find every offset where `line` appears as a complete line of `text`."""
    offsets = []
    pos = text.find(line)
    while pos != -1:
        end = pos + len(line)
        starts_line = pos == 0 or text[pos - 1] == '\n'
        ends_line = end == len(text) or text[end] == '\n'
        if starts_line and ends_line:
            offsets.append(pos)
        pos = text.find(line, pos + 1)
    return offsets


# =============================================================================
# FILE REWRITING
# =============================================================================

def rewrite_title_lines(file_text: str, passages: List[Passage]) -> str:
    """Rewrite the title lines of changed passages inside a file's text.

    Every recorded title line is located in the text as given before any
    line is replaced, so a new title line may repeat another passage's old
    one. Passage state is only updated once every passage was located, so
    a StaleAnchorError leaves both the text and the passages untouched.
    On success, every passage's metadata holds its current position and
    size, changed or not.

    Args:
        file_text: Current text of the file
        passages: Passages belonging to that file

    Returns:
        The rewritten file text

    Raises:
        StaleAnchorError: A changed passage's recorded title line is missing
            or ambiguous
    """
    updates = []
    for passage in passages:
        rendered = render_title_line(passage)
        if rendered == passage.rendered_baseline:
            continue

        offsets = find_line(file_text, passage.title_line)
        if len(offsets) != 1:
            raise StaleAnchorError(passage.file_path or '<unknown>', passage.title_line, len(offsets))
        updates.append((offsets[0], passage, rendered))

    # Bottom-up so earlier offsets stay valid
    for start, passage, rendered in sorted(updates, key=lambda u: u[0], reverse=True):
        new_line = rendered + passage.line_ending
        file_text = file_text[:start] + new_line + file_text[start + len(passage.title_line):]
        passage.title_line = new_line
        passage.rendered_baseline = rendered

    for passage in passages:
        update_meta_layout(passage.meta, passage.position, passage.size)

    return file_text


def group_by_file(passages: List[Passage]) -> Dict[Path, List[Passage]]:
    """Group passages by owning file, each group in the file's passage order."""
    groups: Dict[Path, List[Passage]] = {}
    for passage in passages:
        if passage.file is None:
            raise ValueError(f"Passage {passage.title!r} has no file")
        groups.setdefault(passage.file.path, []).append(passage)

    for path, group in groups.items():
        order = {id(p): index for index, p in enumerate(group[0].file.passages)}
        group.sort(key=lambda p: order.get(id(p), len(order)))

    return groups


def save_passages(passages: List[Passage],
                  read: Callable[[Path], str] = read_file,
                  write: Callable[[Path, str], None] = write_file) -> List[Path]:
    """Save passages back to their files.

    Each affected file is read once and written at most once; files whose
    text didn't change are not written. Files are processed one after
    another, so an error in one file leaves earlier files saved.

    Args:
        passages: Passages to save (any mix of files)
        read: Function reading a file's current text
        write: Function writing a file's new text

    Returns:
        Paths of the files that were written

    Raises:
        StaleAnchorError: See rewrite_title_lines
        OSError: Reading or writing a file failed
    """
    written = []
    for path, file_passages in group_by_file(passages).items():
        original = read(path)
        rewritten = rewrite_title_lines(original, file_passages)
        if rewritten == original:
            logger.debug(f"No title line changes in {path}")
            continue
        write(path, rewritten)
        written.append(path)
        logger.info(f"Saved {path}")

    return written


# =============================================================================
# CLI INTERFACE
# =============================================================================

def main():
    """Main entry point for command-line usage."""
    from tweeweave.story import load_story

    parser = argparse.ArgumentParser(
        description='Rewrite passage title lines of a Twee story folder'
    )
    parser.add_argument('folder', type=Path, help='Story folder')
    parser.add_argument('--normalize', action='store_true',
                        help='Rewrite every title line in canonical form')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')

    args = parser.parse_args()
    logging.basicConfig(level='DEBUG' if args.verbose else LOG_LEVEL,
                        format='%(levelname)s %(name)s: %(message)s')

    if not args.folder.is_dir():
        print(f"Error: {args.folder} is not a directory", file=sys.stderr)
        return EXIT_ERROR

    try:
        story = load_story(args.folder)
    except StoryLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.normalize:
        for passage in story.passages:
            mark_changed(passage)

    try:
        written = story.save()
    except StaleAnchorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_STALE
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    print(f"✓ Checked {len(story.passages)} passages in {len(story.files)} files", file=sys.stderr)
    print(f"✓ Rewrote {len(written)} file(s)", file=sys.stderr)
    return EXIT_SUCCESS


if __name__ == '__main__':
    sys.exit(main())
