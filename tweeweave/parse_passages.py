#!/usr/bin/env python3
"""
Parse Passages Module

Splits the text of one Twee source file into passages.

Input: text of a .twee file
Output: list of Passage objects sharing one StoryFile record

Every line starting with "::" begins a new passage; the lines after it, up to
the next "::" line, are its body. Text before the first passage is ignored.

Usage:
    python3 -m tweeweave.parse_passages src/story.twee passages.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Union

from tweeweave.config import LOG_LEVEL, PASSAGE_MARKER
from tweeweave.links import scan_links
from tweeweave.meta import decode_meta, meta_position, meta_size
from tweeweave.models import Passage, StoryFile
from tweeweave.save_passages import render_title_line
from tweeweave.title_line import parse_tags, split_title_line

logger = logging.getLogger(__name__)


# =============================================================================
# PASSAGE PARSING
# =============================================================================

def parse_passage_title(title_line: str, story_file: StoryFile) -> Passage:
    """Create a passage from its title line.

    Args:
        title_line: Full title line, "::" marker included
        story_file: File record the passage belongs to

    Returns:
        New passage with an empty body
    """
    parts = split_title_line(title_line[len(PASSAGE_MARKER):])
    meta = decode_meta(parts.meta_segment)

    passage = Passage(
        title_line=title_line,
        title=parts.title,
        tags=parse_tags(parts.tags_segment),
        meta=meta,
        position=meta_position(meta),
        size=meta_size(meta),
        file=story_file,
        line_ending='\r' if title_line.endswith('\r') else '',
    )
    passage.rendered_baseline = render_title_line(passage)
    return passage


def parse_passages(file_text: str, path: Union[str, Path]) -> List[Passage]:
    """Parse all passages of one file.

    Links are scanned into text_links but not resolved; that needs every
    file of the story (see links.resolve_links).

    Args:
        file_text: Full text of the file
        path: Path of the file (recorded on the StoryFile)

    Returns:
        Passages in file order (empty if the file has no "::" line)
    """
    path = Path(path)
    story_file = StoryFile(name=path.name, path=path)
    passage = None

    for line in file_text.split('\n'):
        if line[:2] == PASSAGE_MARKER:
            passage = parse_passage_title(line, story_file)
            story_file.passages.append(passage)
        elif passage is not None:
            passage.content += line + '\n'

    for passage in story_file.passages:
        passage.text_links = scan_links(passage.content)

    logger.debug(f"Parsed {len(story_file.passages)} passages from {path}")
    return story_file.passages


def passage_to_dict(passage: Passage) -> Dict:
    """Convert a passage to a JSON-friendly dict."""
    return {
        'title': passage.title,
        'tags': passage.tags,
        'position': {'x': passage.position.x, 'y': passage.position.y},
        'size': {'width': passage.size.width, 'height': passage.size.height},
        'meta': passage.meta.to_dict(),
        'content': passage.content,
        'links': passage.text_links,
    }


# =============================================================================
# CLI INTERFACE
# =============================================================================

def main():
    """Main entry point for command-line usage."""
    parser = argparse.ArgumentParser(
        description='Parse one Twee file into a JSON list of passages'
    )
    parser.add_argument('input_twee', type=Path, help='Path to .twee file')
    parser.add_argument('output_json', type=Path, help='Path to output JSON file')

    args = parser.parse_args()
    logging.basicConfig(level=LOG_LEVEL, format='%(levelname)s %(name)s: %(message)s')

    if not args.input_twee.exists():
        print(f"Error: Input file not found: {args.input_twee}", file=sys.stderr)
        sys.exit(2)

    with open(args.input_twee, 'r', encoding='utf-8', newline='') as f:
        file_text = f.read()

    passages = parse_passages(file_text, args.input_twee)

    args.output_json.parent.mkdir(parents=True, exist_ok=True)
    with open(args.output_json, 'w', encoding='utf-8') as f:
        json.dump([passage_to_dict(p) for p in passages], f, indent=2, ensure_ascii=False)

    print(f"✓ Parsed {len(passages)} passages", file=sys.stderr)
    print(f"✓ Output: {args.output_json}", file=sys.stderr)


if __name__ == '__main__':
    main()
