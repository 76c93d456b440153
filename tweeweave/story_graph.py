#!/usr/bin/env python3
"""
Story Graph Module

Exports a loaded story folder as story_graph.json.

Input: Twee story folder
Output: story_graph.json (passages, resolved links, metadata)

Passages are keyed by title. When several passages share a title (allowed,
links fan out to all of them) the later ones get a " (2)", " (3)" suffix
so none is lost.

Usage:
    python3 -m tweeweave.story_graph src/ story_graph.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict

from tweeweave.config import LOG_LEVEL, STORY_DATA_PASSAGE, STORY_TITLE_PASSAGE
from tweeweave.errors import StoryLoadError
from tweeweave.links import dangling_links
from tweeweave.story import Story, load_story

logger = logging.getLogger(__name__)


def _relative(path: Path, folder: Path) -> str:
    try:
        return path.relative_to(folder).as_posix()
    except ValueError:
        return path.as_posix()


def build_story_graph(story: Story) -> Dict:
    """Build the story_graph data structure for a loaded story.

    Args:
        story: Story returned by load_story()

    Returns:
        Dict with structure:
        {
            "passages": {
                "PassageName": {
                    "file": "chapter1.twee",
                    "tags": ["tag"],
                    "position": {"x": 0, "y": 0},
                    "size": {"width": 100, "height": 100},
                    "content": "passage text...",
                    "links": ["Link1", "Missing"],
                    "links_to": ["Link1"],
                    "linked_from": ["Start"],
                    "dangling": ["Missing"]
                }
            },
            "start_passage": "Start",
            "metadata": {
                "story_title": "...",
                "ifid": "...",
                "format": "...",
                "format_version": "...",
                "file_count": 2,
                "passage_count": 10
            }
        }
    """
    passages = {}
    for passage in story.passages:
        if passage.title in (STORY_TITLE_PASSAGE, STORY_DATA_PASSAGE):
            continue

        key = passage.title
        suffix = 2
        while key in passages:
            key = f"{passage.title} ({suffix})"
            suffix += 1

        passages[key] = {
            'file': _relative(passage.file_path, story.folder),
            'tags': list(passage.tags),
            'position': {'x': passage.position.x, 'y': passage.position.y},
            'size': {'width': passage.size.width, 'height': passage.size.height},
            'content': passage.content,
            'links': list(passage.text_links),
            'links_to': [target.title for target in passage.links_to],
            'linked_from': [source.title for source in passage.linked_from],
            'dangling': dangling_links(passage),
        }

    start_passage = story.story_data.get('start', '')
    if not start_passage:
        start_passage = 'Start' if 'Start' in passages else next(iter(passages), '')

    return {
        'passages': passages,
        'start_passage': start_passage,
        'metadata': {
            'story_title': story.story_title or 'Untitled',
            'ifid': story.story_data.get('ifid', ''),
            'format': story.story_data.get('format', 'Unknown'),
            'format_version': story.story_data.get('format-version', 'Unknown'),
            'file_count': len(story.files),
            'passage_count': len(passages),
        },
    }


def main():
    """Main entry point for command-line usage."""
    parser = argparse.ArgumentParser(
        description='Export a Twee story folder as story_graph.json'
    )
    parser.add_argument('folder', type=Path, help='Story folder')
    parser.add_argument('output_json', type=Path, help='Path to output story_graph.json file')

    args = parser.parse_args()
    logging.basicConfig(level=LOG_LEVEL, format='%(levelname)s %(name)s: %(message)s')

    try:
        story = load_story(args.folder)
    except StoryLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    story_graph = build_story_graph(story)

    args.output_json.parent.mkdir(parents=True, exist_ok=True)
    with open(args.output_json, 'w', encoding='utf-8') as f:
        json.dump(story_graph, f, indent=2, ensure_ascii=False)

    print(f"✓ Parsed {len(story_graph['passages'])} passages", file=sys.stderr)
    print(f"✓ Start passage: {story_graph['start_passage']}", file=sys.stderr)
    print(f"✓ Output: {args.output_json}", file=sys.stderr)


if __name__ == '__main__':
    main()
