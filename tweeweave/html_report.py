#!/usr/bin/env python3
"""
HTML Report Module

Generates a human-readable HTML link map of a story folder.

Input: Twee story folder
Output: link-map.html

Responsibilities:
    - Load Jinja2 template
    - Group passages by source file
    - Show outgoing links, incoming links and dangling references
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from tweeweave.config import STORY_DATA_PASSAGE, STORY_TITLE_PASSAGE
from tweeweave.links import dangling_links
from tweeweave.story import Story

TEMPLATE_DIR = Path(__file__).parent / 'templates'
TEMPLATE_NAME = 'link-map.html.jinja2'


def build_report_data(story: Story) -> Dict:
    """Collect the template data for a story."""
    files: List[Dict] = []
    total_dangling = 0
    for path in sorted(story.files):
        story_file = story.files[path]
        rows = []
        for passage in story_file.passages:
            dangling = dangling_links(passage)
            total_dangling += len(dangling)
            rows.append({
                'title': passage.title,
                'tags': passage.tags,
                'links_to': [target.title for target in passage.links_to],
                'linked_from': sorted({source.title for source in passage.linked_from}),
                'dangling': dangling,
            })
        try:
            name = path.relative_to(story.folder).as_posix()
        except ValueError:
            name = story_file.name
        files.append({'name': name, 'passages': rows})

    start = story.story_data.get('start', 'Start')
    orphans = sorted(
        p.title for p in story.passages
        if not p.linked_from
        and p.title not in (start, STORY_TITLE_PASSAGE, STORY_DATA_PASSAGE)
    )

    return {
        'story_title': story.story_title or story.folder.name,
        'files': files,
        'passage_count': len(story.passages),
        'dangling_count': total_dangling,
        'orphans': orphans,
        'script_count': len(story.js_files),
        'stylesheet_count': len(story.css_files),
    }


def generate_html_report(story: Story, output_path: Path) -> None:
    """
    Generate the HTML link map.

    Args:
        story: Loaded story
        output_path: Path to write the HTML file

    Raises:
        FileNotFoundError: If template not found
        RuntimeError: If rendering fails
    """
    if not TEMPLATE_DIR.exists():
        raise FileNotFoundError(f"Template directory not found: {TEMPLATE_DIR}")

    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(['html', 'jinja2']),
    )

    try:
        template = env.get_template(TEMPLATE_NAME)
    except TemplateNotFound as e:
        raise FileNotFoundError(f"Template not found: {e}")

    template_data = build_report_data(story)
    template_data['generated_at'] = datetime.now().strftime('%Y-%m-%d %H:%M')

    try:
        html = template.render(**template_data)
    except Exception as e:
        raise RuntimeError(f"Failed to render template: {e}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(html)

    print(f"Generated HTML: {output_path}", file=sys.stderr)


def main():
    """Main entry point for command-line usage."""
    import argparse
    import logging

    from tweeweave.config import LOG_LEVEL
    from tweeweave.errors import StoryLoadError
    from tweeweave.story import load_story

    parser = argparse.ArgumentParser(description='Render an HTML link map of a Twee story folder')
    parser.add_argument('folder', type=Path, help='Story folder')
    parser.add_argument('output', type=Path, help='Output HTML file path')

    args = parser.parse_args()
    logging.basicConfig(level=LOG_LEVEL, format='%(levelname)s %(name)s: %(message)s')

    try:
        story = load_story(args.folder)
    except StoryLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    generate_html_report(story, args.output)


if __name__ == '__main__':
    main()
