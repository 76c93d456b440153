#!/usr/bin/env python3
"""
Links Module

Finds link references in passage text and resolves them into a
bidirectional passage graph.

Two phases:
1. scan_links(): per passage, read link targets out of the body text
2. resolve_links(): once, over every passage of every file, connect
   links_to / linked_from

Phase 2 has to wait until all files are parsed because a passage may link
to a passage in another file.
"""

import logging
from typing import Dict, List

from tweeweave.models import Passage

logger = logging.getLogger(__name__)

LINK_OPEN = '[['
LINK_CLOSE = ']]'


# =============================================================================
# LINK SCANNING
# =============================================================================

def scan_links(content: str) -> List[str]:
    """Extract link targets from passage text.

    Supported link syntaxes:
    - [[link]]
    - [[text|link]]
    - [[link][setter]]
    - [[text|link][setter]]

    Args:
        content: Raw passage body

    Returns:
        Link targets in order of appearance, duplicates included
    """
    targets = []
    # Every fragment after the first starts right after a "[["
    for fragment in content.split(LINK_OPEN)[1:]:
        if LINK_CLOSE not in fragment:
            continue
        link = fragment.split(']')[0]
        targets.append(link.split('|')[-1].strip())
    return targets


def refresh_text_links(passage: Passage) -> None:
    """Recompute a passage's text links after its content changed."""
    passage.text_links = scan_links(passage.content)


# =============================================================================
# LINK RESOLUTION
# =============================================================================

def resolve_links(passages: List[Passage]) -> None:
    """Build links_to / linked_from across the complete passage set.

    Every passage's text links are scanned again from its content and its
    previous links are discarded first, so this can be run again after any
    file is reloaded or any passage body is edited. A title shared by
    several passages links to all of them. Targets that match no title stay
    only in text_links.

    Args:
        passages: All passages of the story, across all files
    """
    by_title: Dict[str, List[Passage]] = {}
    for passage in passages:
        by_title.setdefault(passage.title, []).append(passage)
        refresh_text_links(passage)
        passage.links_to = []
        passage.linked_from = []

    edges = 0
    for passage in passages:
        for target_title in dict.fromkeys(passage.text_links):
            for target in by_title.get(target_title, []):
                passage.links_to.append(target)
                target.linked_from.append(passage)
                edges += 1

    logger.debug(f"Resolved {edges} links between {len(passages)} passages")


def dangling_links(passage: Passage) -> List[str]:
    """Return the passage's link targets that match no known passage.

    Only meaningful after resolve_links() has run.
    """
    resolved = {target.title for target in passage.links_to}
    return [link for link in dict.fromkeys(passage.text_links) if link not in resolved]
