"""
tweeweave: Twee story folder parsing and in-place editing

This library reads Twee story folders into an in-memory passage graph and
writes edited passages back without disturbing the rest of each file.

Modules:
- title_line: Split a passage title line into title, tags and metadata
- meta: Decode/encode the JSON metadata blob (position, size, extensions)
- parse_passages: Split one file's text into passages
- links: Scan passage bodies for links and resolve the cross-file link graph
- save_passages: Rewrite changed title lines back into their files
- story: Load a whole story folder and keep it in sync with file changes
- story_graph: Export the resolved graph as story_graph.json
- html_report: Render an HTML link map of the story
"""

__version__ = "1.0.0"
