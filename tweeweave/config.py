"""
Configuration for tweeweave.

Values come from environment variables so the CLI tools can be tuned
without flags (useful when they run from npm scripts or CI).
"""

import os

# Passage title lines start with this marker
PASSAGE_MARKER = "::"

# Metadata defaults when a passage has no position/size
DEFAULT_POSITION = (0.0, 0.0)
DEFAULT_SIZE = (100.0, 100.0)

# Special passages holding story-level data rather than story text
STORY_TITLE_PASSAGE = "StoryTitle"
STORY_DATA_PASSAGE = "StoryData"

# Story source files
TWEE_EXTENSIONS = tuple(
    ext.strip().lower()
    for ext in os.getenv("TWEEWEAVE_EXTENSIONS", ".tw,.twee").split(",")
    if ext.strip()
)
SCRIPT_EXTENSIONS = (".js",)
STYLESHEET_EXTENSIONS = (".css",)

# Directories never scanned or watched (dependency folders)
EXCLUDED_DIRS = {"node_modules", ".git"} | {
    name.strip()
    for name in os.getenv("TWEEWEAVE_EXCLUDE", "").split(",")
    if name.strip()
}

WATCH_INTERVAL = float(os.getenv("TWEEWEAVE_WATCH_INTERVAL", "1.0"))  # seconds
LOG_LEVEL = os.getenv("TWEEWEAVE_LOG_LEVEL", "INFO").upper()
