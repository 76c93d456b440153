"""
Data model for Twee passages and the files that own them.

A StoryFile owns its passages; each Passage keeps a plain back-reference to
its file. The link fields (links_to / linked_from) are derived data, rebuilt
as a whole by links.resolve_links().
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from tweeweave.config import DEFAULT_POSITION, DEFAULT_SIZE

RESERVED_META_KEYS = ("position", "size")


@dataclass
class Position:
    x: float = DEFAULT_POSITION[0]
    y: float = DEFAULT_POSITION[1]


@dataclass
class Size:
    width: float = DEFAULT_SIZE[0]
    height: float = DEFAULT_SIZE[1]


@dataclass
class PassageMeta:
    """Decoded metadata blob of a title line.

    `position` and `size` hold the raw "a,b" strings; every other key lives
    in `extra`. `key_order` remembers the order keys were decoded in so the
    blob is written back the way it was read.
    """

    position: Optional[str] = None
    size: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    key_order: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PassageMeta':
        meta = cls(key_order=list(data.keys()))
        for key, value in data.items():
            if key == 'position':
                meta.position = value
            elif key == 'size':
                meta.size = value
            else:
                meta.extra[key] = value
        return meta

    def to_dict(self) -> Dict[str, Any]:
        """Return the metadata as a mapping, in original key order.

        Keys added since decoding follow the original ones; reserved keys
        that are unset are left out.
        """
        values = dict(self.extra)
        if self.position is not None:
            values['position'] = self.position
        if self.size is not None:
            values['size'] = self.size

        data = {}
        for key in self.key_order:
            if key in values:
                data[key] = values[key]
        for key, value in values.items():
            if key not in data:
                data[key] = value
        return data


@dataclass(eq=False)
class Passage:
    """One named unit of story text."""

    title_line: str
    title: str
    tags: List[str] = field(default_factory=list)
    meta: PassageMeta = field(default_factory=PassageMeta)
    position: Position = field(default_factory=Position)
    size: Size = field(default_factory=Size)
    content: str = ''
    text_links: List[str] = field(default_factory=list)
    links_to: List['Passage'] = field(default_factory=list, repr=False)
    linked_from: List['Passage'] = field(default_factory=list, repr=False)
    file: Optional['StoryFile'] = field(default=None, repr=False)
    # "\r" when the title line came from a CRLF file
    line_ending: str = ''
    # Title line the serializer would produce for the last parsed/saved state
    rendered_baseline: str = field(default='', repr=False)

    @property
    def file_path(self) -> Optional[Path]:
        return self.file.path if self.file else None


@dataclass(eq=False)
class StoryFile:
    """One story source file and the passages parsed from it."""

    name: str
    path: Path
    passages: List[Passage] = field(default_factory=list, repr=False)
