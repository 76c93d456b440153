#!/usr/bin/env python3
"""
Meta Module

Decodes and encodes the JSON metadata blob at the end of a title line.

Twine stores the passage's map position and box size there as strings:
    {"position":"400,200","size":"100,100"}

Any other keys are kept untouched and written back in their original order.
"""

import copy
import json
import logging
import math
import re
from typing import Tuple

from tweeweave.config import DEFAULT_POSITION, DEFAULT_SIZE
from tweeweave.models import PassageMeta, Position, Size

logger = logging.getLogger(__name__)

# Leading number of a string, the way JavaScript's parseFloat reads it
_NUMBER_PREFIX = re.compile(
    r'\s*([+-]?(?:Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?))'
)


# =============================================================================
# NUMBERS
# =============================================================================

def parse_number(text: str) -> float:
    """Parse the leading number of a string, NaN if there is none.

    Examples:
        >>> parse_number(' 12.5px')
        12.5
        >>> parse_number('abc')
        nan
    """
    match = _NUMBER_PREFIX.match(text)
    if not match:
        return math.nan
    return float(match.group(1))


def format_number(value: float) -> str:
    """Format a number the way Twine writes it (no trailing ".0").

    Examples:
        >>> format_number(100.0)
        '100'
        >>> format_number(150.5)
        '150.5'
    """
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return 'Infinity' if value > 0 else '-Infinity'
    if value == int(value):
        return str(int(value))
    return repr(value)


def round_half_up(value: float) -> float:
    """Round to the nearest integer, halves going up (2.5 -> 3, -2.5 -> -2)."""
    if math.isnan(value) or math.isinf(value):
        return value
    return float(math.floor(value + 0.5))


def _split_pair(raw, default: Tuple[float, float]) -> Tuple[float, float]:
    if not raw:
        return default
    parts = [parse_number(part) for part in str(raw).split(',')]
    # Missing components read as NaN, like the Twine editors do
    parts += [math.nan] * (2 - len(parts))
    return parts[0], parts[1]


# =============================================================================
# DECODING
# =============================================================================

def decode_meta(meta_segment: str) -> PassageMeta:
    """Decode a metadata segment into a PassageMeta.

    Malformed metadata never stops parsing: it is logged and replaced with
    empty metadata, so the passage gets the default position and size.

    Args:
        meta_segment: Raw metadata text from the title line (may be empty)

    Returns:
        Decoded PassageMeta (empty if the segment was empty or invalid)
    """
    if not meta_segment:
        return PassageMeta()

    try:
        data = json.loads(meta_segment)
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid passage metadata {meta_segment!r}: {e}")
        return PassageMeta()

    if data is None:
        return PassageMeta()
    if not isinstance(data, dict):
        logger.warning(f"Invalid passage metadata {meta_segment!r}: not an object")
        return PassageMeta()

    return PassageMeta.from_dict(data)


def meta_position(meta: PassageMeta) -> Position:
    """Read the passage position from its metadata (default 0,0)."""
    x, y = _split_pair(meta.position, DEFAULT_POSITION)
    return Position(x, y)


def meta_size(meta: PassageMeta) -> Size:
    """Read the passage size from its metadata (default 100,100)."""
    width, height = _split_pair(meta.size, DEFAULT_SIZE)
    return Size(width, height)


# =============================================================================
# ENCODING
# =============================================================================

def update_meta_layout(meta: PassageMeta, position: Position, size: Size) -> None:
    """Store position/size into the metadata as Twine-style strings.

    The position is rounded to whole pixels; the size is written as is.
    """
    meta.position = (
        f"{format_number(round_half_up(position.x))},"
        f"{format_number(round_half_up(position.y))}"
    )
    meta.size = f"{format_number(size.width)},{format_number(size.height)}"


def encode_meta(meta: PassageMeta, position: Position, size: Size) -> str:
    """Serialize metadata with the given position/size applied.

    The passed metadata is left unchanged; unknown keys are preserved.

    Args:
        meta: Passage metadata
        position: Current passage position
        size: Current passage size

    Returns:
        Compact JSON text of the whole metadata mapping
    """
    updated = copy.deepcopy(meta)
    update_meta_layout(updated, position, size)
    return json.dumps(_integral_floats_to_int(updated.to_dict()),
                      separators=(',', ':'), ensure_ascii=False)


def _integral_floats_to_int(value):
    # Twine writes 1.0 as 1
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {key: _integral_floats_to_int(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_integral_floats_to_int(item) for item in value]
    return value
