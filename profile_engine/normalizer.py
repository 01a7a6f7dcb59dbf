import re
from typing import List

# one or more blank (or whitespace-only) lines
_BLOCK_SPLIT_RE = re.compile(r'\n\s*\n')


def to_lines(text: str) -> List[str]:
    """Split text into trimmed, non-empty lines."""
    return [line.strip() for line in text.split('\n') if line.strip()]


def to_blocks(text: str) -> List[str]:
    """Split text into blank-line delimited blocks"""
    return [block for block in _BLOCK_SPLIT_RE.split(text) if block.strip()]
