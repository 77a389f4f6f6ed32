"""
Region Color Table

Parses an indexed region color table, one region per line:

    <index> <L|R>H:_<name>_(<abbreviation>) <r> <g> <b> <a>

Lines that do not match are skipped.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple
import re
import numpy as np


_LINE_RE = re.compile(
    r'([0-9]+)\s+([RL])H:_.*_\(([^)]*)\)\s+([0-9]+)\s+([0-9]+)\s+([0-9]+)\s+([0-9]+)'
)


@dataclass(frozen=True)
class RegionColorEntry:
    """One region of a color table."""
    index: int
    abbreviation: str
    hemisphere: str  # 'L' or 'R'
    color: Tuple[int, int, int, int]


# Dense table indexed by region index; unset indices are None
ColorTable = List[Optional[RegionColorEntry]]


def parse_color_lut(text: str) -> ColorTable:
    """
    Parse color table text.

    Args:
        text: Table contents

    Returns:
        List of size max(index) + 1 (empty if no line matched). Later
        duplicates of an index overwrite earlier ones.
    """
    entries = []
    for line in text.splitlines():
        match = _LINE_RE.search(line)
        if match is None:
            continue
        index, hemisphere, abbreviation, r, g, b, a = match.groups()
        entries.append(RegionColorEntry(
            index=int(index),
            abbreviation=abbreviation,
            hemisphere=hemisphere,
            color=(int(r), int(g), int(b), int(a)),
        ))

    if not entries:
        return []

    table: ColorTable = [None] * (max(e.index for e in entries) + 1)
    for entry in entries:
        table[entry.index] = entry
    return table


def table_to_arrays(table: ColorTable) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert a color table to lookup arrays.

    Returns:
        (colors, present): colors is (N, 3) uint8 RGB, present is (N,) bool
    """
    colors = np.zeros((len(table), 3), dtype=np.uint8)
    present = np.zeros(len(table), dtype=bool)
    for index, entry in enumerate(table):
        if entry is not None:
            colors[index] = np.clip(entry.color[:3], 0, 255)
            present[index] = True
    return colors, present
