"""
Zone proximity — where the placement operator is and what to offer next.

The operator's zone is inferred from the last scanned cells. Nothing is
remembered besides that rolling history; every answer is recomputed from it.
"""

from __future__ import annotations

import re
from collections import Counter, deque
from typing import Iterable

from floorman.protocols.snapshots import LineSnapshot

ZONE_RE = re.compile(r'^[A-Z]+', re.IGNORECASE)


def zone_of(cell_id: str | None) -> str | None:
    """Leading alphabetic prefix of a cell code: 'B2-05' → 'B'."""
    if not cell_id:
        return None
    match = ZONE_RE.match(cell_id)
    return match.group(0).upper() if match else None


def cell_number(cell_id: str) -> int:
    """
    Numeric part following the zone prefix, separators dropped:
    'A1-05' → 105, 'A12-3' → 123.
    """
    prefix = ZONE_RE.match(cell_id)
    rest = cell_id[prefix.end():] if prefix else cell_id
    digits = ''.join(ch for ch in rest if ch.isdigit())
    return int(digits) if digits else 0


def mode_zone(cells: Iterable[str]) -> str | None:
    """Most frequent zone; ties go to the most recently seen one."""
    zones = [z for z in (zone_of(c) for c in cells) if z]
    if not zones:
        return None
    counts = Counter(zones)
    best = max(counts.values())
    for zone in reversed(zones):
        if counts[zone] == best:
            return zone
    return None


class ZoneProximityRanker:
    """
    Rolling cell history with zone inference and line ranking.

    Usage:
        ranker = ZoneProximityRanker()
        ranker.record('A1-03')
        ranker.rank(lines)
    """

    def __init__(self, history_size: int = 10, window: int = 5,
                 min_history: int = 3, cross_zone_distance: int = 100):
        self.history: deque[str] = deque(maxlen=history_size)
        self.window = window
        self.min_history = min_history
        self.cross_zone_distance = cross_zone_distance
        self.locked_zone: str | None = None

    def record(self, cell_id: str) -> str | None:
        """Add a scanned cell; returns the zone assumed afterwards."""
        self.history.append(cell_id.upper())
        return self.current_zone

    @property
    def last_cell(self) -> str | None:
        return self.history[-1] if self.history else None

    @property
    def current_zone(self) -> str | None:
        """
        Zone the operator is working in.

        None until min_history cells are known; after that the mode zone
        of the last window cells.
        """
        if len(self.history) < self.min_history:
            return None
        return mode_zone(list(self.history)[-self.window:])

    def lock(self, zone: str | None = None) -> str | None:
        """Pin the list to a zone (the inferred one by default)."""
        self.locked_zone = (zone or self.current_zone or '').upper() or None
        return self.locked_zone

    def unlock(self) -> None:
        self.locked_zone = None

    def distance(self, a: str, b: str) -> int:
        if zone_of(a) != zone_of(b):
            return self.cross_zone_distance
        return abs(cell_number(a) - cell_number(b))

    def rank(self, lines: Iterable[LineSnapshot], current_cell: str | None = None) -> list[LineSnapshot]:
        """
        Order lines for display.

        1. incomplete before completed
        2. lines of the current cell first
        3. closer to the last scanned cell first (lines without a cell last)
        Ties keep document order.
        """
        current = (current_cell or self.last_cell or '').upper() or None
        origin = self.last_cell or current

        def key(line: LineSnapshot):
            cell = (line.cell_id or '').upper()
            if cell and origin:
                dist = self.distance(origin, cell)
            else:
                dist = self.cross_zone_distance + 1
            return (line.is_done, not (current and cell == current), dist)

        return sorted(lines, key=key)

    def visible(self, lines: Iterable[LineSnapshot], enabled: bool = True) -> list[LineSnapshot]:
        """Ranked lines, filtered to the locked zone when enabled."""
        lines = list(lines)
        if enabled and self.locked_zone:
            lines = [
                line for line in lines
                if not line.cell_id or zone_of(line.cell_id) == self.locked_zone
            ]
        return self.rank(lines)
