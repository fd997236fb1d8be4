"""
Index arithmetic for cyclic lists (boundary cycles, edge group rings).
"""

from __future__ import annotations


def index_periodic(index: int, period: int) -> int:
    """Wrap `index` into `[0, period)`."""
    return int(index) % int(period)


def index_distance(first: int, second: int, period: int) -> int:
    """
    Number of increasing steps from `first` to `second`, wrapping at `period`.

    Equal indices are a full turn apart (distance == period).
    """
    first = int(first)
    second = int(second)
    if second > first:
        return second - first
    return int(period) - (first - second)
