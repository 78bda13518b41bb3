"""
Win-Count Aggregator

Lifetime number of monthly-winner declarations per classroom, for
badge and certificate display.
"""

from collections import Counter
from typing import Any, Dict, Iterable

from .scoring import _field


def win_counts(winners: Iterable[Any]) -> Dict[str, int]:
    """
    Count winner rows per classroom, across all divisions and months

    Example:
        >>> win_counts([{"classroom_id": "c1"}, {"classroom_id": "c2"}, {"classroom_id": "c1"}])
        {'c1': 2, 'c2': 1}
    """
    return dict(Counter(_field(w, "classroom_id") for w in winners))
