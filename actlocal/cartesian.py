"""Cartesian product over named lists."""

from __future__ import annotations

import itertools
from typing import Any, Mapping, Sequence

__all__ = ["cartesian_product"]


def cartesian_product(map_of_lists: Mapping[str, Sequence[Any]]) -> list[dict[str, Any]]:
    """Return every combination that takes one value from each named list.

    An empty mapping, or any empty list, gives no combinations.
    """
    if not map_of_lists:
        return []
    names = list(map_of_lists)
    return [
        dict(zip(names, combo))
        for combo in itertools.product(*(map_of_lists[name] for name in names))
    ]