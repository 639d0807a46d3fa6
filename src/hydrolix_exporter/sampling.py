"""Deterministic log downsampling."""

from __future__ import annotations

import math
from typing import List, Sequence, TypeVar

T = TypeVar("T")


def sample(records: Sequence[T], fraction: float) -> List[T]:
    """
    Keep ``ceil(len(records) * fraction)`` records, spread evenly across the batch.

    Selection is deterministic and preserves the original order. ``fraction`` is
    expected to be in ``[0, 1]``; it is validated where the configuration is accepted.
    """
    if fraction <= 0 or not records:
        return []
    if fraction >= 1:
        return list(records)

    size = len(records)
    sample_size = math.ceil(size * fraction)
    step = size / sample_size

    result: List[T] = []
    for i in range(sample_size):
        index = math.floor(i * step)
        if index < size:
            result.append(records[index])
    return result
