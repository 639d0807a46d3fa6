from __future__ import annotations

import math

import pytest

from hydrolix_exporter.sampling import sample


def test_full_fraction_returns_same_records() -> None:
    records = list(range(17))
    assert sample(records, 1.0) == records


def test_full_fraction_returns_new_list() -> None:
    records = ["a", "b"]
    result = sample(records, 1.0)
    result.append("c")
    assert records == ["a", "b"]


def test_zero_fraction_returns_empty() -> None:
    assert sample(list(range(10)), 0.0) == []


def test_empty_input() -> None:
    assert sample([], 0.5) == []


@pytest.mark.parametrize("size,fraction", [(10, 0.5), (7, 0.3), (1000, 0.01), (3, 0.99), (1, 0.1)])
def test_sample_size_is_ceiling(size: int, fraction: float) -> None:
    result = sample(list(range(size)), fraction)
    assert len(result) == math.ceil(size * fraction)


@pytest.mark.parametrize("size,fraction", [(10, 0.5), (7, 0.3), (101, 0.77), (50, 0.999)])
def test_selection_is_strictly_increasing(size: int, fraction: float) -> None:
    result = sample(list(range(size)), fraction)
    assert all(a < b for a, b in zip(result, result[1:]))
    assert len(set(result)) == len(result)


def test_selection_is_spread_evenly() -> None:
    assert sample(list(range(10)), 0.5) == [0, 2, 4, 6, 8]
    assert sample(list(range(10)), 0.25) == [0, 3, 6]


def test_selection_is_deterministic() -> None:
    records = [f"log-{i}" for i in range(333)]
    assert sample(records, 0.37) == sample(records, 0.37)


def test_first_record_always_kept() -> None:
    records = ["first", "second", "third"]
    assert sample(records, 0.1) == ["first"]
