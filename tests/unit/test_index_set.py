from __future__ import annotations

import pytest

from tiny_collage.partition.index_set import IndexSet


def test_set_algebra() -> None:
    a = IndexSet.of(8, [1, 3, 5])
    b = IndexSet.of(8, [3, 4])

    assert list(a | b) == [1, 3, 4, 5]
    assert list(a & b) == [3]
    assert list(a - b) == [1, 5]
    assert a.intersects(b)
    assert not (a - b).intersects(b)
    assert IndexSet.of(8, [3]) <= a
    assert not b.issubset(a)


def test_iteration_is_in_index_order() -> None:
    s = IndexSet.of(70, [64, 2, 33, 0])
    assert list(s) == [0, 2, 33, 64]
    assert len(s) == 4
    assert s.first_index() == 0
    assert 33 in s and 34 not in s and 99 not in s


def test_empty_and_full() -> None:
    assert not IndexSet.empty(4)
    assert IndexSet.empty(4).first_index() is None
    assert list(IndexSet.full(4)) == [0, 1, 2, 3]
    assert IndexSet.empty(4).add(2) == IndexSet.of(4, [2])


def test_rejects_out_of_range_indices() -> None:
    with pytest.raises(ValueError):
        IndexSet.of(4, [4])
    with pytest.raises(ValueError):
        IndexSet.of(4, [-1])
    with pytest.raises(ValueError):
        IndexSet(2, 0b100)
    with pytest.raises(ValueError):
        IndexSet.empty(4).add(7)


def test_rejects_mixed_universes() -> None:
    with pytest.raises(ValueError):
        IndexSet.of(4, [1]) | IndexSet.of(5, [1])
    with pytest.raises(TypeError):
        IndexSet.of(4, [1]).intersects({1})  # type: ignore[arg-type]


def test_value_semantics() -> None:
    assert IndexSet.of(4, [0, 2]) == IndexSet.of(4, [2, 0])
    assert hash(IndexSet.of(4, [0, 2])) == hash(IndexSet.of(4, [2, 0]))
    assert repr(IndexSet.of(4, [0, 2])) == "{0,2}"
