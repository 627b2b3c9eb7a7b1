from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ennote import ordering
from ennote.models import Note

T0 = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _notes(*contents: str) -> list[Note]:
    return [
        Note(content=c, order=i, created_at=T0 + timedelta(seconds=i))
        for i, c in enumerate(contents)
    ]


def test_next_order_empty():
    assert ordering.next_order([]) == 0


def test_next_order_uses_last_active_note():
    notes = [Note(content="a", order=3), Note(content="b", order=7)]
    assert ordering.next_order(notes) == 8


def test_append_orders_are_consecutive():
    assert ordering.append_orders(_notes("a", "b"), 3) == [2, 3, 4]
    assert ordering.append_orders([], 2) == [0, 1]


@pytest.mark.parametrize(
    "source,destination,expected",
    [
        (0, 2, ["b", "c", "a", "d"]),
        (3, 0, ["d", "a", "b", "c"]),
        (1, 2, ["a", "c", "b", "d"]),
        (2, 2, ["a", "b", "c", "d"]),
    ],
)
def test_move_relocates_and_renumbers(source, destination, expected):
    notes = _notes("a", "b", "c", "d")
    moved = ordering.move(notes, source, destination)

    assert [n.content for n in moved] == expected
    assert [n.order for n in moved] == [0, 1, 2, 3]


def test_move_renumbers_sparse_keys():
    notes = [Note(content="a", order=5), Note(content="b", order=40), Note(content="c", order=41)]
    moved = ordering.move(notes, 2, 0)
    assert [(n.content, n.order) for n in moved] == [("c", 0), ("a", 1), ("b", 2)]


@pytest.mark.parametrize("source,destination", [(-1, 0), (0, 3), (3, 0)])
def test_move_out_of_range(source, destination):
    with pytest.raises(IndexError):
        ordering.move(_notes("a", "b", "c"), source, destination)


def test_sort_active_breaks_ties_by_creation():
    later = Note(content="later", order=1, created_at=T0 + timedelta(minutes=1))
    earlier = Note(content="earlier", order=1, created_at=T0)
    first = Note(content="first", order=0, created_at=T0 + timedelta(hours=1))

    assert [n.content for n in ordering.sort_active([later, earlier, first])] == [
        "first",
        "earlier",
        "later",
    ]
