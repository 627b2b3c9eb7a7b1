"""Integer sort keys for active notes.

Keys only need to be increasing in presentation order; they are not kept
contiguous except after a move, which renumbers the whole list.
"""

from __future__ import annotations

from typing import Sequence

from ennote.models import Note


def sort_active(notes: Sequence[Note]) -> list[Note]:
    # Duplicate keys only come from outside data; creation order decides, nothing is repaired.
    return sorted(notes, key=lambda n: (n.order, n.created_at))


def next_order(active: Sequence[Note]) -> int:
    """Key for a note appended after ``active`` (already in presentation order)."""
    return active[-1].order + 1 if active else 0


def append_orders(active: Sequence[Note], count: int) -> list[int]:
    start = next_order(active)
    return list(range(start, start + count))


def move(active: Sequence[Note], source: int, destination: int) -> list[Note]:
    """Relocate ``active[source]`` so it ends up at ``destination`` and renumber every note."""
    size = len(active)
    if not 0 <= source < size:
        raise IndexError(f"source index {source} out of range for {size} notes")
    if not 0 <= destination < size:
        raise IndexError(f"destination index {destination} out of range for {size} notes")

    notes = list(active)
    notes.insert(destination, notes.pop(source))
    for index, note in enumerate(notes):
        note.order = index
    return notes
