"""Which sheet the note list has open. Only one at a time.

The list page carries this in its query string (``?sheet=edit&note=<id>``),
so a request can never ask for, say, editing and reviewing together.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Union


class Detent(str, Enum):
    MEDIUM = "medium"
    LARGE = "large"


@dataclass(frozen=True)
class Closed:
    name = "closed"


@dataclass(frozen=True)
class Scanning:
    name = "scan"


@dataclass(frozen=True)
class Editing:
    note_id: str | None = None  # None means a new note
    detent: Detent = Detent.MEDIUM
    name = "edit"


@dataclass(frozen=True)
class Reviewing:
    name = "review"


Presentation = Union[Closed, Scanning, Editing, Reviewing]


def from_query(params: Mapping[str, str]) -> Presentation:
    sheet = params.get("sheet", "")
    if sheet == Scanning.name:
        return Scanning()
    if sheet == Reviewing.name:
        return Reviewing()
    if sheet == Editing.name:
        try:
            detent = Detent(params.get("detent", Detent.MEDIUM.value))
        except ValueError:
            detent = Detent.MEDIUM
        return Editing(note_id=params.get("note") or None, detent=detent)
    return Closed()


def to_query(presentation: Presentation) -> str:
    if isinstance(presentation, Editing):
        query = f"sheet=edit&detent={presentation.detent.value}"
        return f"{query}&note={presentation.note_id}" if presentation.note_id else query
    if isinstance(presentation, Closed):
        return ""
    return f"sheet={presentation.name}"
