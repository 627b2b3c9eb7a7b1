from __future__ import annotations

from ennote import presentation
from ennote.presentation import Closed, Detent, Editing, Reviewing, Scanning


def test_default_is_closed():
    assert presentation.from_query({}) == Closed()
    assert presentation.from_query({"sheet": "bogus"}) == Closed()


def test_parse_each_sheet():
    assert presentation.from_query({"sheet": "scan"}) == Scanning()
    assert presentation.from_query({"sheet": "review"}) == Reviewing()
    assert presentation.from_query({"sheet": "edit", "note": "n1", "detent": "large"}) == Editing(
        note_id="n1", detent=Detent.LARGE
    )


def test_edit_defaults():
    assert presentation.from_query({"sheet": "edit"}) == Editing(note_id=None, detent=Detent.MEDIUM)
    assert presentation.from_query({"sheet": "edit", "detent": "huge"}).detent is Detent.MEDIUM


def test_note_param_ignored_outside_edit():
    assert presentation.from_query({"sheet": "review", "note": "n1"}) == Reviewing()


def test_to_query():
    assert presentation.to_query(Closed()) == ""
    assert presentation.to_query(Scanning()) == "sheet=scan"
    assert presentation.to_query(Reviewing()) == "sheet=review"
    assert presentation.to_query(Editing()) == "sheet=edit&detent=medium"
    assert presentation.to_query(Editing("n1", Detent.LARGE)) == "sheet=edit&detent=large&note=n1"
