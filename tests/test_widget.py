from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from ennote.db import init_db
from ennote.services.notes import NoteStore
from ennote.services.notifier import ChangeNotifier
from ennote.services.review import ReviewSession
from ennote.services.widget import WidgetCenter, WidgetProvider

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    path = tmp_path / "test.db"
    init_db(path)
    return NoteStore(db_path=path)


@pytest.fixture
def provider(store):
    return WidgetProvider(store)


def test_snapshot_lists_active_notes_in_order(store, provider):
    a = store.create("A")
    b = store.create("B")
    store.complete(store.create("C").id)
    store.move(1, 0)

    entry = provider.snapshot(now=NOW)

    assert entry.date == NOW
    assert [(n.id, n.content) for n in entry.notes] == [(b.id, "B"), (a.id, "A")]


def test_snapshot_activity_covers_a_week(store, provider):
    store.complete(store.create("done today").id, now=NOW)

    entry = provider.snapshot(now=NOW)

    assert len(entry.activity) == 7
    assert entry.activity[-1].completed_count == 1
    assert entry.activity[-1].intensity == 0.25
    assert sum(day.completed_count for day in entry.activity) == 1


def test_snapshot_includes_running_timer(store, provider):
    end = ReviewSession(store).start_timer(10, now=NOW)

    assert provider.snapshot(now=NOW).timer_end == end
    assert provider.snapshot(now=end + timedelta(seconds=1)).timer_end is None


def test_snapshot_falls_back_to_empty_entry(store, provider, caplog):
    store.create("A")

    with patch.object(store, "active_notes", side_effect=RuntimeError("disk gone")):
        entry = provider.snapshot(now=NOW)

    assert entry.notes == []
    assert entry.activity == []
    assert "Widget failed to fetch notes" in caplog.text


def test_placeholder_uses_sample_data(provider):
    entry = provider.placeholder(now=NOW)

    assert [n.content for n in entry.notes][0] == "Review PR for auth flow"
    assert [a.completed_count for a in entry.activity] == [4, 1, 3, 0, 2, 1, 0]


def test_timeline_refreshes_after_fifteen_minutes(store, provider):
    store.create("A")

    timeline = provider.timeline(now=NOW)

    assert len(timeline.entries) == 1
    assert timeline.entries[0].notes[0].content == "A"
    assert timeline.next_refresh == NOW + timedelta(minutes=15)


def test_entry_wire_format(store, provider):
    note = store.create("A")
    data = provider.snapshot(now=NOW).to_dict()

    assert data["date"] == NOW.isoformat()
    assert data["notes"] == [{"id": note.id, "content": "A"}]
    assert data["timerEnd"] is None
    assert set(data["activity"][0]) == {"date", "count", "intensity", "dayLetter"}


def test_every_mutation_reloads_timelines(tmp_path):
    path = tmp_path / "test.db"
    init_db(path)
    notifier = ChangeNotifier()
    center = WidgetCenter()
    notifier.subscribe(center.reload_all_timelines)
    store = NoteStore(notifier, db_path=path)

    note = store.create("A")
    store.complete(note.id)
    store.complete(note.id)

    assert center.generation == 2
    assert center.reloaded_at is not None
