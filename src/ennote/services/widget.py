from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ennote.config import WIDGET_ACTIVITY_DAYS, WIDGET_REFRESH_MINUTES
from ennote.models import DayActivity, utcnow
from ennote.services.notes import NoteStore
from ennote.services.review import active_timer_end

logger = logging.getLogger(__name__)

_SAMPLE_NOTES = ("Review PR for auth flow", "Update dependencies", "Write tests for sync")
_SAMPLE_COUNTS = (0, 1, 2, 0, 3, 1, 4)


@dataclass
class WidgetNote:
    id: str
    content: str

    def to_dict(self) -> dict:
        return {"id": self.id, "content": self.content}


@dataclass
class WidgetEntry:
    date: datetime
    notes: list[WidgetNote] = field(default_factory=list)
    timer_end: datetime | None = None
    activity: list[DayActivity] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "notes": [n.to_dict() for n in self.notes],
            "timerEnd": self.timer_end.isoformat() if self.timer_end else None,
            "activity": [a.to_dict() for a in self.activity],
        }


@dataclass
class Timeline:
    entries: list[WidgetEntry]
    next_refresh: datetime


class WidgetCenter:
    """Tells widget hosts their timelines are stale."""

    def __init__(self) -> None:
        self.generation = 0
        self.reloaded_at: datetime | None = None

    def reload_all_timelines(self, reason: str = "") -> None:
        self.generation += 1
        self.reloaded_at = utcnow()
        logger.debug("Widget timelines reloaded (%s), generation %d", reason, self.generation)


class WidgetProvider:
    def __init__(self, store: NoteStore) -> None:
        self.store = store

    def placeholder(self, now: datetime | None = None) -> WidgetEntry:
        now = now or utcnow()
        local = now.astimezone()
        return WidgetEntry(
            date=now,
            notes=[WidgetNote(id=str(i + 1), content=c) for i, c in enumerate(_SAMPLE_NOTES)],
            activity=[
                DayActivity(day=(local - timedelta(days=days_ago)).date(), completed_count=_SAMPLE_COUNTS[days_ago])
                for days_ago in reversed(range(WIDGET_ACTIVITY_DAYS))
            ],
        )

    def snapshot(self, now: datetime | None = None) -> WidgetEntry:
        now = now or utcnow()
        try:
            notes = [WidgetNote(id=n.id, content=n.content) for n in self.store.active_notes()]
            activity = self.store.completion_activity(now.astimezone())
            timer_end = active_timer_end(self.store, now)
        except Exception:
            logger.exception("Widget failed to fetch notes")
            return WidgetEntry(date=now)
        return WidgetEntry(date=now, notes=notes, timer_end=timer_end, activity=activity)

    def timeline(self, now: datetime | None = None) -> Timeline:
        now = now or utcnow()
        return Timeline(
            entries=[self.snapshot(now)],
            next_refresh=now + timedelta(minutes=WIDGET_REFRESH_MINUTES),
        )
