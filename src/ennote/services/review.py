from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from ennote.db import get_setting, set_setting
from ennote.models import Note, utcnow
from ennote.services.notes import NoteStore

logger = logging.getLogger(__name__)

TIMER_END_KEY = "timer_end"


@dataclass
class ReviewProgress:
    completed: int
    total: int

    @property
    def fraction(self) -> float:
        return self.completed / self.total if self.total else 0.0

    def __str__(self) -> str:
        return f"{self.completed}/{self.total} notes"


class ReviewSession:
    """Stack mode: one active note at a time, always the head of the live list.

    ``initial_count`` only feeds the progress display. There is no skip or
    back; the only way forward is completing the current note.
    """

    def __init__(
        self,
        store: NoteStore,
        initial_count: int | None = None,
        completed_in_session: int = 0,
    ) -> None:
        self.store = store
        self.initial_count = initial_count
        self.completed_in_session = completed_in_session

    def start(self) -> ReviewSession:
        if self.initial_count is None:
            self.initial_count = len(self.store.active_notes())
        return self

    def current(self) -> Note | None:
        active = self.store.active_notes()
        return active[0] if active else None

    def complete_current(self, expected_id: str | None = None, now: datetime | None = None) -> Note | None:
        """Complete the head of the list.

        With ``expected_id``, nothing happens unless that note is still the
        head, so a repeated or stale request never completes a note the
        user has not seen.
        """
        note = self.current()
        if note is None:
            return None
        if expected_id is not None and note.id != expected_id:
            logger.info("Review head is %s, not %s; nothing completed", note.id, expected_id)
            return None
        self.store.complete(note.id, now)
        self.completed_in_session += 1
        return note

    def is_finished(self) -> bool:
        return self.current() is None

    def progress(self) -> ReviewProgress:
        total = self.initial_count if self.initial_count is not None else len(self.store.active_notes())
        return ReviewProgress(completed=self.completed_in_session, total=total)

    # The countdown is advisory and shared with the widget; it never touches notes.

    def start_timer(self, minutes: int, now: datetime | None = None) -> datetime:
        if minutes <= 0:
            raise ValueError("Timer duration must be positive")
        end = (now or utcnow()) + timedelta(minutes=minutes)
        set_setting(TIMER_END_KEY, end.isoformat(), self.store.db_path)
        return end

    def clear_timer(self) -> None:
        set_setting(TIMER_END_KEY, None, self.store.db_path)

    def timer_end(self, now: datetime | None = None) -> datetime | None:
        return active_timer_end(self.store, now)

    def time_remaining(self, now: datetime | None = None) -> float | None:
        end = self.timer_end(now)
        if end is None:
            return None
        return max(0.0, (end - (now or utcnow())).total_seconds())


def active_timer_end(store: NoteStore, now: datetime | None = None) -> datetime | None:
    value = get_setting(TIMER_END_KEY, store.db_path)
    if not value:
        return None
    end = datetime.fromisoformat(value)
    return end if end > (now or utcnow()) else None


def format_remaining(seconds: float) -> str:
    return f"{int(seconds) // 60}:{int(seconds) % 60:02d}"
