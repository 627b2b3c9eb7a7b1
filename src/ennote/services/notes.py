from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

from ennote import ordering
from ennote.config import WIDGET_ACTIVITY_DAYS
from ennote.db import get_db
from ennote.exceptions import InvalidNoteError
from ennote.models import DayActivity, Note, utcnow
from ennote.services.notifier import ChangeNotifier, Subscription

logger = logging.getLogger(__name__)


class NoteQuery(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


_ACTIVE_SQL = "SELECT * FROM notes WHERE is_completed = 0 ORDER BY rowid"
_COMPLETED_SQL = "SELECT * FROM notes WHERE is_completed = 1 ORDER BY completed_at DESC, rowid DESC"


class NoteStore:
    """Notes on the shared sqlite file.

    Every call opens its own connection, so the web app, the CLI and the
    widget endpoints never rely on in-memory state from another process.
    Each successful mutation publishes once on ``notifier``.
    """

    def __init__(self, notifier: ChangeNotifier | None = None, db_path: Path | None = None) -> None:
        self.notifier = notifier or ChangeNotifier()
        self.db_path = db_path

    # -- reads -------------------------------------------------------------

    def fetch(self, query: NoteQuery) -> list[Note]:
        with get_db(self.db_path) as db:
            if query is NoteQuery.ACTIVE:
                return self._active(db)
            return [Note.from_row(r) for r in db.execute(_COMPLETED_SQL).fetchall()]

    def active_notes(self) -> list[Note]:
        return self.fetch(NoteQuery.ACTIVE)

    def completed_notes(self) -> list[Note]:
        return self.fetch(NoteQuery.COMPLETED)

    def get(self, note_id: str) -> Note | None:
        with get_db(self.db_path) as db:
            return self._get(db, note_id)

    def watch(self, query: NoteQuery, callback: Callable[[list[Note]], None]) -> Subscription:
        """Call ``callback`` with the re-run ``query`` after every change."""
        return self.notifier.subscribe(lambda reason: callback(self.fetch(query)))

    def completion_activity(
        self, now: datetime | None = None, days: int = WIDGET_ACTIVITY_DAYS
    ) -> list[DayActivity]:
        """Completed-note counts per calendar day, oldest first, ending today."""
        now = now or datetime.now().astimezone()
        completed = [n.completed_at.astimezone(now.tzinfo).date() for n in self.completed_notes()]
        activity = []
        for days_ago in reversed(range(days)):
            day = (now - timedelta(days=days_ago)).date()
            activity.append(DayActivity(day=day, completed_count=completed.count(day)))
        return activity

    # -- mutations ---------------------------------------------------------

    def create(self, content: str, now: datetime | None = None) -> Note:
        content = content.strip()
        if not content:
            raise InvalidNoteError("Note content cannot be empty")
        with get_db(self.db_path) as db:
            note = Note(
                content=content,
                order=ordering.next_order(self._active(db)),
                created_at=now or utcnow(),
            )
            self._insert(db, note)
        logger.info("Created note %s at order %d", note.id, note.order)
        self.notifier.publish("create")
        return note

    def update_content(self, note_id: str, content: str) -> Note | None:
        content = content.strip()
        if not content:
            raise InvalidNoteError("Note content cannot be empty")
        with get_db(self.db_path) as db:
            note = self._get(db, note_id)
            if note is None:
                return None
            note.content = content
            self._update(db, note)
        self.notifier.publish("update")
        return note

    def complete(self, note_id: str, now: datetime | None = None) -> Note | None:
        with get_db(self.db_path) as db:
            note = self._get(db, note_id)
            if note is None or note.is_completed:
                return note
            note.complete(now)
            self._update(db, note)
        self.notifier.publish("complete")
        return note

    def complete_by_id(self, note_id: str) -> bool:
        """Complete from an untrusted id string; unknown or malformed ids are ignored."""
        try:
            uuid.UUID(note_id)
        except (ValueError, TypeError, AttributeError):
            logger.info("Ignoring completion for malformed note id %r", note_id)
            return False
        return self.complete(note_id) is not None

    def uncomplete(self, note_id: str) -> Note | None:
        with get_db(self.db_path) as db:
            note = self._get(db, note_id)
            if note is None or not note.is_completed:
                return note
            note.uncomplete()
            note.order = ordering.next_order(self._active(db))
            self._update(db, note)
        self.notifier.publish("uncomplete")
        return note

    def delete(self, note_id: str) -> bool:
        with get_db(self.db_path) as db:
            deleted = db.execute("DELETE FROM notes WHERE id = ?", (note_id,)).rowcount > 0
        if deleted:
            self.notifier.publish("delete")
        return deleted

    def move(self, source: int, destination: int) -> list[Note]:
        with get_db(self.db_path) as db:
            notes = ordering.move(self._active(db), source, destination)
            db.executemany(
                "UPDATE notes SET sort_order = ? WHERE id = ?",
                [(n.order, n.id) for n in notes],
            )
        self.notifier.publish("move")
        return notes

    def clear_completed(self) -> int:
        with get_db(self.db_path) as db:
            count = db.execute("DELETE FROM notes WHERE is_completed = 1").rowcount
        if count:
            logger.info("Cleared %d completed notes", count)
            self.notifier.publish("clear")
        return count

    def import_notes(self, contents: Iterable[str], now: datetime | None = None) -> list[Note]:
        """Append each non-blank string as a new active note, in order."""
        contents = [c.strip() for c in contents if c.strip()]
        if not contents:
            return []
        created_at = now or utcnow()
        with get_db(self.db_path) as db:
            orders = ordering.append_orders(self._active(db), len(contents))
            notes = [
                Note(content=content, order=order, created_at=created_at)
                for content, order in zip(contents, orders)
            ]
            for note in notes:
                self._insert(db, note)
        logger.info("Imported %d notes", len(notes))
        self.notifier.publish("import")
        return notes

    # -- helpers -----------------------------------------------------------

    @staticmethod
    def _active(db: sqlite3.Connection) -> list[Note]:
        return ordering.sort_active([Note.from_row(r) for r in db.execute(_ACTIVE_SQL).fetchall()])

    @staticmethod
    def _get(db: sqlite3.Connection, note_id: str) -> Note | None:
        row = db.execute("SELECT * FROM notes WHERE id = ?", (note_id,)).fetchone()
        return Note.from_row(row) if row else None

    @staticmethod
    def _insert(db: sqlite3.Connection, note: Note) -> None:
        db.execute(
            """INSERT INTO notes (id, content, is_completed, sort_order, created_at, completed_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                note.id,
                note.content,
                int(note.is_completed),
                note.order,
                note.created_at.isoformat(),
                note.completed_at.isoformat() if note.completed_at else None,
            ),
        )

    @staticmethod
    def _update(db: sqlite3.Connection, note: Note) -> None:
        db.execute(
            """UPDATE notes SET content = ?, is_completed = ?, sort_order = ?, completed_at = ?
               WHERE id = ?""",
            (
                note.content,
                int(note.is_completed),
                note.order,
                note.completed_at.isoformat() if note.completed_at else None,
                note.id,
            ),
        )
