from __future__ import annotations

import json
import secrets
import sqlite3
import string
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from ennote.config import STACK_ID_LENGTH, STACK_TTL

_STACK_ID_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


@dataclass
class Note:
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    content: str = ""
    is_completed: bool = False
    order: int = 0
    created_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None

    @property
    def title(self) -> str:
        return self.content.split("\n", 1)[0].strip()

    @property
    def body(self) -> str:
        parts = self.content.split("\n", 1)
        return parts[1].strip() if len(parts) > 1 else ""

    def complete(self, now: datetime | None = None) -> None:
        if self.is_completed:
            return
        self.is_completed = True
        self.completed_at = now or utcnow()

    def uncomplete(self) -> None:
        self.is_completed = False
        self.completed_at = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Note:
        return cls(
            id=row["id"],
            content=row["content"],
            is_completed=bool(row["is_completed"]),
            order=row["sort_order"],
            created_at=_parse_ts(row["created_at"]),
            completed_at=_parse_ts(row["completed_at"]),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "isCompleted": self.is_completed,
            "order": self.order,
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class Stack:
    """A short-lived batch of note strings handed from the companion page to the app."""

    id: str = field(default_factory=lambda: Stack.generate_id())
    notes: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    expires_at: datetime | None = None
    fetched: bool = False

    def __post_init__(self) -> None:
        if self.expires_at is None:
            self.expires_at = self.created_at + STACK_TTL

    @staticmethod
    def generate_id() -> str:
        return "".join(secrets.choice(_STACK_ID_ALPHABET) for _ in range(STACK_ID_LENGTH))

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) > self.expires_at

    def time_remaining(self, now: datetime | None = None) -> float:
        return max(0.0, (self.expires_at - (now or utcnow())).total_seconds())

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Stack:
        return cls(
            id=row["id"],
            notes=json.loads(row["notes"]),
            created_at=_parse_ts(row["created_at"]),
            expires_at=_parse_ts(row["expires_at"]),
            fetched=bool(row["fetched"]),
        )

    def to_wire(self) -> dict:
        return {
            "id": self.id,
            "notes": list(self.notes),
            "createdAt": self.created_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
            "fetched": 1 if self.fetched else 0,
        }

    @classmethod
    def from_wire(cls, data: dict) -> Stack:
        return cls(
            id=data["id"],
            notes=[str(n) for n in data["notes"]],
            created_at=_parse_ts(data.get("createdAt")) or utcnow(),
            expires_at=_parse_ts(data["expiresAt"]),
            fetched=int(data.get("fetched", 0)) == 1,
        )


@dataclass
class DayActivity:
    day: date
    completed_count: int = 0

    @property
    def intensity(self) -> float:
        return {0: 0.0, 1: 0.25, 2: 0.5, 3: 0.75}.get(self.completed_count, 1.0)

    @property
    def day_letter(self) -> str:
        return self.day.strftime("%a")[0]

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "count": self.completed_count,
            "intensity": self.intensity,
            "dayLetter": self.day_letter,
        }
