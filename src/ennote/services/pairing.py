"""Stacks: short-lived note batches moved from the companion page to the app by QR code."""

from __future__ import annotations

import io
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol
from urllib.parse import urlsplit

import httpx
import qrcode
import qrcode.image.svg

from ennote.config import DEEP_LINK_HOST, DEEP_LINK_SCHEME, HTTP_TIMEOUT, SERVER_URL
from ennote.db import get_db
from ennote.exceptions import StackTransportError
from ennote.models import Stack, utcnow

logger = logging.getLogger(__name__)


def parse_notes_text(text: str) -> list[str]:
    """One note per non-blank line."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def build_deep_link(stack_id: str) -> str:
    return f"{DEEP_LINK_SCHEME}://{DEEP_LINK_HOST}/{stack_id}"


def parse_deep_link(uri: str) -> str | None:
    """Return the stack id from ``ennote://stack/<id>``, or None for anything else."""
    try:
        parts = urlsplit(uri.strip())
    except (AttributeError, ValueError):
        return None
    if parts.scheme != DEEP_LINK_SCHEME or parts.netloc != DEEP_LINK_HOST:
        return None
    segments = [s for s in parts.path.split("/") if s]
    return segments[0] if segments else None


def _qr_for(stack_id: str) -> qrcode.QRCode:
    qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, border=2)
    qr.add_data(build_deep_link(stack_id))
    qr.make(fit=True)
    return qr


def render_qr_svg(stack_id: str) -> str:
    image = _qr_for(stack_id).make_image(image_factory=qrcode.image.svg.SvgPathImage)
    return image.to_string(encoding="unicode")


def render_qr_text(stack_id: str) -> str:
    out = io.StringIO()
    _qr_for(stack_id).print_ascii(out=out, invert=True)
    return out.getvalue()


class StackRepository:
    """Stack records in the shared sqlite store; the companion page writes, the scanner reads."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path

    def create(self, notes: list[str], now: datetime | None = None) -> Stack:
        stack = Stack(notes=list(notes), created_at=now or utcnow())
        with get_db(self.db_path) as db:
            db.execute(
                "INSERT INTO stacks (id, notes, created_at, expires_at, fetched) VALUES (?, ?, ?, ?, ?)",
                (
                    stack.id,
                    json.dumps(stack.notes),
                    stack.created_at.isoformat(),
                    stack.expires_at.isoformat(),
                    int(stack.fetched),
                ),
            )
        logger.info("Created stack %s with %d notes", stack.id, len(stack.notes))
        return stack

    def get(self, stack_id: str) -> Stack | None:
        # Expired stacks are still returned; callers decide what expiry means.
        with get_db(self.db_path) as db:
            row = db.execute("SELECT * FROM stacks WHERE id = ?", (stack_id,)).fetchone()
        return Stack.from_row(row) if row else None

    def claim(self, stack_id: str) -> bool:
        """Set ``fetched`` if nobody has yet. True only for the caller that flipped it."""
        with get_db(self.db_path) as db:
            cur = db.execute("UPDATE stacks SET fetched = 1 WHERE id = ? AND fetched = 0", (stack_id,))
        return cur.rowcount == 1

    def release(self, stack_id: str) -> bool:
        """Undo a claim whose import did not go through."""
        with get_db(self.db_path) as db:
            cur = db.execute("UPDATE stacks SET fetched = 0 WHERE id = ? AND fetched = 1", (stack_id,))
        return cur.rowcount == 1


class StackSource(Protocol):
    async def fetch_stack(self, stack_id: str) -> Stack | None: ...

    async def mark_fetched(self, stack_id: str) -> bool: ...

    async def release_claim(self, stack_id: str) -> bool: ...


class LocalStackSource:
    def __init__(self, repository: StackRepository) -> None:
        self.repository = repository

    async def fetch_stack(self, stack_id: str) -> Stack | None:
        return self.repository.get(stack_id)

    async def mark_fetched(self, stack_id: str) -> bool:
        return self.repository.claim(stack_id)

    async def release_claim(self, stack_id: str) -> bool:
        return self.repository.release(stack_id)


class RemoteStackSource:
    """Stack API client for a running ennote server."""

    def __init__(
        self,
        base_url: str = SERVER_URL,
        timeout: float = HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def create_stack(self, notes: list[str]) -> Stack:
        try:
            async with self._client() as client:
                resp = await client.post("/api/stacks", json={"notes": notes})
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise StackTransportError(f"Could not create stack: {exc}") from exc
        return Stack.from_wire(resp.json())

    async def fetch_stack(self, stack_id: str) -> Stack | None:
        try:
            async with self._client() as client:
                resp = await client.get(f"/api/stacks/{stack_id}")
                if resp.status_code == 404:
                    return None
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise StackTransportError(f"Could not fetch stack {stack_id}: {exc}") from exc
        try:
            return Stack.from_wire(resp.json())
        except (KeyError, TypeError, ValueError) as exc:
            raise StackTransportError(f"Malformed stack record for {stack_id}") from exc

    async def mark_fetched(self, stack_id: str) -> bool:
        try:
            async with self._client() as client:
                resp = await client.post(f"/api/stacks/{stack_id}/fetched")
                if resp.status_code in (404, 409):
                    return False
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise StackTransportError(f"Could not mark stack {stack_id} fetched: {exc}") from exc
        return bool(resp.json().get("claimed"))

    async def release_claim(self, stack_id: str) -> bool:
        try:
            async with self._client() as client:
                resp = await client.delete(f"/api/stacks/{stack_id}/fetched")
                if resp.status_code == 404:
                    return False
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise StackTransportError(f"Could not release stack {stack_id}: {exc}") from exc
        return bool(resp.json().get("released"))
