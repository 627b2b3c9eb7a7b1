"""Scan -> confirm -> import flow for stack codes.

A scanned code arrives as a string. Lookups may suspend; a lookup that
finishes after ``cancel()`` or ``rescan()`` is dropped without touching the
note store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Union

from ennote.exceptions import StackTransportError
from ennote.models import Note, Stack, utcnow
from ennote.services.notes import NoteStore
from ennote.services.pairing import StackSource, parse_deep_link

logger = logging.getLogger(__name__)

INVALID_CODE_MESSAGE = "Invalid QR code. Please scan an ennote QR code."
EXPIRED_MESSAGE = "This code has expired. Create a new stack and scan again."
TRANSPORT_MESSAGE = "Could not reach the stack service. Please try again."
ALREADY_IMPORTED_MESSAGE = "These notes were already imported from another device."
IMPORT_FAILED_MESSAGE = "Could not save the imported notes. Please try again."


@dataclass(frozen=True)
class Scanning:
    pass


@dataclass(frozen=True)
class Loading:
    stack_id: str


@dataclass(frozen=True)
class Confirming:
    stack: Stack


@dataclass(frozen=True)
class Failed:
    message: str


@dataclass(frozen=True)
class Imported:
    notes: list[Note] = field(default_factory=list)


@dataclass(frozen=True)
class Closed:
    pass


ScanState = Union[Scanning, Loading, Confirming, Failed, Imported, Closed]


class ScannerFlow:
    def __init__(self, source: StackSource, store: NoteStore, clock: Callable = utcnow) -> None:
        self.source = source
        self.store = store
        self.clock = clock
        self.state: ScanState = Scanning()
        self._generation = 0

    async def handle_code(self, code: str) -> ScanState:
        if not isinstance(self.state, Scanning):
            return self.state

        stack_id = parse_deep_link(code)
        if stack_id is None:
            logger.info("Rejected scanned code %r", code)
            self.state = Failed(INVALID_CODE_MESSAGE)
            return self.state

        generation = self._generation
        self.state = Loading(stack_id)
        try:
            stack = await self.source.fetch_stack(stack_id)
        except StackTransportError:
            logger.exception("Stack lookup failed for %s", stack_id)
            return self._settle(generation, Failed(TRANSPORT_MESSAGE))

        if stack is None:
            return self._settle(generation, Failed(INVALID_CODE_MESSAGE))
        if stack.is_expired(self.clock()):
            return self._settle(generation, Failed(EXPIRED_MESSAGE))
        return self._settle(generation, Confirming(stack))

    async def confirm_import(self) -> ScanState:
        if not isinstance(self.state, Confirming):
            return self.state
        stack = self.state.stack
        if stack.is_expired(self.clock()):
            self.state = Failed(EXPIRED_MESSAGE)
            return self.state

        generation = self._generation
        try:
            claimed = await self.source.mark_fetched(stack.id)
        except StackTransportError:
            # The fetched flag is bookkeeping only; import anyway.
            logger.warning("Could not mark stack %s fetched, importing anyway", stack.id, exc_info=True)
            claimed = True
        if generation != self._generation:
            logger.info("Discarding import of stack %s after cancel", stack.id)
            if claimed:
                await self._release(stack.id)
            return self.state
        if not claimed:
            self.state = Failed(ALREADY_IMPORTED_MESSAGE)
            return self.state

        try:
            notes = self.store.import_notes(stack.notes)
        except Exception:
            logger.exception("Import of stack %s failed, releasing claim", stack.id)
            await self._release(stack.id)
            self.state = Failed(IMPORT_FAILED_MESSAGE)
            return self.state
        self.state = Imported(notes)
        return self.state

    def rescan(self) -> None:
        self._generation += 1
        self.state = Scanning()

    def cancel(self) -> None:
        self._generation += 1
        self.state = Closed()

    async def _release(self, stack_id: str) -> None:
        try:
            await self.source.release_claim(stack_id)
        except StackTransportError:
            logger.warning("Could not release claim on stack %s", stack_id, exc_info=True)

    def _settle(self, generation: int, state: ScanState) -> ScanState:
        if generation != self._generation:
            logger.info("Discarding stale stack lookup")
            return self.state
        self.state = state
        return state
