from __future__ import annotations

import logging

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from ennote import presentation
from ennote.config import COMPLETED_PREVIEW_LIMIT
from ennote.exceptions import InvalidNoteError
from ennote.services.notes import NoteStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notes", tags=["notes"])


def _templates(request: Request):
    return request.app.state.templates


def _store(request: Request) -> NoteStore:
    return request.app.state.store


def _back_to_list() -> HTMLResponse:
    return HTMLResponse(headers={"HX-Redirect": "/notes"})


@router.get("", response_class=HTMLResponse)
async def list_notes(request: Request):
    sheet = presentation.from_query(request.query_params)
    if isinstance(sheet, presentation.Reviewing):
        return RedirectResponse(url="/review", status_code=302)

    store = _store(request)
    editing_note = None
    if isinstance(sheet, presentation.Editing) and sheet.note_id:
        editing_note = store.get(sheet.note_id)
        if editing_note is None:
            return HTMLResponse("Note not found", status_code=404)

    active = store.active_notes()
    completed = store.completed_notes()
    return _templates(request).TemplateResponse(
        request,
        "notes/list.html",
        {
            "active_notes": active,
            "completed_notes": completed[:COMPLETED_PREVIEW_LIMIT],
            "completed_count": len(completed),
            "show_clear": len(completed) > COMPLETED_PREVIEW_LIMIT,
            "sheet": sheet,
            "editing_note": editing_note,
            "active": "notes",
        },
    )


@router.post("")
async def create_note(request: Request, content: str = Form("")):
    try:
        _store(request).create(content)
    except InvalidNoteError:
        logger.info("Ignoring blank note")
    return RedirectResponse(url="/notes", status_code=303)


@router.delete("/completed")
async def clear_completed(request: Request):
    _store(request).clear_completed()
    return _back_to_list()


@router.post("/move")
async def move_note(request: Request, source: int = Form(...), destination: int = Form(...)):
    try:
        _store(request).move(source, destination)
    except IndexError as exc:
        return HTMLResponse(str(exc), status_code=400)
    return _back_to_list()


@router.post("/{note_id}/update")
async def update_note(request: Request, note_id: str, content: str = Form("")):
    try:
        note = _store(request).update_content(note_id, content)
    except InvalidNoteError:
        query = presentation.to_query(presentation.Editing(note_id=note_id))
        return RedirectResponse(url=f"/notes?{query}", status_code=303)
    if note is None:
        return HTMLResponse("Note not found", status_code=404)
    return RedirectResponse(url="/notes", status_code=303)


@router.post("/{note_id}/complete")
async def complete_note(request: Request, note_id: str):
    if _store(request).complete(note_id) is None:
        return HTMLResponse("Note not found", status_code=404)
    return _back_to_list()


@router.post("/{note_id}/uncomplete")
async def uncomplete_note(request: Request, note_id: str):
    if _store(request).uncomplete(note_id) is None:
        return HTMLResponse("Note not found", status_code=404)
    return _back_to_list()


@router.delete("/{note_id}")
async def delete_note(request: Request, note_id: str):
    if not _store(request).delete(note_id):
        return HTMLResponse("Note not found", status_code=404)
    return _back_to_list()
