from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from ennote.services.widget import WidgetCenter, WidgetEntry, WidgetProvider

router = APIRouter(prefix="/api/widget", tags=["widget"])


class CompleteNoteIntent(BaseModel):
    note_id: str = Field(alias="noteID")


def _provider(request: Request) -> WidgetProvider:
    return request.app.state.widget_provider


def _payload(request: Request, entry: WidgetEntry) -> dict:
    center: WidgetCenter = request.app.state.widget_center
    data = entry.to_dict()
    data["reloadedAt"] = center.reloaded_at.isoformat() if center.reloaded_at else None
    data["generation"] = center.generation
    return data


@router.get("/placeholder")
async def placeholder(request: Request):
    return _payload(request, _provider(request).placeholder())


@router.get("/snapshot")
async def snapshot(request: Request):
    return _payload(request, _provider(request).snapshot())


@router.get("/timeline")
async def timeline(request: Request):
    result = _provider(request).timeline()
    data = _payload(request, result.entries[0])
    data["nextRefresh"] = result.next_refresh.isoformat()
    return data


@router.post("/complete")
async def complete_note(request: Request, intent: CompleteNoteIntent):
    return {"completed": request.app.state.store.complete_by_id(intent.note_id)}
