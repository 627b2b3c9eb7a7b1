from __future__ import annotations

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from pydantic import BaseModel

from ennote.config import STACK_TTL
from ennote.services.pairing import StackRepository, build_deep_link, parse_notes_text, render_qr_svg

router = APIRouter(prefix="/stacks", tags=["stacks"])
api_router = APIRouter(prefix="/api/stacks", tags=["stacks-api"])


class StackIn(BaseModel):
    notes: list[str]


def _templates(request: Request):
    return request.app.state.templates


def _stacks(request: Request) -> StackRepository:
    return request.app.state.stacks


@router.get("/new", response_class=HTMLResponse)
async def new_stack(request: Request):
    return _templates(request).TemplateResponse(
        request, "stacks/new.html", {"text": "", "error": None, "active": "stacks"}
    )


@router.post("")
async def create_stack(request: Request, notes: str = Form("")):
    contents = parse_notes_text(notes)
    if not contents:
        return _templates(request).TemplateResponse(
            request,
            "stacks/new.html",
            {"text": notes, "error": "Add at least one note, one per line.", "active": "stacks"},
            status_code=422,
        )
    stack = _stacks(request).create(contents)
    return RedirectResponse(url=f"/stacks/{stack.id}", status_code=303)


@router.get("/{stack_id}", response_class=HTMLResponse)
async def show_stack(request: Request, stack_id: str):
    stack = _stacks(request).get(stack_id)
    if stack is None:
        return HTMLResponse("Stack not found", status_code=404)
    return _templates(request).TemplateResponse(
        request,
        "stacks/show.html",
        {
            "stack": stack,
            "deep_link": build_deep_link(stack.id),
            "qr_svg": render_qr_svg(stack.id),
            "remaining": int(stack.time_remaining()),
            "ttl": int(STACK_TTL.total_seconds()),
            "active": "stacks",
        },
    )


@router.get("/{stack_id}/qr.svg")
async def stack_qr(request: Request, stack_id: str):
    if _stacks(request).get(stack_id) is None:
        return Response(status_code=404)
    return Response(content=render_qr_svg(stack_id), media_type="image/svg+xml")


@api_router.post("", status_code=201)
async def api_create_stack(request: Request, payload: StackIn):
    contents = [n.strip() for n in payload.notes if n.strip()]
    if not contents:
        return JSONResponse({"detail": "notes must contain at least one non-blank string"}, status_code=422)
    return _stacks(request).create(contents).to_wire()


@api_router.get("/{stack_id}")
async def api_get_stack(request: Request, stack_id: str):
    stack = _stacks(request).get(stack_id)
    if stack is None:
        return JSONResponse({"detail": "Stack not found"}, status_code=404)
    return stack.to_wire()


@api_router.post("/{stack_id}/fetched")
async def api_mark_fetched(request: Request, stack_id: str):
    stacks = _stacks(request)
    if stacks.claim(stack_id):
        return {"claimed": True}
    if stacks.get(stack_id) is None:
        return JSONResponse({"detail": "Stack not found"}, status_code=404)
    return JSONResponse({"claimed": False, "detail": "Stack already fetched"}, status_code=409)


@api_router.delete("/{stack_id}/fetched")
async def api_release_fetched(request: Request, stack_id: str):
    stacks = _stacks(request)
    if stacks.get(stack_id) is None:
        return JSONResponse({"detail": "Stack not found"}, status_code=404)
    return {"released": stacks.release(stack_id)}
