from __future__ import annotations

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from ennote.services.review import ReviewSession, format_remaining

router = APIRouter(prefix="/review", tags=["review"])


def _templates(request: Request):
    return request.app.state.templates


def _session(request: Request, total: int | None = None, done: int = 0) -> ReviewSession:
    return ReviewSession(request.app.state.store, initial_count=total, completed_in_session=done)


@router.get("", response_class=HTMLResponse)
async def review(request: Request, total: int | None = None, done: int = 0):
    if total is None:
        session = _session(request).start()
        return RedirectResponse(url=f"/review?total={session.initial_count}&done=0", status_code=302)

    session = _session(request, total, done)
    remaining = session.time_remaining()
    return _templates(request).TemplateResponse(
        request,
        "review.html",
        {
            "note": session.current(),
            "progress": session.progress(),
            "timer_remaining": format_remaining(remaining) if remaining is not None else None,
            "total": total,
            "done": done,
            "active": "review",
        },
    )


@router.post("/complete")
async def complete_current(
    request: Request, note_id: str = Form(...), total: int = Form(...), done: int = Form(0)
):
    session = _session(request, total, done)
    session.complete_current(expected_id=note_id)
    return RedirectResponse(url=f"/review?total={total}&done={session.completed_in_session}", status_code=303)


@router.post("/timer")
async def start_timer(request: Request, minutes: int = Form(...), total: int = Form(...), done: int = Form(0)):
    try:
        _session(request, total, done).start_timer(minutes)
    except ValueError as exc:
        return HTMLResponse(str(exc), status_code=422)
    return RedirectResponse(url=f"/review?total={total}&done={done}", status_code=303)


@router.post("/timer/clear")
async def clear_timer(request: Request, total: int = Form(...), done: int = Form(0)):
    _session(request, total, done).clear_timer()
    return RedirectResponse(url=f"/review?total={total}&done={done}", status_code=303)
