from __future__ import annotations

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from ennote.services.pairing import LocalStackSource, build_deep_link
from ennote.services.scanner import Confirming, Failed, Imported, ScannerFlow

router = APIRouter(prefix="/scan", tags=["scan"])


def _templates(request: Request):
    return request.app.state.templates


def _flow(request: Request) -> ScannerFlow:
    return ScannerFlow(LocalStackSource(request.app.state.stacks), request.app.state.store)


def _scan_page(request: Request, error: str | None = None, code: str = ""):
    return _templates(request).TemplateResponse(
        request,
        "scan/index.html",
        {"error": error, "code": code, "active": "scan"},
        status_code=422 if error else 200,
    )


@router.get("", response_class=HTMLResponse)
async def scan_form(request: Request):
    return _scan_page(request)


@router.post("", response_class=HTMLResponse)
async def scan_code(request: Request, code: str = Form("")):
    state = await _flow(request).handle_code(code)
    if isinstance(state, Failed):
        return _scan_page(request, state.message, code)
    return _templates(request).TemplateResponse(
        request, "scan/confirm.html", {"stack": state.stack, "active": "scan"}
    )


@router.post("/{stack_id}/import")
async def import_stack(request: Request, stack_id: str):
    flow = _flow(request)
    state = await flow.handle_code(build_deep_link(stack_id))
    if isinstance(state, Confirming):
        state = await flow.confirm_import()
    if isinstance(state, Imported):
        return RedirectResponse(url="/notes", status_code=303)
    return _scan_page(request, state.message if isinstance(state, Failed) else None)
