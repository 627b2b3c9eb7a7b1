from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from ennote.config import COMPLETION_DWELL_MS, TIMER_PRESETS
from ennote.db import init_db, is_ephemeral
from ennote.routes import notes, review, scan, stacks, widget
from ennote.services.notes import NoteStore
from ennote.services.notifier import ChangeNotifier
from ennote.services.pairing import StackRepository
from ennote.services.widget import WidgetCenter, WidgetProvider

BASE_DIR = Path(__file__).resolve().parent


def create_app() -> FastAPI:
    init_db()

    notifier = ChangeNotifier()
    store = NoteStore(notifier)
    widget_center = WidgetCenter()
    notifier.subscribe(widget_center.reload_all_timelines)

    app = FastAPI(title="ennote")
    app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")

    templates = Jinja2Templates(directory=BASE_DIR / "templates")
    templates.env.globals["storage_is_ephemeral"] = is_ephemeral
    templates.env.globals["dwell_ms"] = COMPLETION_DWELL_MS
    templates.env.globals["timer_presets"] = TIMER_PRESETS
    app.state.templates = templates

    app.state.store = store
    app.state.stacks = StackRepository()
    app.state.widget_center = widget_center
    app.state.widget_provider = WidgetProvider(store)

    app.include_router(notes.router)
    app.include_router(review.router)
    app.include_router(stacks.router)
    app.include_router(stacks.api_router)
    app.include_router(scan.router)
    app.include_router(widget.router)

    @app.get("/")
    async def index(request: Request):
        return RedirectResponse(url="/notes", status_code=302)

    return app
