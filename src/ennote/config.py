from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path

ENNOTE_HOME = Path(os.environ.get("ENNOTE_HOME", Path.home() / ".ennote"))

SERVER_URL = os.environ.get("ENNOTE_SERVER_URL", "http://127.0.0.1:8000")
HTTP_TIMEOUT = float(os.environ.get("ENNOTE_HTTP_TIMEOUT", "10"))

DEEP_LINK_SCHEME = "ennote"
DEEP_LINK_HOST = "stack"

STACK_ID_LENGTH = 12
STACK_TTL = timedelta(minutes=5)

WIDGET_REFRESH_MINUTES = 15
WIDGET_ACTIVITY_DAYS = 7

# Delay between a completion gesture and the request that completes the note
COMPLETION_DWELL_MS = 650

COMPLETED_PREVIEW_LIMIT = 5

TIMER_PRESETS = (5, 10, 15, 25, 30)  # minutes
