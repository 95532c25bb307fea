"""HTTP routers."""

from __future__ import annotations

from tube_relay.api.routes.admin import router as admin_router
from tube_relay.api.routes.forms import router as forms_router
from tube_relay.api.routes.google import router as google_router
from tube_relay.api.routes.reddit import router as reddit_router

__all__ = ["admin_router", "forms_router", "google_router", "reddit_router"]
