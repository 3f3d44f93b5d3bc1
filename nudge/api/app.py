"""
FastAPI application — local intervention decision API.
Runs on http://127.0.0.1:8765 by default.

Singletons (engine, session registry, presentation feed) live on app.state
so that each call to create_app() produces a fully independent instance with
no shared module-level globals. This makes test isolation straightforward.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ..actions.feed import InterventionFeed
from ..config import Config, config
from ..reasoning.client import ReasoningClient, client_from_config
from ..router.intervention_engine import InterventionEngine
from ..session import SessionRegistry

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(
    client: Optional[ReasoningClient] = None,
    cfg: Optional[Config] = None,
) -> FastAPI:
    """
    Build an app. Without *client* the Gemini client is created from config
    during startup, and a missing API key fails startup with ConfigurationError.
    """
    cfg = cfg or config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned_client = None
        reasoning = client
        if reasoning is None:
            owned_client = reasoning = client_from_config(cfg)

        app.state.config = cfg
        app.state.feed = InterventionFeed()
        app.state.sessions = SessionRegistry()
        app.state.engine = InterventionEngine.from_config(cfg, reasoning, app.state.feed)
        logger.info("Intervention engine ready (cooldown %dms, cap %d/session)",
                    cfg.min_interval_ms, cfg.max_interventions_per_session)

        yield

        app.state.sessions.close_all()
        if owned_client is not None:
            await owned_client.aclose()

    app = FastAPI(
        title="Focus Nudge Engine",
        description="Local intervention decision API for focus tracking",
        version=VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "null"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from .routers import outcomes, sessions, signals

    app.include_router(sessions.router)
    app.include_router(signals.router)
    app.include_router(outcomes.router)

    @app.get("/health")
    def health(request: Request):
        registry = getattr(request.app.state, "sessions", None)
        return {
            "status": "ok",
            "version": VERSION,
            "active_sessions": len(registry) if registry is not None else 0,
        }

    return app


app = create_app()
