"""
Shared FastAPI dependencies — resolved from the app lifespan state.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from ..session import Session


def get_engine(request: Request):
    return request.app.state.engine


def get_registry(request: Request):
    return request.app.state.sessions


def get_feed(request: Request):
    return request.app.state.feed


def get_session(session_id: str, request: Request) -> Session:
    session = request.app.state.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id!r}")
    return session
