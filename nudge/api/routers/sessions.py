"""
/sessions — start and stop focus sessions, read diagnostics, and collect
dispatched interventions (polling or WebSocket).
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect, status

from ...api.deps import get_engine, get_feed, get_registry, get_session
from ...api.schemas import InterventionFeedOut, SessionOut, SessionStartIn
from ...router.decision_loop import start_decision_loop
from ...session import Session

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
async def start_session(
    req: SessionStartIn,
    request: Request,
    engine=Depends(get_engine),
    registry=Depends(get_registry),
):
    """Start a focus session and its periodic decision loop."""
    cfg = request.app.state.config
    session = registry.add(Session(
        max_per_session=req.max_interventions or cfg.max_interventions_per_session,
        horizon_seconds=cfg.sample_horizon_s,
        session_goal=req.session_goal,
    ))
    if cfg.cycle_interval_s > 0:
        start_decision_loop(engine, session, cfg.cycle_interval_s)
    return SessionOut(
        session_id=session.id,
        session_goal=session.session_goal,
        max_interventions=session.counters.max_per_session,
    )


@router.delete("/{session_id}")
async def stop_session(
    session: Session = Depends(get_session),
    registry=Depends(get_registry),
    feed=Depends(get_feed),
):
    """Stop the session: cancel its loop and clear counters and cooldown."""
    registry.remove(session.id)
    feed.discard(session.id)
    return {"status": "stopped"}


@router.get("/{session_id}/diagnostics")
async def get_diagnostics(
    request: Request,
    session: Session = Depends(get_session),
    engine=Depends(get_engine),
    feed=Depends(get_feed),
):
    diag = session.diagnostics(engine.policy, request.app.state.config.rolling_window_s)
    diag["pending_interventions"] = feed.pending(session.id)
    return diag


@router.get("/{session_id}/interventions", response_model=InterventionFeedOut)
async def drain_interventions(session: Session = Depends(get_session), feed=Depends(get_feed)):
    """Return and clear interventions waiting to be shown."""
    return InterventionFeedOut(interventions=[r.to_wire() for r in feed.drain(session.id)])


@router.websocket("/{session_id}/ws")
async def interventions_websocket(websocket: WebSocket, session_id: str):
    """
    WebSocket stream — pushes each dispatched intervention as a JSON object.
    The overlay renderer subscribes to this instead of polling.
    """
    registry = websocket.app.state.sessions
    feed = websocket.app.state.feed
    if registry.get(session_id) is None:
        await websocket.close(code=4404)
        return
    await websocket.accept()
    try:
        while registry.get(session_id) is not None:
            for record in feed.drain(session_id):
                await websocket.send_json(record.to_wire())
            try:
                message = await asyncio.wait_for(websocket.receive(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            if message["type"] == "websocket.disconnect":
                return
        await websocket.close()
    except WebSocketDisconnect:
        pass
