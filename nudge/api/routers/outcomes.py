"""
/sessions/{id}/outcomes — what the user did with an intervention.
Recorded for diagnostics only; never changes cooldown or counters.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...api.deps import get_engine, get_session
from ...api.schemas import OutcomeIn, OutcomeOut
from ...session import Session

router = APIRouter(prefix="/sessions/{session_id}", tags=["outcomes"])


@router.post("/outcomes", response_model=OutcomeOut, status_code=status.HTTP_202_ACCEPTED)
async def handle_outcome(
    outcome: OutcomeIn,
    session: Session = Depends(get_session),
    engine=Depends(get_engine),
):
    recorded = engine.handle_outcome(session, outcome.intervention_type, outcome.user_action)
    return OutcomeOut(
        intervention_type=recorded.intervention_type.value,
        user_action=recorded.user_action.value,
        recorded_at=recorded.recorded_at,
    )
