"""
/sessions/{id}/attention and /sessions/{id}/signals — inbound signal paths.

Attention samples come from the vision collaborator at a high, irregular
cadence; signal reports come once per decision cycle from the orchestrator.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...api.deps import get_engine, get_session
from ...api.schemas import (
    AttentionAcceptedOut,
    AttentionBatchOut,
    AttentionSampleIn,
    DecisionOut,
    ProcessSignalsIn,
)
from ...session import Session

router = APIRouter(prefix="/sessions/{session_id}", tags=["signals"])


@router.post("/attention", response_model=AttentionAcceptedOut, status_code=status.HTTP_202_ACCEPTED)
async def record_attention(
    sample: AttentionSampleIn,
    session: Session = Depends(get_session),
    engine=Depends(get_engine),
):
    """Accept one 0-1 attention score. Invalid scores are dropped, not refused."""
    return AttentionAcceptedOut(
        accepted=engine.record_attention_score(session, sample.value, sample.timestamp)
    )


@router.post("/attention/batch", response_model=AttentionBatchOut, status_code=status.HTTP_202_ACCEPTED)
async def record_attention_batch(
    samples: list[AttentionSampleIn],
    session: Session = Depends(get_session),
    engine=Depends(get_engine),
):
    """Accept a batch of samples (used by capture loops that buffer locally)."""
    accepted = sum(
        1 for s in samples if engine.record_attention_score(session, s.value, s.timestamp)
    )
    return AttentionBatchOut(accepted=accepted, total=len(samples))


@router.post("/signals", response_model=DecisionOut)
async def process_signals(
    signals: ProcessSignalsIn,
    session: Session = Depends(get_session),
    engine=Depends(get_engine),
):
    """Run one decision cycle now and return its outcome."""
    result = await engine.process_signals(session, signals.to_report())
    return DecisionOut(
        should_intervene=result.should_intervene,
        action=result.action,
        reason=result.reason,
        state=result.state,
        intensity=result.intensity,
        intervention=result.intervention.to_wire() if result.intervention else None,
    )
