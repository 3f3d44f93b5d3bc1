"""
Pydantic schemas for the FastAPI local API.

Inbound models accept both snake_case and the camelCase names used by the
browser extension (attentionScore, contentAnalysis, ...).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..actions.dispatch import UserAction
from ..router.response_validator import InterventionType
from ..telemetry.snapshot import ContentAnalysis, SignalReport


class _Inbound(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)


# ── Sessions ───────────────────────────────────────────────────────────────

class SessionStartIn(_Inbound):
    session_goal: Optional[str] = Field(None, max_length=200)
    max_interventions: Optional[int] = Field(None, ge=1, le=100)


class SessionOut(BaseModel):
    session_id: str
    session_goal: Optional[str]
    max_interventions: int


# ── Attention samples ──────────────────────────────────────────────────────

class AttentionSampleIn(_Inbound):
    # deliberately untyped: bad samples are dropped by the aggregator, not refused
    value: Any = None
    timestamp: Optional[float] = Field(None, description="Wall-clock seconds; defaults to receipt time")


class AttentionAcceptedOut(BaseModel):
    accepted: bool


class AttentionBatchOut(BaseModel):
    accepted: int
    total: int


# ── Decision cycle ─────────────────────────────────────────────────────────

class ContentAnalysisIn(_Inbound):
    text: str = ""
    content_type: str = "unknown"
    title: str = ""
    url: str = ""
    scroll_position: float = 0.0
    time_on_page_seconds: float = 0.0


class ProcessSignalsIn(_Inbound):
    attention_score: Optional[float] = Field(None, description="0-100; omit to use the camera rolling average")
    distraction_score: float = 0.0
    sleepiness_score: Optional[float] = None
    content_analysis: ContentAnalysisIn = Field(default_factory=ContentAnalysisIn)
    session_time_seconds: Optional[float] = None
    tab_switches: int = 0
    scroll_events: int = 0
    idle_seconds: float = 0.0

    def to_report(self) -> SignalReport:
        c = self.content_analysis
        return SignalReport(
            attention_score=self.attention_score,
            distraction_score=self.distraction_score,
            sleepiness_score=self.sleepiness_score,
            content_analysis=ContentAnalysis(
                text=c.text,
                content_type=c.content_type,
                title=c.title,
                url=c.url,
                scroll_position=c.scroll_position,
                time_on_page_seconds=c.time_on_page_seconds,
            ),
            session_time_seconds=self.session_time_seconds,
            tab_switches=self.tab_switches,
            scroll_events=self.scroll_events,
            idle_seconds=self.idle_seconds,
        )


class DecisionOut(BaseModel):
    should_intervene: bool
    action: str
    reason: str
    state: Optional[str]
    intensity: Optional[str]
    intervention: Optional[Dict[str, Any]] = None


# ── Outcomes ───────────────────────────────────────────────────────────────

class OutcomeIn(_Inbound):
    intervention_type: InterventionType
    user_action: UserAction


class OutcomeOut(BaseModel):
    intervention_type: str
    user_action: str
    recorded_at: float


# ── Presentation feed ──────────────────────────────────────────────────────

class InterventionFeedOut(BaseModel):
    interventions: List[Dict[str, Any]]
