"""
Signal snapshot — the immutable per-cycle view of everything the engine
knows about the user, built from the orchestrator's report and the
aggregator's smoothed attention score.

All scores on a SignalSnapshot are percentages in [0, 100].
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlparse


@dataclass
class ContentAnalysis:
    text: str = ""
    content_type: str = "unknown"     # "article" | "video" | "code" | ...
    title: str = ""
    url: str = ""
    scroll_position: float = 0.0
    time_on_page_seconds: float = 0.0


@dataclass
class SignalReport:
    """Raw inbound payload of one processSignals call."""
    attention_score: Optional[float] = None       # 0-100; None → rolling average
    distraction_score: float = 0.0                # 0-100
    sleepiness_score: Optional[float] = None      # 0-100 or absent (camera off)
    content_analysis: ContentAnalysis = field(default_factory=ContentAnalysis)
    session_time_seconds: Optional[float] = None  # None → session clock
    tab_switches: int = 0
    scroll_events: int = 0
    idle_seconds: float = 0.0


@dataclass(frozen=True)
class SignalSnapshot:
    attention: float
    distraction: float
    sleepiness: Optional[float]
    session_seconds: float
    content_excerpt: str
    content_type: str
    title: str
    host: str
    tab_switches: int
    scroll_events: int
    idle_seconds: float
    time_on_page_seconds: float


def to_percent(score: float) -> float:
    """Convert a 0-1 camera score to the canonical 0-100 scale."""
    return clamp_percent(score * 100.0)


def _finite(value: Optional[float]) -> Optional[float]:
    # NaN and infinities are treated as "not reported"
    if value is None or not math.isfinite(value):
        return None
    return float(value)


def clamp_percent(value: Optional[float]) -> float:
    value = _finite(value)
    if value is None:
        return 0.0
    return max(0.0, min(100.0, value))


def _host(url: str) -> str:
    # only the host leaves the client; paths and query strings may carry identifiers
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def build_snapshot(
    report: SignalReport,
    rolling_attention: float,
    session_seconds: float,
) -> SignalSnapshot:
    """
    Fuse a report with the aggregator's rolling average (0-1).

    The report's own attention score wins when present; otherwise the
    rolling camera average is used.
    """
    attention = _finite(report.attention_score)
    attention = to_percent(rolling_attention) if attention is None else clamp_percent(attention)

    sleepiness = _finite(report.sleepiness_score)
    if sleepiness is not None:
        sleepiness = clamp_percent(sleepiness)
    reported_seconds = _finite(report.session_time_seconds)
    if reported_seconds is not None:
        session_seconds = max(0.0, reported_seconds)

    content = report.content_analysis
    return SignalSnapshot(
        attention=attention,
        distraction=clamp_percent(report.distraction_score),
        sleepiness=sleepiness,
        session_seconds=session_seconds,
        content_excerpt=content.text or "",
        content_type=content.content_type or "unknown",
        title=content.title or "",
        host=_host(content.url or ""),
        tab_switches=max(0, int(report.tab_switches)),
        scroll_events=max(0, int(report.scroll_events)),
        idle_seconds=max(0.0, _finite(report.idle_seconds) or 0.0),
        time_on_page_seconds=max(0.0, _finite(content.time_on_page_seconds) or 0.0),
    )
