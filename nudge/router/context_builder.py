"""
Context Builder — renders a SignalSnapshot into the bounded prompt sent to the
reasoning service.

Bounds:
  - scores are rounded to whole percent
  - the content excerpt is whitespace-collapsed and cut to EXCERPT_MAX_CHARS
  - the page title is cut to TITLE_MAX_CHARS; only the URL's host is sent
"""

from __future__ import annotations

import re
from typing import Optional

from ..inference.state_classifier import Classification, UserState
from ..telemetry.snapshot import SignalSnapshot

EXCERPT_MAX_CHARS = 500
TITLE_MAX_CHARS = 120
GOAL_MAX_CHARS = 200

_TONE = {
    UserState.FOCUSED: "encourage continuation",
    UserState.DISTRACTED: "gentle redirection back to the content",
    UserState.FATIGUED: "a restorative break suggestion",
    UserState.WANDERING: "a reflective question to re-engage",
}

_WS = re.compile(r"\s+")


def _clip(text: str, limit: int) -> str:
    text = _WS.sub(" ", text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit].rstrip()


def _pct(value: float) -> int:
    return int(round(value))


def build_prompt(
    snapshot: SignalSnapshot,
    classification: Classification,
    session_goal: Optional[str] = None,
    excerpt_max_chars: int = EXCERPT_MAX_CHARS,
) -> str:
    excerpt = _clip(snapshot.content_excerpt, excerpt_max_chars) or "Unable to extract content"
    title = _clip(snapshot.title, TITLE_MAX_CHARS) or "Untitled"

    signals = [
        f"- Attention level: {_pct(classification.attention)}%",
        f"- Distraction indicators: {_pct(classification.distraction)}%",
    ]
    if classification.sleepiness is not None:
        signals.append(f"- Tiredness signal: {_pct(classification.sleepiness)}%")
    signals.append(
        f"- Recent activity: {snapshot.tab_switches} tab switches, "
        f"{snapshot.scroll_events} scrolls, {_pct(snapshot.idle_seconds)}s idle"
    )

    goal_block = ""
    relevance_rule = "   - show_relevance_warning: only if the page is clearly unrelated to the session goal\n"
    if session_goal:
        goal_block = f"- Session goal: {_clip(session_goal, GOAL_MAX_CHARS)}\n"
    else:
        relevance_rule = "   - show_relevance_warning: do not use (no session goal set)\n"

    return (
        "You are a supportive focus coach inside a learning tool. Help the user keep "
        "their focus with brief, optional, non-judgmental nudges.\n"
        "\n"
        "USER CONTEXT:\n"
        f"{goal_block}"
        f"- Content type: {snapshot.content_type}\n"
        f"- Page title: {title}\n"
        f"- Site: {snapshot.host or 'unknown'}\n"
        f"- Session duration: {int(classification.session_minutes)} minutes\n"
        f"- Time on current page: {_pct(snapshot.time_on_page_seconds)} seconds\n"
        "\n"
        "SIGNALS (probabilistic, not certain):\n"
        + "\n".join(signals) + "\n"
        "\n"
        f"DETECTED STATE: {classification.state.value.upper()} ({classification.intensity.value})\n"
        f"Preferred tone: {_TONE[classification.state]}.\n"
        "\n"
        f'CONTENT SAMPLE:\n"{excerpt}"\n'
        "\n"
        "CHOOSE EXACTLY ONE ACTION:\n"
        "   - message: a short supportive nudge (1-2 sentences, max 200 characters)\n"
        "   - quiz: one comprehension question about the content with exactly 4 options\n"
        "   - break: a short rest suggestion\n"
        f"{relevance_rule}"
        "   - none: no intervention is needed\n"
        "\n"
        "NEVER:\n"
        "   - mention cameras, webcams, tracking, monitoring or how these signals were measured\n"
        "   - claim certainty about the user's mental state\n"
        "   - use accusatory or shaming language\n"
        "\n"
        "RESPOND WITH ONLY ONE JSON OBJECT, no markdown, in one of these shapes:\n"
        '{"type": "message", "message": "...", "reasoning": "..."}\n'
        '{"type": "quiz", "quiz": {"question": "...", "options": ["A", "B", "C", "D"], '
        '"correctIndex": 0, "explanation": "..."}, "reasoning": "..."}\n'
        '{"type": "break", "message": "...", "reasoning": "..."}\n'
        '{"type": "show_relevance_warning", "reason": "...", "reasoning": "..."}\n'
        '{"type": "none", "reasoning": "..."}\n'
    )
