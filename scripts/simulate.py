"""
Signal Simulator — drives the nudge engine with synthetic camera samples and
browser signal reports so the whole decision path (classification, gate,
reasoning call, dispatch) can be watched without the extension or a webcam.

Usage:
    # Make sure the engine is running first:
    #   python -m nudge.main
    # Then in a separate terminal:
    python scripts/simulate.py                      # default: cycle all scenarios
    python scripts/simulate.py --scenario wandering # specific scenario
    python scripts/simulate.py --goal "Learn asyncio"
    python scripts/simulate.py --loop --speed 2.0
"""

from __future__ import annotations

import argparse
import json
import random
import time
import urllib.error
import urllib.request
from typing import Iterator

API = "http://127.0.0.1:8765"

ARTICLE = {
    "text": "The event loop runs asynchronous tasks and callbacks, performs network "
            "IO operations, and runs subprocesses.",
    "contentType": "article",
    "title": "Event Loop — Python documentation",
    "url": "https://docs.python.org/3/library/asyncio-eventloop.html",
}

VIDEO = {
    "text": "",
    "contentType": "video",
    "title": "10 hours of lo-fi beats",
    "url": "https://www.youtube.com/watch?v=abc",
}


# ---------------------------------------------------------------------------
# Low-level HTTP helper
# ---------------------------------------------------------------------------

def _request(method: str, path: str, body: list | dict | None = None) -> dict | None:
    data = json.dumps(body).encode() if body is not None else None
    req = urllib.request.Request(
        f"{API}{path}",
        data=data,
        headers={"Content-Type": "application/json"},
        method=method,
    )
    try:
        with urllib.request.urlopen(req, timeout=15) as r:
            return json.loads(r.read())
    except (urllib.error.URLError, OSError, ValueError) as e:
        print(f"  [!] Engine unreachable: {e}")
        return None


def _samples(low: float, high: float, n: int = 5) -> list[dict]:
    return [{"value": round(random.uniform(low, high), 3)} for _ in range(n)]


# ---------------------------------------------------------------------------
# Scenario generators: each yields (description, camera samples, report, delay)
# ---------------------------------------------------------------------------

def scenario_focused(speed: float = 1.0) -> Iterator[tuple[str, list[dict], dict, float]]:
    """Reading steadily, eyes on the page."""
    for i in range(4):
        yield (
            f"Focused [{i+1}/4]: steady reading",
            _samples(0.8, 0.95),
            {"distractionScore": random.randint(0, 15), "scrollEvents": 3,
             "contentAnalysis": {**ARTICLE, "timeOnPageSeconds": 60 * (i + 1)}},
            2.0 / speed,
        )


def scenario_wandering(speed: float = 1.0) -> Iterator[tuple[str, list[dict], dict, float]]:
    """Still on the article, attention drifting away."""
    for i in range(4):
        yield (
            f"Wandering [{i+1}/4]: gaze off the page",
            _samples(0.25, 0.38),
            {"distractionScore": random.randint(10, 30), "idleSeconds": 20,
             "contentAnalysis": ARTICLE},
            3.0 / speed,
        )


def scenario_distracted(speed: float = 1.0) -> Iterator[tuple[str, list[dict], dict, float]]:
    """Rapid tab switching towards unrelated video."""
    for i in range(4):
        yield (
            f"Distracted [{i+1}/4]: tab hopping",
            _samples(0.4, 0.6),
            {"distractionScore": random.randint(65, 90), "tabSwitches": random.randint(4, 9),
             "contentAnalysis": VIDEO},
            2.0 / speed,
        )


def scenario_fatigued(speed: float = 1.0) -> Iterator[tuple[str, list[dict], dict, float]]:
    """Late in a long session, eyes closing."""
    for i in range(3):
        yield (
            f"Fatigued [{i+1}/3]: drowsy",
            _samples(0.1, 0.3),
            {"distractionScore": 20, "sleepinessScore": random.randint(65, 95),
             "sessionTimeSeconds": 55 * 60, "contentAnalysis": ARTICLE},
            3.0 / speed,
        )


SCENARIOS = {
    "focused": scenario_focused,
    "wandering": scenario_wandering,
    "distracted": scenario_distracted,
    "fatigued": scenario_fatigued,
}

CYCLE = ["focused", "wandering", "focused", "distracted", "fatigued"]


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

def run_scenario(session_id: str, name: str, speed: float) -> None:
    print(f"\n{'─' * 60}")
    print(f"  SCENARIO: {name.upper()}")
    print(f"{'─' * 60}")

    for description, samples, report, delay in SCENARIOS[name](speed):
        _request("POST", f"/sessions/{session_id}/attention/batch", samples)
        decision = _request("POST", f"/sessions/{session_id}/signals", report) or {}
        diag = _request("GET", f"/sessions/{session_id}/diagnostics") or {}

        attention = diag.get("rolling_attention", 0.0)
        bar = "█" * int(attention * 20) + "░" * (20 - int(attention * 20))
        state = f"{decision.get('state') or '?'}/{decision.get('intensity') or '?'}"
        print(f"  [{bar}] {int(attention*100):3d}%  {state:<20}  {description}")

        if decision.get("should_intervene"):
            print(f"      → {json.dumps(decision.get('intervention'))}")
        else:
            print(f"      · no intervention ({decision.get('reason', 'unreachable')})")
        time.sleep(delay)


def main() -> None:
    parser = argparse.ArgumentParser(description="Focus nudge signal simulator")
    parser.add_argument(
        "--scenario",
        choices=list(SCENARIOS.keys()) + ["cycle"],
        default="cycle",
        help="Which scenario to run (default: cycle through all)",
    )
    parser.add_argument("--goal", default=None, help="Optional session goal")
    parser.add_argument("--loop", action="store_true", help="Repeat indefinitely")
    parser.add_argument("--speed", type=float, default=1.0, help="Speed multiplier (default 1.0)")
    args = parser.parse_args()

    health = _request("GET", "/health")
    if not health:
        print(f"[!] Cannot reach engine at {API}")
        print("    Start it first: python -m nudge.main")
        return
    print(f"[✓] Engine connected — v{health.get('version', '?')}")

    session = _request("POST", "/sessions", {"sessionGoal": args.goal} if args.goal else {})
    if not session:
        return
    session_id = session["session_id"]
    print(f"    Session: {session_id}  |  Speed: {args.speed}×  |  Scenario: {args.scenario}")

    sequence = CYCLE if args.scenario == "cycle" else [args.scenario]
    try:
        while True:
            for name in sequence:
                run_scenario(session_id, name, args.speed)
            if not args.loop:
                break
            print("\n[↺] Looping...\n")
            time.sleep(2.0)
    finally:
        _request("DELETE", f"/sessions/{session_id}")

    print("\n[✓] Simulation complete.")


if __name__ == "__main__":
    main()
