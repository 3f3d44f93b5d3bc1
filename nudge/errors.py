"""
Error taxonomy for the intervention engine.

Only ConfigurationError is allowed to escape the engine; everything else is
caught at the boundary where it happens and resolved to "no intervention".
"""

from __future__ import annotations

from dataclasses import dataclass


class NudgeError(Exception):
    """Base class for all engine errors."""


class SignalError(NudgeError):
    """A malformed sample was offered at ingestion."""


class ExternalTransportError(NudgeError):
    """The reasoning service could not be reached or answered non-2xx."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ResponseSchemaError(NudgeError):
    """The reasoning service replied with text that fails the action schema."""

    def __init__(self, reason: str, detail: str = ""):
        super().__init__(f"{reason}: {detail}" if detail else reason)
        self.reason = reason


class ConfigurationError(NudgeError):
    """Missing or invalid configuration, surfaced once at startup."""


@dataclass(frozen=True)
class GateRejection:
    """A normal negative decision. Not an exception: carries a log-only reason."""
    reason: str
