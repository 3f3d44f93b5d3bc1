"""
Response Validator — turns the reasoning service's free text into an
InterventionRecord, or rejects it.

The reply is untrusted input. Validation is fail-closed: any defect at any
step discards the whole reply, which the engine treats exactly like "no
intervention". Nothing in here raises to the caller, and nothing has side
effects beyond a log line, so the same text always gives the same result.

Closed action schema:
    message                 {"type": "message", "message": str}
    quiz                    {"type": "quiz", "quiz": {"question", "options"[4],
                             "correctIndex", "explanation"}}
    break                   {"type": "break", "message"?: str}
    show_relevance_warning  {"type": "show_relevance_warning", "reason": str}
    none                    {"type": "none"}  → no record
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

from ..errors import ResponseSchemaError

logger = logging.getLogger(__name__)

MAX_REPLY_CHARS = 20_000
MESSAGE_MAX_CHARS = 200
QUESTION_MAX_CHARS = 300
OPTION_MAX_CHARS = 100
EXPLANATION_MAX_CHARS = 200
REASON_MAX_CHARS = 200
REASONING_MAX_CHARS = 300
QUIZ_OPTION_COUNT = 4

DEFAULT_BREAK_MESSAGE = "Time for a quick break!"

DECLINED = "declined"


class InterventionType(str, Enum):
    MESSAGE = "message"
    QUIZ = "quiz"
    BREAK = "break"
    RELEVANCE_WARNING = "show_relevance_warning"


# ---------------------------------------------------------------------------
# Records: the only shape an intervention can take past this module
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MessagePayload:
    message: str


@dataclass(frozen=True)
class QuizPayload:
    question: str
    options: Tuple[str, ...]
    correct_index: int
    explanation: str = ""


@dataclass(frozen=True)
class BreakPayload:
    message: str = DEFAULT_BREAK_MESSAGE


@dataclass(frozen=True)
class RelevancePayload:
    reason: str


Payload = Union[MessagePayload, QuizPayload, BreakPayload, RelevancePayload]


@dataclass(frozen=True)
class InterventionRecord:
    type: InterventionType
    payload: Payload
    reasoning: str
    created_at: float

    def to_wire(self) -> Dict[str, Any]:
        """Serialise back to the closed action schema."""
        wire: Dict[str, Any] = {"type": self.type.value, "reasoning": self.reasoning}
        p = self.payload
        if isinstance(p, QuizPayload):
            wire["quiz"] = {
                "question": p.question,
                "options": list(p.options),
                "correctIndex": p.correct_index,
                "explanation": p.explanation,
            }
        elif isinstance(p, RelevancePayload):
            wire["reason"] = p.reason
        else:
            wire["message"] = p.message
        return wire


@dataclass(frozen=True)
class ValidationResult:
    record: Optional[InterventionRecord] = None
    reason: str = ""

    @property
    def accepted(self) -> bool:
        return self.record is not None


# ---------------------------------------------------------------------------
# Wire models: strict types, unknown fields ignored and so stripped
# ---------------------------------------------------------------------------

def _cap(value: str, limit: int) -> str:
    return value.strip()[:limit].rstrip()


def _required_text(value: str, limit: int, name: str) -> str:
    value = _cap(value, limit)
    if not value:
        raise ValueError(f"{name} must not be empty")
    return value


class _Reply(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reasoning: Optional[StrictStr] = None

    @field_validator("reasoning")
    @classmethod
    def _cap_reasoning(cls, v: Optional[str]) -> Optional[str]:
        return _cap(v, REASONING_MAX_CHARS) if v is not None else None


class _MessageReply(_Reply):
    message: StrictStr

    @field_validator("message")
    @classmethod
    def _check_message(cls, v: str) -> str:
        return _required_text(v, MESSAGE_MAX_CHARS, "message")


class _QuizBody(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    question: StrictStr
    options: List[StrictStr]
    correct_index: StrictInt = Field(alias="correctIndex")
    explanation: Optional[StrictStr] = None

    @field_validator("question")
    @classmethod
    def _check_question(cls, v: str) -> str:
        return _required_text(v, QUESTION_MAX_CHARS, "question")

    @field_validator("options")
    @classmethod
    def _check_options(cls, v: List[str]) -> List[str]:
        if len(v) != QUIZ_OPTION_COUNT:
            raise ValueError(f"expected {QUIZ_OPTION_COUNT} options, got {len(v)}")
        return [_required_text(o, OPTION_MAX_CHARS, "option") for o in v]

    @field_validator("explanation")
    @classmethod
    def _cap_explanation(cls, v: Optional[str]) -> Optional[str]:
        return _cap(v, EXPLANATION_MAX_CHARS) if v is not None else None

    @model_validator(mode="after")
    def _check_index(self) -> "_QuizBody":
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(f"correctIndex {self.correct_index} out of range")
        return self


class _QuizReply(_Reply):
    quiz: _QuizBody


class _BreakReply(_Reply):
    message: Optional[StrictStr] = None

    @field_validator("message")
    @classmethod
    def _cap_message(cls, v: Optional[str]) -> Optional[str]:
        return _cap(v, MESSAGE_MAX_CHARS) if v is not None else None


class _RelevanceReply(_Reply):
    reason: StrictStr

    @field_validator("reason")
    @classmethod
    def _check_reason(cls, v: str) -> str:
        return _required_text(v, REASON_MAX_CHARS, "reason")


_REPLY_MODELS: Dict[InterventionType, Type[_Reply]] = {
    InterventionType.MESSAGE: _MessageReply,
    InterventionType.QUIZ: _QuizReply,
    InterventionType.BREAK: _BreakReply,
    InterventionType.RELEVANCE_WARNING: _RelevanceReply,
}

_NO_ACTION = {"none", "do_nothing"}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _first_object(text: str) -> Optional[str]:
    """Return the first balanced {...} substring, honouring JSON string escapes."""
    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def parse_reply(text: Any) -> Dict[str, Any]:
    """Parse untrusted text into a JSON object or raise ResponseSchemaError."""
    if not isinstance(text, str) or not text.strip():
        raise ResponseSchemaError("empty_reply")
    if len(text) > MAX_REPLY_CHARS:
        raise ResponseSchemaError("oversized_reply", f"{len(text)} chars")

    try:
        obj = json.loads(text)
    except (ValueError, RecursionError):
        candidate = _first_object(text)
        if candidate is None:
            raise ResponseSchemaError("parse_error", "no JSON object found")
        try:
            obj = json.loads(candidate)
        except (ValueError, RecursionError) as e:
            raise ResponseSchemaError("parse_error", type(e).__name__)

    if not isinstance(obj, dict):
        raise ResponseSchemaError("not_an_object", type(obj).__name__)
    return obj


def _build_record(kind: InterventionType, reply: _Reply, now: float) -> InterventionRecord:
    payload: Payload
    if isinstance(reply, _MessageReply):
        payload = MessagePayload(message=reply.message)
    elif isinstance(reply, _QuizReply):
        payload = QuizPayload(
            question=reply.quiz.question,
            options=tuple(reply.quiz.options),
            correct_index=reply.quiz.correct_index,
            explanation=reply.quiz.explanation or "",
        )
    elif isinstance(reply, _BreakReply):
        payload = BreakPayload(message=reply.message or DEFAULT_BREAK_MESSAGE)
    elif isinstance(reply, _RelevanceReply):
        payload = RelevancePayload(reason=reply.reason)
    else:
        raise ResponseSchemaError("unknown_type", kind.value)
    return InterventionRecord(
        type=kind,
        payload=payload,
        reasoning=reply.reasoning or "",
        created_at=now,
    )


def _check_candidate(obj: Dict[str, Any], now: float) -> Optional[InterventionRecord]:
    raw_type = obj.get("type")
    if raw_type is None:
        raise ResponseSchemaError("missing_type")
    if not isinstance(raw_type, str):
        raise ResponseSchemaError("unknown_type", repr(raw_type))
    if raw_type in _NO_ACTION:
        return None
    try:
        kind = InterventionType(raw_type)
    except ValueError:
        raise ResponseSchemaError("unknown_type", raw_type)

    try:
        reply = _REPLY_MODELS[kind].model_validate(obj)
    except ValidationError as e:
        raise ResponseSchemaError(f"invalid_{kind.name.lower()}", f"{e.error_count()} error(s)")
    return _build_record(kind, reply, now)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_candidate(obj: Any, now: float) -> ValidationResult:
    """Validate an already-parsed candidate object."""
    try:
        if not isinstance(obj, dict):
            raise ResponseSchemaError("not_an_object", type(obj).__name__)
        record = _check_candidate(obj, now)
    except ResponseSchemaError as e:
        logger.info("Rejected intervention candidate: %s", e)
        return ValidationResult(reason=e.reason)
    if record is None:
        return ValidationResult(reason=DECLINED)
    return ValidationResult(record=record)


def validate_reply(text: Any, now: float) -> ValidationResult:
    """Parse and validate raw reasoning-service text. Never raises."""
    try:
        obj = parse_reply(text)
    except ResponseSchemaError as e:
        logger.info("Rejected reasoning reply: %s", e)
        return ValidationResult(reason=e.reason)
    return validate_candidate(obj, now)
