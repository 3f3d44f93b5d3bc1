"""Tests for the fail-closed reasoning reply validator."""

import json

import pytest

from nudge.errors import ResponseSchemaError
from nudge.router.response_validator import (
    DECLINED,
    DEFAULT_BREAK_MESSAGE,
    MESSAGE_MAX_CHARS,
    BreakPayload,
    InterventionType,
    QuizPayload,
    parse_reply,
    validate_candidate,
    validate_reply,
)

QUIZ = {
    "type": "quiz",
    "quiz": {
        "question": "What does asyncio.gather return?",
        "options": ["A list", "A set", "A dict", "None"],
        "correctIndex": 0,
        "explanation": "Results come back in order.",
    },
    "reasoning": "check comprehension",
}


class TestParseReply:
    def test_plain_json(self):
        assert parse_reply('{"type": "none"}') == {"type": "none"}

    def test_object_inside_markdown_fence(self):
        text = 'Sure!\n```json\n{"type": "message", "message": "Keep going {you got this}"}\n```'
        assert parse_reply(text)["message"] == "Keep going {you got this}"

    @pytest.mark.parametrize("text,reason", [
        ("", "empty_reply"),
        ("   ", "empty_reply"),
        (None, "empty_reply"),
        ("no json here", "parse_error"),
        ('{"type": "message"', "parse_error"),
        ("[1, 2, 3]", "not_an_object"),
        ("x" * 20_001, "oversized_reply"),
    ])
    def test_rejections(self, text, reason):
        with pytest.raises(ResponseSchemaError) as exc:
            parse_reply(text)
        assert exc.value.reason == reason


class TestValidateReply:
    def test_message_accepted(self):
        result = validate_reply('{"type": "message", "message": " Stay with it! ", "reasoning": "r"}', now=5.0)
        assert result.accepted
        assert result.record.type == InterventionType.MESSAGE
        assert result.record.payload.message == "Stay with it!"
        assert result.record.created_at == 5.0

    def test_quiz_accepted(self):
        result = validate_reply(json.dumps(QUIZ), now=0.0)
        assert result.accepted
        payload = result.record.payload
        assert isinstance(payload, QuizPayload)
        assert payload.options == ("A list", "A set", "A dict", "None")
        assert payload.correct_index == 0

    def test_quiz_with_three_options_rejected(self):
        reply = '{"type":"quiz","quiz":{"question":"Q","options":["a","b","c"],"correctIndex":0}}'
        result = validate_reply(reply, now=0.0)
        assert not result.accepted
        assert result.reason == "invalid_quiz"

    @pytest.mark.parametrize("index", [4, -1, "0", 1.0, True])
    def test_quiz_bad_index_rejected(self, index):
        reply = json.loads(json.dumps(QUIZ))
        reply["quiz"]["correctIndex"] = index
        assert not validate_candidate(reply, now=0.0).accepted

    def test_quiz_blank_option_rejected(self):
        reply = json.loads(json.dumps(QUIZ))
        reply["quiz"]["options"][2] = "   "
        assert validate_candidate(reply, now=0.0).reason == "invalid_quiz"

    def test_missing_type_rejected_without_raising(self):
        result = validate_reply('{"message": "hello"}', now=0.0)
        assert not result.accepted
        assert result.reason == "missing_type"

    def test_unknown_type_rejected(self):
        assert validate_reply('{"type": "confetti"}', now=0.0).reason == "unknown_type"

    def test_non_string_type_rejected(self):
        assert validate_reply('{"type": 3}', now=0.0).reason == "unknown_type"

    @pytest.mark.parametrize("kind", ["none", "do_nothing"])
    def test_no_action_declined(self, kind):
        result = validate_reply(json.dumps({"type": kind}), now=0.0)
        assert not result.accepted
        assert result.reason == DECLINED

    def test_message_must_be_string(self):
        assert validate_reply('{"type": "message", "message": 42}', now=0.0).reason == "invalid_message"

    def test_empty_message_rejected(self):
        assert not validate_reply('{"type": "message", "message": ""}', now=0.0).accepted

    def test_long_message_truncated(self):
        result = validate_reply(json.dumps({"type": "message", "message": "a" * 500}), now=0.0)
        assert len(result.record.payload.message) == MESSAGE_MAX_CHARS

    def test_break_gets_default_message(self):
        result = validate_reply('{"type": "break"}', now=0.0)
        assert result.record.payload == BreakPayload(message=DEFAULT_BREAK_MESSAGE)

    def test_relevance_warning_requires_reason(self):
        assert validate_reply('{"type": "show_relevance_warning"}', now=0.0).reason == "invalid_relevance_warning"
        ok = validate_reply('{"type": "show_relevance_warning", "reason": "Off-topic page"}', now=0.0)
        assert ok.record.payload.reason == "Off-topic page"

    def test_unknown_fields_stripped(self):
        result = validate_reply('{"type": "message", "message": "hi", "html": "<script>"}', now=0.0)
        assert "html" not in result.record.to_wire()

    def test_non_dict_candidate(self):
        assert validate_candidate(["break"], now=0.0).reason == "not_an_object"

    def test_deeply_nested_reply_does_not_raise(self):
        assert not validate_reply("[" * 10_000 + "]" * 10_000, now=0.0).accepted

    @pytest.mark.parametrize("reply", [
        QUIZ,
        {"type": "message", "message": "x" * 300 + "   tail", "reasoning": "  why  "},
        {"type": "break", "message": "Stretch"},
        {"type": "show_relevance_warning", "reason": "Not about the goal", "reasoning": "r"},
    ])
    def test_accepted_record_revalidates(self, reply):
        first = validate_candidate(reply, now=1.0)
        assert first.accepted
        second = validate_candidate(first.record.to_wire(), now=1.0)
        assert second.record == first.record
