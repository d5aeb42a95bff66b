"""Tests for extracting the structured payload from model output."""

import json

import pytest

from barista.enums import Milk, Progress
from barista.models import DEFAULT_SUGGESTIONS
from barista.parser import GENERIC_ACKNOWLEDGMENT, extract_response, message_text
from tests.helpers import PARTIAL_ORDER

PAYLOAD = {
    "message": "A Grande Oat Latte, great choice! Any syrup?",
    "current_order": PARTIAL_ORDER,
    "suggestions": ["Vanilla syrup", "No syrup"],
    "progress": "in_progress",
}


def _fenced(payload: dict, tag: str = "json") -> str:
    return f"```{tag}\n{json.dumps(payload, indent=2)}\n```"


class TestFencedBlock:
    def test_round_trip(self):
        text = "Sure thing! ☕\n" + _fenced(PAYLOAD)
        response = extract_response(text)
        assert response.model_dump(mode="json") == PAYLOAD

    def test_tag_is_case_insensitive(self):
        response = extract_response(_fenced(PAYLOAD, tag="JSON"))
        assert response.message == PAYLOAD["message"]

    def test_last_valid_block_wins(self):
        earlier = {**PAYLOAD, "message": "old"}
        text = _fenced(earlier) + "\nUpdated:\n" + _fenced(PAYLOAD)
        assert extract_response(text).message == PAYLOAD["message"]

    def test_invalid_last_block_falls_back_to_earlier_block(self):
        text = _fenced(PAYLOAD) + "\n```json\n{not json}\n```"
        assert extract_response(text).message == PAYLOAD["message"]

    def test_order_values_are_validated(self):
        response = extract_response(_fenced(PAYLOAD))
        assert response.current_order.milk is Milk.OAT
        assert response.progress is Progress.IN_PROGRESS

    def test_suggestions_as_string(self):
        payload = {**PAYLOAD, "suggestions": "Vanilla, Caramel"}
        assert extract_response(_fenced(payload)).suggestions == "Vanilla, Caramel"

    def test_completed_progress(self):
        payload = {**PAYLOAD, "progress": "completed"}
        assert extract_response(_fenced(payload)).progress is Progress.COMPLETED

    def test_null_optional_fields_use_defaults(self):
        payload = {**PAYLOAD, "suggestions": None, "progress": None}
        response = extract_response("Got it!\n" + _fenced(payload))
        assert response.message == PAYLOAD["message"]
        assert response.current_order.milk is Milk.OAT
        assert response.suggestions == list(DEFAULT_SUGGESTIONS)
        assert response.progress is Progress.IN_PROGRESS


class TestWholeText:
    def test_bare_json(self):
        response = extract_response(json.dumps(PAYLOAD))
        assert response.model_dump(mode="json") == PAYLOAD

    def test_bare_json_with_whitespace(self):
        response = extract_response("\n  " + json.dumps(PAYLOAD) + "  \n")
        assert response.message == PAYLOAD["message"]


class TestFallback:
    """Malformed or missing payloads still yield a complete response."""

    def test_plain_prose(self):
        response = extract_response("Hello! What can I get started for you?")
        assert response.message == "Hello! What can I get started for you?"
        assert response.current_order is None
        assert response.suggestions == list(DEFAULT_SUGGESTIONS)
        assert response.progress is Progress.IN_PROGRESS

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            "```json\n{broken\n```",
            "[1, 2, 3]",
            '{"current_order": null}',
            '```json\n{"message": "hi", "progress": "finished"}\n```',
            '```json\n{"message": "hi", "current_order": {"milk": "Goat"}}\n```',
        ],
    )
    def test_always_returns_all_fields(self, text):
        response = extract_response(text)
        data = response.model_dump()
        assert set(data) == {"message", "current_order", "suggestions", "progress"}
        assert response.message
        assert response.progress is Progress.IN_PROGRESS

    def test_empty_text_uses_generic_acknowledgment(self):
        assert extract_response("").message == GENERIC_ACKNOWLEDGMENT

    def test_broken_block_is_stripped_from_message(self):
        response = extract_response("Let me check that.\n```json\n{broken\n```")
        assert response.message == "Let me check that."

    def test_invalid_block_keeps_its_message_and_order(self):
        payload = {**PAYLOAD, "progress": "finished"}
        response = extract_response(_fenced(payload))
        assert response.message == PAYLOAD["message"]
        assert response.current_order.drink == "Latte"
        assert response.progress is Progress.IN_PROGRESS

    def test_unparseable_block_alone_keeps_raw_text(self):
        text = "```json\n{broken\n```"
        assert extract_response(text).message == text

    def test_non_text_content(self):
        assert extract_response(None).message == GENERIC_ACKNOWLEDGMENT
        assert extract_response(42).message == "42"


class TestMessageText:
    def test_string_content(self):
        assert message_text("hello") == "hello"

    def test_content_blocks(self):
        content = [
            {"type": "text", "text": "Here you go "},
            {"type": "image_url", "image_url": "http://example.com/x.png"},
            "and more",
        ]
        assert message_text(content) == "Here you go and more"

    def test_content_blocks_are_parsed(self):
        content = [{"type": "text", "text": _fenced(PAYLOAD)}]
        assert extract_response(content).message == PAYLOAD["message"]
