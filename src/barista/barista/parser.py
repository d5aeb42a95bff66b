"""Extraction of the structured chat payload from the model's final text.

Layers, each tried only when the previous one fails:
    1. a ```json fenced block
    2. the whole text parsed as JSON
    3. a synthesized payload: what survives of an invalid JSON object, else the raw text

extract_response never raises.
"""

import json
import re
from typing import Any

from loguru import logger
from pydantic import ValidationError

from .errors import ParseFailure
from .models import ChatResponse, Order

_JSON_BLOCK_PATTERN = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)

GENERIC_ACKNOWLEDGMENT = (
    "Sorry, I didn't quite get that. What would you like to order today?"
)


def message_text(content: Any) -> str:
    """Flatten LangChain message content (str or list of blocks) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return "" if content is None else str(content)


def _parse_payload(raw: str) -> ChatResponse:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ParseFailure(f"not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseFailure(f"expected a JSON object, got {type(data).__name__}")
    try:
        return ChatResponse.model_validate(data)
    except ValidationError as exc:
        raise ParseFailure(f"payload does not match schema: {exc}") from exc


def _from_fenced_block(text: str) -> ChatResponse:
    blocks = _JSON_BLOCK_PATTERN.findall(text)
    if not blocks:
        raise ParseFailure("no ```json block found")
    # The payload is expected at the end, so the last valid block wins
    errors = []
    for block in reversed(blocks):
        try:
            return _parse_payload(block)
        except ParseFailure as exc:
            errors.append(str(exc))
    raise ParseFailure("; ".join(errors))


def _from_whole_text(text: str) -> ChatResponse:
    return _parse_payload(text.strip())


def _salvage_block(text: str) -> tuple[str | None, Order | None]:
    """Best-effort message and order from JSON that failed full validation."""
    for raw in reversed(_JSON_BLOCK_PATTERN.findall(text) or [text.strip()]):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            continue
        if not isinstance(data, dict):
            continue
        message = data.get("message")
        if not isinstance(message, str) or not message.strip():
            message = None
        try:
            order = ChatResponse.model_validate(
                {"message": "", "current_order": data.get("current_order")}
            ).current_order
        except ValidationError:
            order = None
        return message, order
    return None, None


def _synthesize(text: str) -> ChatResponse:
    message, order = _salvage_block(text)
    if message is None:
        message = _JSON_BLOCK_PATTERN.sub("", text).strip() or text.strip()
    return ChatResponse(message=message or GENERIC_ACKNOWLEDGMENT, current_order=order)


def extract_response(content: Any) -> ChatResponse:
    """Turn the model's final message content into a ChatResponse."""
    try:
        text = message_text(content)
        for layer in (_from_fenced_block, _from_whole_text):
            try:
                return layer(text)
            except ParseFailure as exc:
                logger.debug("{} failed: {}", layer.__name__, exc)
        logger.warning("No structured payload in model output, synthesizing one")
        return _synthesize(text)
    except Exception:
        logger.opt(exception=True).error("Unexpected failure extracting response")
        return ChatResponse(message=GENERIC_ACKNOWLEDGMENT)
