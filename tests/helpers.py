"""Fake chat model and message builders shared by the barista tests."""

import json
from collections.abc import Callable

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult

PARTIAL_ORDER = {
    "drink": "Latte",
    "size": "Grande",
    "milk": "Oat",
    "syrup": None,
    "sweetener": None,
    "toppings": [],
    "status": "draft",
}

FULL_ORDER = {
    "drink": "Latte",
    "size": "Grande",
    "milk": "Oat",
    "syrup": "Vanilla",
    "sweetener": "Honey",
    "toppings": ["Whipped Cream"],
    "status": "draft",
}


class ScriptedChatModel(BaseChatModel):
    """Chat model whose replies come from a Python function.

    `respond` receives the full prompt (system message included) and returns
    an AIMessage or plain text. Tool binding is a no-op.
    """

    respond: Callable[[list[BaseMessage]], AIMessage | str]

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        message = self.respond(messages)
        if isinstance(message, str):
            message = AIMessage(content=message)
        return ChatResult(generations=[ChatGeneration(message=message)])

    def bind_tools(self, tools, **kwargs):
        return self


def scripted(*replies: AIMessage | str) -> ScriptedChatModel:
    """Model that returns `replies` one after another."""
    remaining = list(replies)

    def respond(messages):
        return remaining.pop(0)

    return ScriptedChatModel(respond=respond)


def fenced_reply(
    message: str,
    current_order: dict | None = None,
    suggestions: list[str] | str | None = None,
    progress: str = "in_progress",
    prose: str = "",
) -> AIMessage:
    payload = {
        "message": message,
        "current_order": current_order,
        "suggestions": suggestions if suggestions is not None else ["Add vanilla syrup"],
        "progress": progress,
    }
    return AIMessage(content=f"{prose}\n```json\n{json.dumps(payload)}\n```")


def order_call(order: dict, call_id: str = "call_1", name: str = "create_order") -> dict:
    return {"name": name, "args": {"order": order}, "id": call_id, "type": "tool_call"}


def tool_request(*calls: dict) -> AIMessage:
    return AIMessage(content="", tool_calls=list(calls))
