"""The order tool: its schema (bound to the model) and its executor.

Tools form a closed set (ToolName). Each member has an argument schema that
is validated before anything runs. Failures are returned to the model as
error ToolMessages so it can read them and react; nothing is raised.
"""

from enum import StrEnum
from typing import NamedTuple

from langchain_core.messages import ToolCall, ToolMessage
from langchain_core.tools import StructuredTool
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from .errors import ToolValidationError
from .models import Catalog, Order


class ToolName(StrEnum):
    CREATE_ORDER = "create_order"


class CreateOrderInput(BaseModel):
    order: Order = Field(description="The confirmed order that will be created")


TOOL_SCHEMAS: dict[ToolName, type[BaseModel]] = {
    ToolName.CREATE_ORDER: CreateOrderInput,
}

TOOL_DESCRIPTIONS: dict[ToolName, str] = {
    ToolName.CREATE_ORDER: (
        "Creates the customer's drink order. Only call this after the customer "
        "has explicitly confirmed the complete order."
    ),
}

ORDER_CREATED = "Order created successfully."
ORDER_ALREADY_CREATED = "This order was already created. No new order was placed."


class ToolOutcome(NamedTuple):
    """Result of one tool call.

    `message` answers the call in the conversation; `committed` is the order
    committed on the thread after the call (unchanged when the call failed).
    """

    message: ToolMessage
    committed: Order | None

    @property
    def ok(self) -> bool:
        return self.message.status == "success"


def _format_validation_error(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )


class ToolExecutor:
    """Validates tool calls against the catalog and runs them.

    Holds no per-conversation state: whatever was already committed on a
    thread is passed in and handed back through ToolOutcome.
    """

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog
        self.tools = [
            StructuredTool.from_function(
                func=self.create_order,
                name=ToolName.CREATE_ORDER.value,
                description=TOOL_DESCRIPTIONS[ToolName.CREATE_ORDER],
                args_schema=CreateOrderInput,
            )
        ]

    def create_order(self, order: Order | dict) -> str:
        """Validate and commit `order` outside of a conversation."""
        if isinstance(order, dict):
            order = Order.model_validate(order)
        try:
            self._commit(order)
        except ToolValidationError as exc:
            return f"Failed to create the order: {exc}"
        return ORDER_CREATED

    def execute(self, call: ToolCall, committed: Order | None = None) -> ToolOutcome:
        """Run one tool call requested by the model."""
        try:
            name = ToolName(call["name"])
        except ValueError:
            logger.warning("Model requested unknown tool: {}", call["name"])
            available = ", ".join(t.value for t in ToolName)
            return self._failure(
                call,
                f"Unknown tool '{call['name']}'. Available tools: {available}.",
                committed,
            )

        try:
            args = TOOL_SCHEMAS[name].model_validate(call.get("args") or {})
        except ValidationError as exc:
            logger.info("Rejected {} arguments: {}", name, exc.error_count())
            return self._failure(
                call,
                f"Invalid arguments for {name}: {_format_validation_error(exc)}",
                committed,
            )

        if name is ToolName.CREATE_ORDER:
            return self._execute_create_order(call, args.order, committed)
        raise AssertionError(f"Unhandled tool: {name}")

    def _execute_create_order(
        self, call: ToolCall, order: Order, committed: Order | None
    ) -> ToolOutcome:
        try:
            new_order = self._commit(order, committed)
        except ToolValidationError as exc:
            logger.info("Order rejected by catalog: {}", exc)
            return self._failure(
                call, f"Failed to create the order: {exc}", committed
            )

        if new_order is committed:
            return ToolOutcome(self._message(call, ORDER_ALREADY_CREATED), committed)
        return ToolOutcome(self._message(call, ORDER_CREATED), new_order)

    def _commit(self, order: Order, committed: Order | None = None) -> Order:
        drink = self.catalog.validate_order(order)
        candidate = order.model_copy(update={"drink": drink.name})

        if committed is not None and committed.same_selection(candidate):
            logger.info("Order already committed, skipping duplicate commit")
            return committed

        # Orders are not persisted; the commit is a logged event only
        new_order = candidate.committed()
        logger.info("Order committed: {}", new_order.model_dump_json())
        return new_order

    def _failure(
        self, call: ToolCall, content: str, committed: Order | None
    ) -> ToolOutcome:
        return ToolOutcome(self._message(call, content, status="error"), committed)

    @staticmethod
    def _message(call: ToolCall, content: str, status: str = "success") -> ToolMessage:
        return ToolMessage(
            content=content,
            name=call["name"],
            tool_call_id=call.get("id") or "",
            status=status,
        )
