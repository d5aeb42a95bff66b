"""LangGraph order-agent graph.

2-node graph: agent -> tools -> agent (loop) until the agent answers without
requesting tools. The agent is the chat model with the order tool bound; the
tools node runs the requested calls in order through the ToolExecutor.

The loop is bounded by the recursion limit passed when the graph is invoked.
"""

from enum import StrEnum

from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, START, MessagesState, StateGraph
from loguru import logger

from .errors import ModelInvocationError
from .invoker import ModelInvoker
from .models import Order
from .tools import ToolExecutor

# ---------------------------------------------------------------------------
# State Schema
# ---------------------------------------------------------------------------


class OrderState(MessagesState):
    """State for the order-agent graph.

    Inherits `messages` from MessagesState (with add-message reducer).
    """

    committed_order: Order | None  # Last order the create_order tool committed


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


class Step(StrEnum):
    AGENT = "agent"
    TOOLS = "tools"
    END = END


def next_step(message: BaseMessage | None) -> Step:
    """Where to go after the agent produced `message`.

    Only a non-empty tool call list leads to TOOLS; everything else ends the turn.
    """
    if isinstance(message, AIMessage) and message.tool_calls:
        return Step.TOOLS
    return Step.END


def route_after_agent(state: OrderState) -> Step:
    messages = state["messages"]
    step = next_step(messages[-1] if messages else None)
    logger.debug("route_after_agent -> {}", step.name)
    return step


# ---------------------------------------------------------------------------
# Graph Construction
# ---------------------------------------------------------------------------


def create_graph(
    invoker: ModelInvoker, executor: ToolExecutor, *, model_retries: int = 1
) -> StateGraph:
    """Build the (uncompiled) agent/tools graph around its collaborators."""

    def agent_node(state: OrderState, config: RunnableConfig) -> dict:
        """Ask the model for its next turn, retrying failed calls."""
        attempts = model_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                response = invoker.invoke(state["messages"], config=config)
            except ModelInvocationError as exc:
                if attempt == attempts:
                    raise
                logger.warning(
                    "Model call failed (attempt {}/{}): {}", attempt, attempts, exc
                )
                continue
            return {"messages": [response]}

    def tools_node(state: OrderState) -> dict:
        """Execute the requested tool calls in the order they were requested."""
        last_message = state["messages"][-1]
        committed = state.get("committed_order")
        results = []
        for call in last_message.tool_calls:
            outcome = executor.execute(call, committed)
            committed = outcome.committed
            results.append(outcome.message)
            logger.info(
                "Tool {} -> {}", call["name"], "ok" if outcome.ok else "failed"
            )
        return {"messages": results, "committed_order": committed}

    builder = StateGraph(OrderState)
    builder.add_node(Step.AGENT.value, agent_node)
    builder.add_node(Step.TOOLS.value, tools_node)

    builder.add_edge(START, Step.AGENT.value)
    builder.add_conditional_edges(
        Step.AGENT.value,
        route_after_agent,
        {
            Step.TOOLS: Step.TOOLS.value,
            Step.END: END,
        },
    )
    builder.add_edge(Step.TOOLS.value, Step.AGENT.value)
    return builder
