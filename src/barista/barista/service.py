"""Entry point for one chat turn: Orchestrator.run(thread_id, user_id, query).

Every failure below this boundary becomes a well-formed ChatResponse. Only a
missing identity or a malformed request is raised to the caller.
"""

from langchain_core.callbacks import BaseCallbackHandler
from langchain_core.messages import AIMessage, HumanMessage, ToolMessage
from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import MemorySaver
from langgraph.errors import GraphRecursionError
from loguru import logger

from .config import Settings, get_settings
from .enums import OrderStatus, Progress
from .errors import (
    AuthRejectedError,
    InvalidRequestError,
    LoopBoundExceeded,
    ModelInvocationError,
)
from .graph import create_graph
from .invoker import ModelInvoker, create_chat_model, get_system_prompt_template
from .models import Catalog, ChatResponse, Order
from .parser import extract_response
from .store import ConversationStore
from .tools import ToolExecutor

LOOP_ABORTED_MESSAGE = (
    "Sorry, I got a bit tangled up handling that request. 😅 "
    "Could you tell me again what you'd like?"
)
MODEL_FAILED_MESSAGE = (
    "Sorry, I can't reach the ordering system right now. "
    "Please try again in a moment. ☕"
)
TOOL_CALL_ABORTED = "Tool call aborted: the turn exceeded its step limit."


class Orchestrator:
    """Runs chat turns through the agent/tools graph, one thread at a time."""

    def __init__(
        self,
        invoker: ModelInvoker,
        executor: ToolExecutor,
        *,
        checkpointer: BaseCheckpointSaver | None = None,
        recursion_limit: int = 15,
        model_retries: int = 1,
        callbacks: list[BaseCallbackHandler] | None = None,
    ) -> None:
        builder = create_graph(invoker, executor, model_retries=model_retries)
        self.graph = builder.compile(checkpointer=checkpointer or MemorySaver())
        self.store = ConversationStore(self.graph)
        self.catalog = executor.catalog
        self.recursion_limit = recursion_limit
        self.callbacks = list(callbacks or [])

    @staticmethod
    def thread_key(user_id: str, thread_id: str) -> str:
        """Store key for a thread; scoped by user so threads cannot be shared."""
        return f"{user_id}-{thread_id}"

    def run(self, thread_id: str, user_id: str, query: str) -> ChatResponse:
        """Process one user message and return the structured reply."""
        if not user_id or not user_id.strip():
            raise AuthRejectedError("Request has no verified user identity")
        if not thread_id or not thread_id.strip():
            raise InvalidRequestError("thread_id is required")
        if not query or not query.strip():
            raise InvalidRequestError("query is required")

        key = self.thread_key(user_id, thread_id)
        config = self._run_config(key, user_id)

        with logger.contextualize(thread=key), self.store.lock(key):
            logger.info("Turn started")
            try:
                # committed_order only tracks commits made during this turn
                final_state = self.graph.invoke(
                    {"messages": [HumanMessage(content=query)], "committed_order": None},
                    config=config,
                )
            except GraphRecursionError:
                exc = LoopBoundExceeded(
                    f"Turn exceeded the limit of {self.recursion_limit} steps"
                )
                logger.error("{}", exc)
                self._close_dangling_tool_calls(key)
                return self._error_response(key, LOOP_ABORTED_MESSAGE)
            except ModelInvocationError as exc:
                logger.error("{}", exc)
                return self._error_response(key, MODEL_FAILED_MESSAGE)

            last_message = final_state["messages"][-1]
            response = self._restrict_order(extract_response(last_message.content))
            response = self._reconcile_order(
                response, final_state.get("committed_order")
            )
            logger.info("Turn finished (progress={})", response.progress)
            return response

    def _run_config(self, key: str, user_id: str) -> RunnableConfig:
        config = self.store.config(key)
        config["recursion_limit"] = self.recursion_limit
        if self.callbacks:
            config["callbacks"] = self.callbacks
            config["metadata"] = {
                "langfuse_session_id": key,
                "langfuse_user_id": user_id,
            }
        return config

    def _close_dangling_tool_calls(self, key: str) -> None:
        """Answer tool calls an aborted turn left without results."""
        history = self.store.history(key)
        if not history:
            return
        last_message = history[-1]
        if isinstance(last_message, AIMessage) and last_message.tool_calls:
            for call in last_message.tool_calls:
                self.store.append(
                    key,
                    ToolMessage(
                        content=TOOL_CALL_ABORTED,
                        name=call["name"],
                        tool_call_id=call.get("id") or "",
                        status="error",
                    ),
                )

    def _last_known_order(self, key: str) -> Order | None:
        for message in reversed(self.store.history(key)):
            if isinstance(message, AIMessage) and not message.tool_calls:
                return extract_response(message.content).current_order
        return None

    def _error_response(self, key: str, message: str) -> ChatResponse:
        response = ChatResponse(
            message=message,
            current_order=self._last_known_order(key),
            progress=Progress.ERROR,
        )
        response = self._restrict_order(response)
        return self._reconcile_order(response, self.store.committed_order(key))

    def _restrict_order(self, response: ChatResponse) -> ChatResponse:
        """Drop order values the catalog does not offer for the chosen drink."""
        order = response.current_order
        if order is None:
            return response
        restricted = self.catalog.restrict_order(order)
        if restricted is order:
            return response
        logger.warning(
            "Model reported an order the catalog does not allow: {}",
            order.model_dump_json(),
        )
        return response.model_copy(update={"current_order": restricted})

    @staticmethod
    def _reconcile_order(
        response: ChatResponse, committed: Order | None
    ) -> ChatResponse:
        """Only an order the tool committed this turn is reported as committed.

        A completed turn needs such a commit too; otherwise it stays in progress.
        """
        order = response.current_order
        update = {}
        if committed is not None and (order is None or committed.same_selection(order)):
            update["current_order"] = committed
        else:
            if order is not None and order.is_committed:
                logger.warning("Model reported an order as committed without a commit")
                update["current_order"] = order.model_copy(
                    update={"status": OrderStatus.CONFIRMED}
                )
            if response.progress == Progress.COMPLETED:
                logger.warning("Model reported the turn completed without a commit")
                update["progress"] = Progress.IN_PROGRESS
        if not update:
            return response
        return response.model_copy(update=update)


def _create_langfuse_handler(settings: Settings):
    """Create a Langfuse callback handler if credentials are configured.

    Returns None if Langfuse is not configured.
    """
    if not settings.langfuse_enabled:
        return None

    from langfuse import Langfuse
    from langfuse.langchain import CallbackHandler

    # Initialize the Langfuse singleton client with credentials
    Langfuse(
        public_key=settings.langfuse_public_key,
        secret_key=settings.langfuse_secret_key,
        host=settings.langfuse_base_url,
    )
    return CallbackHandler()


def create_orchestrator(settings: Settings | None = None) -> Orchestrator:
    """Wire the orchestrator from settings: catalog, Mistral model, prompt, tracing."""
    settings = settings or get_settings()

    catalog = Catalog.from_json_file(settings.menu_json_path)
    logger.info(
        "Catalog loaded: {} ({} drinks)", catalog.catalog_name, len(catalog.drinks)
    )

    executor = ToolExecutor(catalog)
    invoker = ModelInvoker(
        create_chat_model(settings),
        catalog,
        executor.tools,
        prompt_template=get_system_prompt_template(settings),
    )

    langfuse_handler = _create_langfuse_handler(settings)
    if langfuse_handler:
        logger.info("Langfuse tracing enabled")
    else:
        logger.info("Langfuse tracing disabled (no credentials)")

    return Orchestrator(
        invoker,
        executor,
        recursion_limit=settings.recursion_limit,
        model_retries=settings.model_retries,
        callbacks=[langfuse_handler] if langfuse_handler else None,
    )
