"""Per-thread conversation history, checkpointed by the compiled graph.

The graph's checkpointer snapshots every thread after each step, so a turn
that dies half way leaves a history that can be resumed. Turns on the same
thread are serialized with a per-thread lock; different threads never wait on
each other beyond the lookup of their lock.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from langchain_core.messages import BaseMessage
from langchain_core.runnables import RunnableConfig
from langgraph.graph.state import CompiledStateGraph
from loguru import logger

from .graph import Step
from .models import Order


class ConversationStore:
    """Append-only message history per thread id.

    Backed by whatever checkpointer `graph` was compiled with (MemorySaver by
    default). Histories are never evicted.
    """

    def __init__(self, graph: CompiledStateGraph) -> None:
        if graph.checkpointer is None:
            raise ValueError("graph must be compiled with a checkpointer")
        self._graph = graph
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @staticmethod
    def config(thread_id: str) -> RunnableConfig:
        return {"configurable": {"thread_id": thread_id}}

    @contextmanager
    def lock(self, thread_id: str) -> Iterator[None]:
        """Hold the thread's lock for the duration of a turn."""
        with self._locks_guard:
            thread_lock = self._locks.setdefault(thread_id, threading.Lock())
        with thread_lock:
            yield

    def history(self, thread_id: str) -> list[BaseMessage]:
        """Messages of the thread in order; empty for an unseen thread."""
        snapshot = self._graph.get_state(self.config(thread_id))
        return list(snapshot.values.get("messages", []))

    def committed_order(self, thread_id: str) -> Order | None:
        """The last order committed on the thread, if any."""
        snapshot = self._graph.get_state(self.config(thread_id))
        return snapshot.values.get("committed_order")

    def append(self, thread_id: str, message: BaseMessage) -> None:
        """Append one message to the thread and checkpoint it."""
        # Recorded as an agent step so the next turn starts cleanly from START
        self._graph.update_state(
            self.config(thread_id), {"messages": [message]}, as_node=Step.AGENT.value
        )
        logger.debug("Appended {} to thread {}", type(message).__name__, thread_id)
