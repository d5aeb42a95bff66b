"""Shared pytest fixtures for barista tests."""

from pathlib import Path

import pytest

from barista.invoker import ModelInvoker
from barista.models import Catalog, Order
from barista.service import Orchestrator
from barista.tools import ToolExecutor
from tests.helpers import ScriptedChatModel

# Path to the drinks catalog JSON relative to project root
CATALOG_JSON_PATH = (
    Path(__file__).resolve().parents[2] / "menus" / "starbucks" / "drinks-v1.json"
)


@pytest.fixture
def catalog() -> Catalog:
    """Load the drinks catalog from JSON."""
    return Catalog.from_json_file(CATALOG_JSON_PATH)


@pytest.fixture
def empty_order() -> Order:
    """Create a fresh empty order."""
    return Order()


@pytest.fixture
def executor(catalog: Catalog) -> ToolExecutor:
    return ToolExecutor(catalog)


@pytest.fixture
def make_orchestrator(catalog: Catalog, executor: ToolExecutor):
    """Factory building an Orchestrator around a scripted model."""

    def _make(model: ScriptedChatModel, **kwargs) -> Orchestrator:
        invoker = ModelInvoker(model, catalog, executor.tools)
        return Orchestrator(invoker, executor, **kwargs)

    return _make
