"""Barista order agent: LangGraph agent/tool loop for drink orders."""

from .enums import Milk, OrderStatus, Progress, Size, Sweetener, Syrup, Topping
from .models import Catalog, ChatResponse, Drink, Order
from .service import Orchestrator, create_orchestrator
from .tools import ToolExecutor, ToolName

__all__ = [
    "Catalog",
    "ChatResponse",
    "Drink",
    "Milk",
    "Orchestrator",
    "Order",
    "OrderStatus",
    "Progress",
    "Size",
    "Sweetener",
    "Syrup",
    "ToolExecutor",
    "ToolName",
    "Topping",
    "create_orchestrator",
]
