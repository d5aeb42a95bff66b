import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import Milk, OrderStatus, Progress, Size, Sweetener, Syrup, Topping
from .errors import ToolValidationError

# Order field -> Drink field holding the allowed values for that axis
ORDER_AXES: dict[str, str] = {
    "size": "sizes",
    "milk": "milks",
    "syrup": "syrups",
    "sweetener": "sweeteners",
    "topping": "toppings",
}

DEFAULT_SUGGESTIONS: tuple[str, ...] = (
    "Grande Latte with oat milk",
    "Tall Caramel Macchiato with whipped cream",
    "Venti Cold Brew with vanilla syrup",
)

_NULL_STRINGS = {"", "null", "none", "n/a"}


def _is_null(value: Any) -> bool:
    return value is None or (
        isinstance(value, str) and value.strip().lower() in _NULL_STRINGS
    )


class Drink(BaseModel):
    """A catalog entry: one drink and the modifications it allows.

    An empty tuple means the drink does not support that axis at all.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    sizes: tuple[Size, ...] = ()
    milks: tuple[Milk, ...] = ()
    syrups: tuple[Syrup, ...] = ()
    sweeteners: tuple[Sweetener, ...] = ()
    toppings: tuple[Topping, ...] = ()

    def allowed(self, axis: str) -> tuple:
        """Allowed values for an order axis ("size", "milk", ...)."""
        return getattr(self, ORDER_AXES[axis])

    def summary(self) -> str:
        """One-line description used in the system prompt."""
        parts = []
        for axis, field_name in ORDER_AXES.items():
            values = getattr(self, field_name)
            if values:
                parts.append(f"{field_name}: {', '.join(v.value for v in values)}")
            else:
                parts.append(f"no {axis} options")
        description = f" ({self.description})" if self.description else ""
        return f"{self.name}{description} | " + "; ".join(parts)


class Order(BaseModel):
    """The drink order being negotiated with the customer.

    Fields stay null until the customer fills them. Once the status is
    committed the order can no longer be changed.
    """

    model_config = ConfigDict(validate_assignment=True)

    drink: str | None = Field(
        default=None, description="Drink name exactly as listed in the menu"
    )
    size: Size | None = None
    milk: Milk | None = None
    syrup: Syrup | None = None
    sweetener: Sweetener | None = None
    toppings: tuple[Topping, ...] = ()
    status: OrderStatus = Field(
        default=OrderStatus.DRAFT,
        description="draft while collecting details, confirmed once the customer agrees",
    )

    @field_validator("drink", "size", "milk", "syrup", "sweetener", mode="before")
    @classmethod
    def _null_strings_to_none(cls, value: Any) -> Any:
        return None if _is_null(value) else value

    @field_validator("toppings", mode="before")
    @classmethod
    def _coerce_toppings(cls, value: Any) -> Any:
        if _is_null(value):
            return ()
        if isinstance(value, str):
            return (value,)
        return value

    @field_validator("toppings")
    @classmethod
    def _dedupe_toppings(cls, value: tuple[Topping, ...]) -> tuple[Topping, ...]:
        return tuple(dict.fromkeys(value))

    def __setattr__(self, name: str, value: Any) -> None:
        if self.status == OrderStatus.COMMITTED:
            raise ValueError("Order is committed and can no longer be changed")
        super().__setattr__(name, value)

    @property
    def is_committed(self) -> bool:
        return self.status == OrderStatus.COMMITTED

    def _selection(self) -> tuple:
        return (
            (self.drink or "").lower(),
            self.size,
            self.milk,
            self.syrup,
            self.sweetener,
            frozenset(self.toppings),
        )

    def same_selection(self, other: "Order") -> bool:
        """True if both orders describe the same drink, ignoring status."""
        return self._selection() == other._selection()

    def committed(self) -> "Order":
        """Return a committed copy of this order."""
        return self.model_copy(update={"status": OrderStatus.COMMITTED})


class Catalog(BaseModel):
    """Immutable menu of drinks, loaded once at startup."""

    model_config = ConfigDict(frozen=True)

    catalog_id: str
    catalog_name: str
    catalog_version: str
    drinks: tuple[Drink, ...]

    def get_drink(self, name: str) -> Drink | None:
        wanted = name.strip().lower()
        return next((d for d in self.drinks if d.name.lower() == wanted), None)

    def validate_order(self, order: Order) -> Drink:
        """Check every filled field of `order` against the catalog.

        Returns the matching Drink. Raises ToolValidationError listing every
        problem found.
        """
        if order.drink is None:
            raise ToolValidationError(["No drink was selected."])

        drink = self.get_drink(order.drink)
        if drink is None:
            raise ToolValidationError(
                [
                    f"'{order.drink}' is not on the menu. "
                    f"Available drinks: {', '.join(d.name for d in self.drinks)}."
                ]
            )

        # An unsupported axis is reported once, however many values were chosen
        problems = list(
            dict.fromkeys(problem for _, _, problem in self._rejected_values(drink, order))
        )

        if drink.sizes and order.size is None:
            problems.append(f"A size is required for {drink.name}.")

        if problems:
            raise ToolValidationError(problems)
        return drink

    def restrict_order(self, order: Order) -> Order | None:
        """Copy of a (possibly partial) order without the values its drink disallows.

        Missing fields are left alone. Returns None when the drink is not on
        the menu, since nothing else in the order can be checked then.
        """
        if order.drink is None:
            return order
        drink = self.get_drink(order.drink)
        if drink is None:
            return None

        rejected = list(self._rejected_values(drink, order))
        if not rejected:
            return order

        update: dict[str, Any] = {}
        bad_toppings = set()
        for axis, value, _ in rejected:
            if axis == "topping":
                bad_toppings.add(value)
            else:
                update[axis] = None
        if bad_toppings:
            update["toppings"] = tuple(t for t in order.toppings if t not in bad_toppings)
        return order.model_copy(update=update)

    @staticmethod
    def _rejected_values(drink: Drink, order: Order) -> Iterator[tuple[str, Any, str]]:
        """Yield (axis, value, problem) for each chosen value `drink` does not allow."""
        for axis in ORDER_AXES:
            if axis == "topping":
                chosen = order.toppings
            else:
                value = getattr(order, axis)
                chosen = [value] if value is not None else []
            allowed = drink.allowed(axis)
            for value in chosen:
                if not allowed:
                    yield axis, value, f"{drink.name} does not support {axis} options."
                elif value not in allowed:
                    yield (
                        axis,
                        value,
                        f"{value.value} is not an available {axis} for {drink.name}. "
                        f"Choose from: {', '.join(v.value for v in allowed)}.",
                    )

    # --- Prompt summaries ---------------------------------------------------

    def drinks_summary(self) -> str:
        return "\n".join(f"- {drink.summary()}" for drink in self.drinks)

    @staticmethod
    def sizes_summary() -> str:
        return ", ".join(s.value for s in Size)

    @staticmethod
    def milks_summary() -> str:
        return ", ".join(m.value for m in Milk)

    @staticmethod
    def syrups_summary() -> str:
        return ", ".join(s.value for s in Syrup)

    @staticmethod
    def sweeteners_summary() -> str:
        return ", ".join(s.value for s in Sweetener)

    @staticmethod
    def toppings_summary() -> str:
        return ", ".join(t.value for t in Topping)

    # --- Loading ------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict) -> "Catalog":
        """Load Catalog from a dictionary (matching JSON structure)."""
        metadata = data["metadata"]
        return cls(
            catalog_id=metadata["catalog_id"],
            catalog_name=metadata["catalog_name"],
            catalog_version=metadata["catalog_version"],
            drinks=tuple(Drink(**drink) for drink in data["drinks"]),
        )

    @classmethod
    def from_json_file(cls, path: str | Path) -> "Catalog":
        """Load Catalog from a JSON file path."""
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)


class ChatResponse(BaseModel):
    """Payload returned to the caller on every turn."""

    message: str
    current_order: Order | None = None
    suggestions: str | list[str] = Field(
        default_factory=lambda: list(DEFAULT_SUGGESTIONS)
    )
    progress: Progress = Progress.IN_PROGRESS

    @field_validator("current_order", mode="before")
    @classmethod
    def _null_order(cls, value: Any) -> Any:
        return None if _is_null(value) else value

    @field_validator("suggestions", mode="before")
    @classmethod
    def _null_suggestions(cls, value: Any) -> Any:
        return list(DEFAULT_SUGGESTIONS) if value is None else value

    @field_validator("progress", mode="before")
    @classmethod
    def _null_progress(cls, value: Any) -> Any:
        return Progress.IN_PROGRESS if _is_null(value) else value
