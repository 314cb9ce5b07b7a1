"""
Filter engine for the product catalogue.

``filter_products`` is a pure function: it never mutates its input and
returns products in their original relative order. The helpers below
turn raw UI values (the price select, free-form bounds) into the typed
fields of ``FilterState``.
"""

from __future__ import annotations

import math
from typing import Any, List, Optional, Sequence, Tuple

from ..errors import InvalidInput
from .schemas import FilterState, Product


def _norm(s: Optional[str]) -> str:
    """Normalize a string for case-insensitive comparison."""
    return (s or "").strip().lower()


def matches(product: Product, state: FilterState) -> bool:
    """Return True when ``product`` satisfies every active constraint."""
    term = _norm(state.search)
    if term:
        if term not in (product.name or "").lower() and term not in (product.code or "").lower():
            return False

    if state.category and product.category != state.category:
        return False

    # Products sold on request have no price and drop out once a bound is set
    if state.price_min is not None or state.price_max is not None:
        if product.price is None:
            return False
        if state.price_min is not None and product.price < state.price_min:
            return False
        if state.price_max is not None and product.price > state.price_max:
            return False

    if state.status and product.status != state.status:
        return False

    return True


def filter_products(products: Sequence[Product], state: FilterState) -> List[Product]:
    """Keep the products matching ``state``.

    Parameters
    ----------
    products : Sequence[Product]
        The loaded snapshot. It is not modified.
    state : FilterState
        Active constraints. All of them must hold (logical AND); empty
        fields are ignored.

    Returns
    -------
    List[Product]
        A new list. When no constraint is active this is a copy of
        ``products`` in the same order.
    """
    if state.is_empty():
        return list(products)
    return [p for p in products if matches(p, state)]


def coerce_price_bound(value: Any) -> Optional[float]:
    """Turn a raw price bound into a float, or None when unset.

    Raises
    ------
    InvalidInput
        When the value is not a non-negative number.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return None
    if isinstance(value, bool):
        raise InvalidInput(f"Invalid price bound: {value!r}")
    try:
        bound = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid price bound: {value!r}") from None
    if math.isnan(bound) or math.isinf(bound) or bound < 0:
        raise InvalidInput(f"Invalid price bound: {value!r}")
    return bound


def parse_price_range(value: Optional[str]) -> Tuple[Optional[float], Optional[float]]:
    """Parse a price select value such as ``"500-1000"`` or ``"5000+"``.

    An empty value clears both bounds.
    """
    text = (value or "").strip()
    if not text:
        return None, None
    if text.endswith("+"):
        return coerce_price_bound(text[:-1]), None
    parts = text.split("-")
    if len(parts) == 2 and parts[0].strip() and parts[1].strip():
        low, high = coerce_price_bound(parts[0]), coerce_price_bound(parts[1])
        if low is not None and high is not None and low > high:
            raise InvalidInput(f"Price range {text!r} has its bounds reversed")
        return low, high
    raise InvalidInput(f"Invalid price range: {value!r}")
