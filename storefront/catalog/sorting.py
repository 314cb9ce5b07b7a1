"""
Sort engine for the product catalogue.

Every order is a stable sort on a derived key, so ties keep their
relative order and sorting twice by the same key changes nothing.
"""

from __future__ import annotations

import logging
import unicodedata
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .schemas import Product, SortKey

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def collation_key(text: Optional[str]) -> Tuple[str, str, str]:
    """Build a locale-style collation key for ``text``.

    Accents and case only break ties: ``"sofá"``, ``"Sofa"`` and ``"sofa"``
    sort together, ahead of ``"Table"``.
    """
    s = text or ""
    decomposed = unicodedata.normalize("NFKD", s)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return base, s.casefold(), s


def _price_key(product: Product) -> float:
    return product.price or 0.0


def _date_key(product: Product) -> datetime:
    value = product.created_at
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _name_key(product: Product) -> Tuple[str, str, str]:
    return collation_key(product.name)


_ORDERS: Dict[str, Tuple[Callable[[Product], object], bool]] = {
    SortKey.NAME_ASC.value: (_name_key, False),
    SortKey.NAME_DESC.value: (_name_key, True),
    SortKey.PRICE_ASC.value: (_price_key, False),
    SortKey.PRICE_DESC.value: (_price_key, True),
    SortKey.DATE_ASC.value: (_date_key, False),
    SortKey.DATE_DESC.value: (_date_key, True),
}


def sort_products(products: Sequence[Product], key: str) -> List[Product]:
    """Return a sorted copy of ``products``.

    Parameters
    ----------
    products : Sequence[Product]
        Products to order. The sequence itself is never modified.
    key : str
        One of the ``SortKey`` values. Any other value leaves the order
        unchanged.

    Returns
    -------
    List[Product]
        A new list in the requested order.
    """
    if isinstance(key, SortKey):
        key = key.value
    order = _ORDERS.get(key)
    if order is None:
        logger.debug("Unknown sort key %r, keeping current order", key)
        return list(products)
    key_func, descending = order
    # sorted() stays stable with reverse=True
    return sorted(products, key=key_func, reverse=descending)
