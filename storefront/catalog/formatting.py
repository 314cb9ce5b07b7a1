"""
Display helpers for catalogue cards and the results bar.

Prices follow the Portuguese convention used by the shop (``1 200,00 €``)
and dates the French long form (``5 mars 2024``).
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Optional, Tuple

from .schemas import Product, parse_timestamp

PRICE_ON_REQUEST = "Prix sur demande"
UNKNOWN_DATE = "Date inconnue"
DEFAULT_PRODUCT_IMAGE = "/assets/images/default-product.jpg"

CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£"}

STATUS_LABELS = {
    "published": "Disponible",
    "draft": "Brouillon",
    "out_of_stock": "Rupture de stock",
}

FRENCH_MONTHS = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)


def format_price(price: Any, currency: str = "EUR") -> str:
    """Format a price as ``1 200,00 €``; missing or zero prices read "on request"."""
    if isinstance(price, bool) or not price:
        return PRICE_ON_REQUEST
    try:
        amount = float(price)
    except (TypeError, ValueError):
        return PRICE_ON_REQUEST
    if math.isnan(amount) or math.isinf(amount):
        return PRICE_ON_REQUEST
    grouped = f"{abs(amount):,.2f}"  # 1,200.00
    integer, decimals = grouped.split(".")
    number = f"{integer.replace(',', ' ')},{decimals}"
    if amount < 0:
        number = "-" + number
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())
    return f"{number} {symbol}"


def format_date(value: Any) -> str:
    if isinstance(value, date) and not isinstance(value, datetime):
        parsed: Optional[date] = value
    else:
        parsed = parse_timestamp(value)
    if parsed is None:
        return UNKNOWN_DATE
    return f"{parsed.day} {FRENCH_MONTHS[parsed.month - 1]} {parsed.year}"


def status_label(status: Any) -> str:
    key = getattr(status, "value", status)
    return STATUS_LABELS.get(key, str(key))


def results_label(count: int) -> str:
    if count == 0:
        return "Aucun produit trouvé"
    if count == 1:
        return "1 produit trouvé"
    return f"{count} produits trouvés"


def main_image(product: Product) -> Tuple[str, str]:
    """Return ``(url, alt)`` of the card image, falling back to the default picture."""
    if product.images:
        first = product.images[0]
        return first.url, first.alt or product.name
    return DEFAULT_PRODUCT_IMAGE, product.name
