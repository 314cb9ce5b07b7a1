"""
Pydantic schema definitions for the catalog module.

``Product`` captures what a catalogue card needs: name, code, category,
price, publication status and an ordered list of images. Records coming
from the data source are loosely typed, so ``Product.from_record``
defaults malformed fields instead of failing the whole load. The
remaining models describe the controller state (``FilterState``,
``PageState``) and what the controller hands to the rendering layer
(``RenderModel``), plus the ``PaginatedProducts`` envelope returned by
the HTTP API.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..errors import InvalidInput

logger = logging.getLogger(__name__)

# Marker inserted between page numbers when pages are skipped
ELLIPSIS = "..."


class ProductStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    OUT_OF_STOCK = "out_of_stock"


class SortKey(str, Enum):
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"
    PRICE_ASC = "price-asc"
    PRICE_DESC = "price-desc"
    DATE_ASC = "date-asc"
    DATE_DESC = "date-desc"


DEFAULT_SORT = SortKey.NAME_ASC.value


class CatalogueView(str, Enum):
    """What the rendering layer should currently show."""

    IDLE = "idle"
    LOADING = "loading"
    RESULTS = "results"
    NO_RESULTS = "no_results"
    ERROR = "error"


class ProductImage(BaseModel):
    url: str
    alt: str = ""
    order: int = 0


def _text(record: Mapping[str, Any], field: str, product_id: str) -> str:
    value = record.get(field)
    if value is None:
        logger.warning("Product %s has no %s, defaulting to empty string", product_id, field)
        return ""
    if not isinstance(value, str):
        logger.warning("Product %s has a non-text %s (%r), converting", product_id, field, value)
        return str(value)
    return value


def _price(record: Mapping[str, Any], product_id: str) -> Optional[float]:
    value = record.get("price")
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        logger.warning("Product %s has a boolean price, ignoring it", product_id)
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        logger.warning("Product %s has a non-numeric price %r, ignoring it", product_id, value)
        return None
    if math.isnan(price) or price < 0:
        logger.warning("Product %s has an invalid price %r, ignoring it", product_id, value)
        return None
    return price


def _status(record: Mapping[str, Any], product_id: str) -> ProductStatus:
    value = record.get("status")
    try:
        return ProductStatus(value)
    except ValueError:
        logger.warning("Product %s has unknown status %r, defaulting to draft", product_id, value)
        return ProductStatus.DRAFT


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Convert a timestamp in any of the shapes the data source emits.

    Accepts ``datetime`` objects, ISO 8601 strings (with an optional
    trailing ``Z``), epoch seconds and Firestore JSON exports of the form
    ``{"_seconds": ..., "_nanoseconds": ...}``. Returns ``None`` when the
    value cannot be interpreted.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, Mapping):
        seconds = value.get("_seconds", value.get("seconds"))
        return parse_timestamp(seconds) if isinstance(seconds, (int, float)) else None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def _images(record: Mapping[str, Any], product_id: str) -> List[ProductImage]:
    raw = record.get("images") or []
    if not isinstance(raw, list):
        logger.warning("Product %s has a malformed image list, ignoring it", product_id)
        return []
    images: List[ProductImage] = []
    for position, entry in enumerate(raw):
        if isinstance(entry, str) and entry:
            images.append(ProductImage(url=entry, order=position))
            continue
        if not isinstance(entry, Mapping) or not entry.get("url"):
            logger.warning("Product %s has a malformed image at position %d", product_id, position)
            continue
        try:
            order = int(entry.get("order", position))
        except (TypeError, ValueError):
            order = position
        images.append(ProductImage(url=str(entry["url"]), alt=str(entry.get("alt") or ""), order=order))
    images.sort(key=lambda img: img.order)
    return images


class Product(BaseModel):
    """A single catalogue entry.

    ``price`` is ``None`` for products sold on request. ``created_at`` is
    ``None`` only when the source record carried no usable timestamp.
    """

    id: str
    name: str = ""
    code: str = ""
    category: str = ""
    price: Optional[float] = Field(default=None, ge=0)
    status: ProductStatus = ProductStatus.DRAFT
    images: List[ProductImage] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Product":
        """Build a product from a raw data-source record.

        Parameters
        ----------
        record : Mapping[str, Any]
            A decoded JSON object or database row.

        Returns
        -------
        Product
            The product, with malformed fields replaced by defaults. Each
            replacement is logged at WARNING level.

        Raises
        ------
        InvalidInput
            When the record is not a mapping or has no identifier, since
            such a record cannot be told apart from other products.
        """
        if not isinstance(record, Mapping):
            raise InvalidInput(f"Product record must be an object, got {type(record).__name__}")
        raw_id = record.get("id")
        if raw_id is None or str(raw_id).strip() == "":
            raise InvalidInput("Product record has no id")
        product_id = str(raw_id)
        created_at = parse_timestamp(record.get("created_at"))
        if created_at is None and record.get("created_at") not in (None, ""):
            logger.warning("Product %s has an unparseable created_at %r", product_id, record.get("created_at"))
        return cls(
            id=product_id,
            name=_text(record, "name", product_id),
            code=_text(record, "code", product_id),
            # Uncategorised products are legitimate, no warning
            category=str(record.get("category") or ""),
            price=_price(record, product_id),
            status=_status(record, product_id),
            images=_images(record, product_id),
            created_at=created_at,
        )


class FilterState(BaseModel):
    """Active search/category/price/status constraints and the sort order.

    ``sort`` is kept as a plain string: an unknown key is not rejected
    here, the sort engine simply leaves the order untouched.
    """

    search: str = ""
    category: str = ""
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    status: str = ""
    sort: str = DEFAULT_SORT

    def is_empty(self) -> bool:
        return not (
            self.search.strip()
            or self.category
            or self.price_min is not None
            or self.price_max is not None
            or self.status
        )


class PageState(BaseModel):
    current_page: int = Field(default=1, ge=1)
    page_size: int = Field(default=12, ge=1)
    total_items: int = Field(default=0, ge=0)

    @property
    def total_pages(self) -> int:
        return (self.total_items + self.page_size - 1) // self.page_size

    def clamp(self, page: int) -> int:
        return min(max(1, page), max(1, self.total_pages))


PageButton = Union[int, str]


class RenderModel(BaseModel):
    """Read-only snapshot handed to the rendering layer after every update."""

    model_config = ConfigDict(frozen=True)

    items: List[Product] = Field(default_factory=list)
    total_count: int = 0
    current_page: int = 1
    total_pages: int = 0
    is_loading: bool = False
    is_error: bool = False
    view: CatalogueView = CatalogueView.IDLE
    page_buttons: List[PageButton] = Field(default_factory=list)
    results_label: str = ""
    error_message: Optional[str] = None


class PaginatedProducts(BaseModel):
    """A wrapper for paginated results returned from the ``/products`` endpoint."""

    page: int
    page_size: int
    total: int
    total_pages: int
    items: List[Product]
    filters: Dict[str, Any] = Field(default_factory=dict)
