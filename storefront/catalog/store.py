"""
Product sources for the catalogue.

Two loaders are provided, both usable as the controller's
``ProductLoader`` (``await source(status)``):

* ``LocalProductSource`` reads the bundled ``sample_products.json`` (or
  any file with the same layout). It is the default for local
  development and tests.
* ``HttpProductSource`` fetches the list from the shop REST API with
  ``httpx``.

Both build ``Product`` instances with ``Product.from_record`` so a single
malformed record never aborts a load, and both raise ``DataUnavailable``
when the list itself cannot be obtained.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

import httpx

from ..config import DEFAULT_DATA_FILE, Settings
from ..errors import DataUnavailable, InvalidInput
from .schemas import Product

logger = logging.getLogger(__name__)

# The catalogue page works on a client-side window of the newest products
DEFAULT_LIMIT = 100

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def build_products(records: Iterable[Any]) -> List[Product]:
    """Convert raw records, skipping those without an identifier."""
    products: List[Product] = []
    seen = set()
    for position, record in enumerate(records):
        try:
            product = Product.from_record(record)
        except InvalidInput as exc:
            logger.warning("Skipping product record #%d: %s", position, exc)
            continue
        if product.id in seen:
            logger.warning("Skipping duplicate product id %s", product.id)
            continue
        seen.add(product.id)
        products.append(product)
    return products


def _newest_first(products: List[Product]) -> List[Product]:
    def key(p: Product) -> datetime:
        if p.created_at is None:
            return _OLDEST
        return p.created_at if p.created_at.tzinfo else p.created_at.replace(tzinfo=timezone.utc)

    return sorted(products, key=key, reverse=True)


def _unwrap(payload: Any) -> List[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for field in ("products", "data", "items"):
            value = payload.get(field)
            if isinstance(value, list):
                return value
    raise DataUnavailable("Unexpected product payload")


class LocalProductSource:
    """Load products from a JSON file holding a list of records.

    The parsed file is cached and read again only when its modification
    time changes. File access runs in a worker thread.
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_DATA_FILE, limit: int = DEFAULT_LIMIT):
        self.path = Path(path)
        self.limit = limit
        self._cache: Optional[Tuple[float, List[Product]]] = None
        self._lock = threading.Lock()

    def _snapshot(self) -> List[Product]:
        try:
            mtime = self.path.stat().st_mtime
        except OSError as exc:
            logger.error("Cannot read products from %s: %s", self.path, exc)
            raise DataUnavailable(f"Cannot read products from {self.path}", cause=exc) from exc
        with self._lock:
            if self._cache is None or self._cache[0] != mtime:
                self._cache = (mtime, self.read())
            return list(self._cache[1])

    async def _products(self) -> List[Product]:
        return await asyncio.to_thread(self._snapshot)

    def read(self) -> List[Product]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            logger.error("Cannot read products from %s: %s", self.path, exc)
            raise DataUnavailable(f"Cannot read products from {self.path}", cause=exc) from exc
        return build_products(_unwrap(raw))

    async def __call__(self, status: Optional[str] = None) -> List[Product]:
        products = await self._products()
        if status:
            products = [p for p in products if p.status == status]
        return _newest_first(products)[: self.limit]

    async def get(self, product_id: str) -> Optional[Product]:
        for product in await self._products():
            if product.id == str(product_id):
                return product
        return None


class HttpProductSource:
    """Load products from the shop REST API.

    Parameters
    ----------
    base_url : str
        API root, e.g. ``https://shop.example/api``. Products are read
        from ``{base_url}/products``.
    client : Optional[httpx.AsyncClient]
        Shared client. When omitted a short-lived client is created per
        request.
    timeout : float
        Request timeout in seconds.
    limit : int
        Maximum number of products requested.
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        limit: int = DEFAULT_LIMIT,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.limit = limit
        self._client = client

    async def _get_json(self, path: str, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=params)
        except httpx.TimeoutException as exc:
            logger.error("Timed out fetching %s", url)
            raise DataUnavailable("Product service timed out", cause=exc) from exc
        except httpx.HTTPError as exc:
            logger.error("Error fetching %s: %s", url, exc)
            raise DataUnavailable("Product service unreachable", cause=exc) from exc

        if response.status_code in (401, 403):
            logger.error("Permission denied fetching %s (status %s)", url, response.status_code)
            raise DataUnavailable("Not allowed to read products")
        if response.status_code == 404:
            return None
        if response.is_error:
            logger.error("Request to %s returned status %s", url, response.status_code)
            raise DataUnavailable(f"Product service returned status {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise DataUnavailable("Product service returned invalid JSON", cause=exc) from exc

    async def __call__(self, status: Optional[str] = None) -> List[Product]:
        params: dict = {"limit": self.limit}
        if status:
            params["status"] = status
        payload = await self._get_json("/products", params)
        if payload is None:
            raise DataUnavailable("Product listing not found")
        products = build_products(_unwrap(payload))
        if status:
            products = [p for p in products if p.status == status]
        return products

    async def get(self, product_id: str) -> Optional[Product]:
        payload = await self._get_json(f"/products/{product_id}")
        if payload is None:
            return None
        if isinstance(payload, Mapping) and isinstance(payload.get("data"), Mapping):
            payload = payload["data"]
        try:
            return Product.from_record(payload)
        except InvalidInput as exc:
            raise DataUnavailable(f"Malformed product {product_id}", cause=exc) from exc


def source_from_settings(settings: Settings) -> Union[LocalProductSource, HttpProductSource]:
    if settings.api_base_url:
        return HttpProductSource(settings.api_base_url, timeout=settings.request_timeout, limit=settings.load_limit)
    return LocalProductSource(settings.data_file, limit=settings.load_limit)
