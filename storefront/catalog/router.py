"""
Route definitions for the catalogue API.

Endpoints under /api/catalog:
- GET  /products               : list products with filters, sort and pagination
- GET  /products/{product_id}  : get one product

The listing runs the same filter → sort → paginate pipeline as the
catalogue page, on the snapshot returned by the configured product
source. Only published and out-of-stock products are served; drafts
answer 404. Every endpoint is rate limited per client address.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing_extensions import Literal  # Py3.8 compatibility

from ..config import get_settings
from ..errors import DataUnavailable
from ..security import RateLimiter
from .filters import filter_products
from .pagination import paginate, total_pages
from .schemas import DEFAULT_SORT, FilterState, PaginatedProducts, Product, ProductStatus
from .sorting import sort_products
from .store import HttpProductSource, LocalProductSource, source_from_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/catalog", tags=["catalog"])

ProductSource = Union[LocalProductSource, HttpProductSource]

SortField = Literal["name-asc", "name-desc", "price-asc", "price-desc", "date-asc", "date-desc"]

# Drafts are never exposed by the public API
PublicStatus = Literal["published", "out_of_stock"]
PUBLIC_STATUSES = frozenset({ProductStatus.PUBLISHED, ProductStatus.OUT_OF_STOCK})


@lru_cache
def get_product_source() -> ProductSource:
    return source_from_settings(get_settings())


@lru_cache
def get_rate_limiter() -> RateLimiter:
    settings = get_settings()
    return RateLimiter(
        {
            "minute": settings.rate_limit_per_minute,
            "hour": settings.rate_limit_per_hour,
            "day": settings.rate_limit_per_day,
        }
    )


def enforce_rate_limit(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
    client = request.client.host if request.client else "unknown"
    decision = limiter.check(client)
    if not decision.allowed:
        raise HTTPException(
            status_code=429,
            detail="Trop de requêtes, réessayez plus tard",
            headers={"Retry-After": str(decision.retry_after)},
        )


@router.get("/products", response_model=PaginatedProducts, dependencies=[Depends(enforce_rate_limit)])
async def list_products(
    q: Optional[str] = Query(default=None, description="Recherche texte (nom/code)"),
    category: Optional[str] = Query(default=None, description="Filtrer par catégorie"),
    price_min: Optional[float] = Query(default=None, ge=0, description="Prix minimum"),
    price_max: Optional[float] = Query(default=None, ge=0, description="Prix maximum"),
    status: PublicStatus = Query(default="published", description="Filtrer par statut (published ou out_of_stock)"),
    sort: SortField = Query(default=DEFAULT_SORT, description="Tri"),
    page: int = Query(default=1, ge=1, description="Page courante (1-indexée)"),
    page_size: Optional[int] = Query(default=None, ge=1, le=100, description="Taille de page"),
    source: ProductSource = Depends(get_product_source),
) -> PaginatedProducts:
    """
    Returns a paginated list of products.

    - The source is asked for the status snapshot (published by default).
    - Local filters and sort are then applied to the whole snapshot.
    - Pagination metadata is computed after filtering and the requested
      page is clamped to the available range.
    """
    size = page_size or get_settings().page_size
    state = FilterState(
        search=q or "",
        category=(category or "").strip(),
        price_min=price_min,
        price_max=price_max,
        status=status,
        sort=sort,
    )

    # 1) Fetch the snapshot
    try:
        products = await source(state.status)
    except DataUnavailable as exc:
        logger.error("Product listing unavailable: %s", exc)
        raise HTTPException(status_code=503, detail="Catalogue temporairement indisponible")

    # 2) Filter + sort
    results = sort_products(filter_products(products, state), state.sort)

    # 3) Pagination metadata AFTER filters
    total = len(results)
    pages = total_pages(total, size)
    page = min(max(1, page), max(1, pages))

    return PaginatedProducts(
        page=page,
        page_size=size,
        total=total,
        total_pages=pages,
        items=paginate(results, page, size),
        filters=state.model_dump(exclude_defaults=True),
    )


@router.get("/products/{product_id}", response_model=Product, dependencies=[Depends(enforce_rate_limit)])
async def get_product(product_id: str, source: ProductSource = Depends(get_product_source)) -> Product:
    try:
        product = await source.get(product_id)
    except DataUnavailable as exc:
        logger.error("Product %s unavailable: %s", product_id, exc)
        raise HTTPException(status_code=503, detail="Catalogue temporairement indisponible")
    if product is None or product.status not in PUBLIC_STATUSES:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
