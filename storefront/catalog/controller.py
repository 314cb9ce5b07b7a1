"""
Catalogue controller: load → filter → sort → paginate → render model.

The controller owns the filter and page state of one catalogue view and
reacts to discrete UI events. All filtering, sorting and slicing runs
synchronously; the only asynchronous step is fetching the product list,
and only the most recently started fetch may update the state.

Lifecycle::

    IDLE --load()--> LOADING --ok--> READY (results | no_results)
                             --err-> ERROR --reload()--> LOADING

Every state change publishes a fresh ``RenderModel`` to subscribers.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from ..errors import DataUnavailable, InvalidInput
from .debounce import Debouncer, Scheduler
from .filters import coerce_price_bound, filter_products, parse_price_range
from .formatting import results_label
from .pagination import page_buttons, paginate
from .schemas import CatalogueView, FilterState, PageState, Product, ProductStatus, RenderModel, SortKey
from .sorting import sort_products

logger = logging.getLogger(__name__)

ProductLoader = Callable[[Optional[str]], Awaitable[Sequence[Product]]]
Subscriber = Callable[[RenderModel], None]


class LoadPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class CatalogueController:
    """State machine behind a catalogue page.

    Parameters
    ----------
    loader : ProductLoader
        Coroutine function returning the product snapshot for a status
        filter. It should raise ``DataUnavailable`` on failure; any other
        exception is wrapped into one.
    page_size : int
        Number of products per page.
    debounce_seconds : float
        Quiet period after the last keystroke before a search is applied.
    initial_status : Optional[str]
        Status requested from the loader. The public catalogue only shows
        published products.
    scheduler : Optional[Scheduler]
        Used for the search debounce; defaults to the running event loop.
    """

    def __init__(
        self,
        loader: ProductLoader,
        page_size: int = 12,
        debounce_seconds: float = 0.3,
        initial_status: Optional[str] = ProductStatus.PUBLISHED.value,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._loader = loader
        self._initial_status = initial_status
        self.filters = FilterState()
        self.page = PageState(page_size=page_size)

        self._phase = LoadPhase.IDLE
        self._error: Optional[DataUnavailable] = None
        self._products: Tuple[Product, ...] = ()
        self._results: List[Product] = []

        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._subscribers: List[Subscriber] = []

        self._pending_search: Optional[str] = None
        self._search_debouncer = Debouncer(debounce_seconds, self._apply_search, scheduler)
        # Number of filter+sort passes, handy for diagnostics
        self.recompute_count = 0

    # ------------------------------------------------------------------
    # Read access

    @property
    def phase(self) -> LoadPhase:
        return self._phase

    @property
    def error(self) -> Optional[DataUnavailable]:
        return self._error

    @property
    def products(self) -> Tuple[Product, ...]:
        return self._products

    @property
    def results(self) -> List[Product]:
        """Filtered and sorted products, all pages."""
        return list(self._results)

    @property
    def view(self) -> CatalogueView:
        if self._phase is LoadPhase.LOADING:
            return CatalogueView.LOADING
        if self._phase is LoadPhase.ERROR:
            return CatalogueView.ERROR
        if self._phase is LoadPhase.READY:
            return CatalogueView.RESULTS if self._results else CatalogueView.NO_RESULTS
        return CatalogueView.IDLE

    def render_model(self) -> RenderModel:
        view = self.view
        if self._phase is not LoadPhase.READY:
            return RenderModel(
                view=view,
                is_loading=view is CatalogueView.LOADING,
                is_error=view is CatalogueView.ERROR,
                error_message=str(self._error) if self._error else None,
            )
        total = self.page.total_pages
        return RenderModel(
            items=paginate(self._results, self.page.current_page, self.page.page_size),
            total_count=self.page.total_items,
            current_page=self.page.current_page,
            total_pages=total,
            view=view,
            page_buttons=page_buttons(self.page.current_page, total),
            results_label=results_label(self.page.total_items),
        )

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for render updates; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # Loading

    async def load(self) -> None:
        """Fetch the product snapshot and rebuild the results.

        A load started later supersedes this one: the older in-flight
        task is cancelled, and if it still completes its outcome is
        ignored.
        """
        self._generation += 1
        generation = self._generation
        current = asyncio.current_task()
        if self._task is not None and self._task is not current and not self._task.done():
            self._task.cancel()

        self._phase = LoadPhase.LOADING
        self._error = None
        self._publish()

        try:
            products = await self._loader(self._initial_status)
        except asyncio.CancelledError:
            logger.debug("Product load #%d cancelled", generation)
            raise
        except DataUnavailable as exc:
            self._load_failed(generation, exc)
            return
        except Exception as exc:
            self._load_failed(generation, DataUnavailable(f"Products are unavailable: {exc}", cause=exc))
            return

        if generation != self._generation:
            logger.debug("Ignoring stale product load #%d (latest is #%d)", generation, self._generation)
            return
        self._products = tuple(products)
        self._phase = LoadPhase.READY
        logger.info("%d products loaded", len(self._products))
        self._recompute()

    def reload(self) -> asyncio.Task:
        """Start a load in the background (retry button); requires a running loop."""
        previous = self._task
        self._task = asyncio.get_running_loop().create_task(self.load())
        if previous is not None and not previous.done():
            previous.cancel()
        return self._task

    def _load_failed(self, generation: int, exc: DataUnavailable) -> None:
        if generation != self._generation:
            logger.debug("Ignoring failure of stale product load #%d: %s", generation, exc)
            return
        logger.error("Failed to load products: %s", exc)
        self._phase = LoadPhase.ERROR
        self._error = exc
        self._publish()

    # ------------------------------------------------------------------
    # Filters and sort

    def set_search(self, text: str) -> None:
        """Record a keystroke; the search is applied after the quiet period."""
        self._pending_search = text or ""
        self._search_debouncer.trigger(self._pending_search)

    def submit_search(self, text: Optional[str] = None) -> None:
        """Apply the search now (Enter key or search button)."""
        self._search_debouncer.cancel()
        if text is None:
            text = self._pending_search if self._pending_search is not None else self.filters.search
        self._apply_search(text)

    def clear_search(self) -> None:
        self._search_debouncer.cancel()
        self._apply_search("")

    def set_category_filter(self, value: Optional[str]) -> None:
        self._update_filters(category=(value or "").strip())

    def set_status_filter(self, value: Optional[str]) -> None:
        self._update_filters(status=(value or "").strip())

    def set_price_filter(self, price_min: Any = None, price_max: Any = None) -> None:
        self._update_filters(price_min=self._bound(price_min, "minimum"), price_max=self._bound(price_max, "maximum"))

    def set_price_range(self, value: Optional[str]) -> None:
        """Apply a price select value such as ``"500-1000"`` or ``"5000+"``."""
        try:
            price_min, price_max = parse_price_range(value)
        except InvalidInput as exc:
            logger.warning("Ignoring price range: %s", exc)
            price_min, price_max = None, None
        self._update_filters(price_min=price_min, price_max=price_max)

    def set_sort(self, key: Any) -> None:
        value = key.value if isinstance(key, SortKey) else str(key or "")
        self._update_filters(sort=value)

    def reset_filters(self) -> None:
        self._search_debouncer.cancel()
        self._pending_search = None
        self.filters = FilterState()
        logger.info("Filters reset")
        self._refresh()

    def _apply_search(self, text: str) -> None:
        self._pending_search = None
        self._update_filters(search=(text or "").strip())

    @staticmethod
    def _bound(value: Any, label: str) -> Optional[float]:
        try:
            return coerce_price_bound(value)
        except InvalidInput as exc:
            logger.warning("Ignoring %s price: %s", label, exc)
            return None

    def _update_filters(self, **changes: Any) -> None:
        self.filters = self.filters.model_copy(update=changes)
        self._refresh()

    def _refresh(self) -> None:
        # Outside READY the new filters are applied by the next successful load
        if self._phase is LoadPhase.READY:
            self._recompute()

    def _recompute(self) -> None:
        filtered = filter_products(self._products, self.filters)
        self._results = sort_products(filtered, self.filters.sort)
        self.page = PageState(current_page=1, page_size=self.page.page_size, total_items=len(self._results))
        self.recompute_count += 1
        self._publish()

    # ------------------------------------------------------------------
    # Pagination

    def go_to_page(self, page: int) -> None:
        if self._phase is not LoadPhase.READY:
            return
        if page < 1 or page > self.page.total_pages or page == self.page.current_page:
            logger.debug("Ignoring navigation to page %s of %d", page, self.page.total_pages)
            return
        self.page = self.page.model_copy(update={"current_page": page})
        self._publish()

    def next_page(self) -> None:
        self.go_to_page(self.page.current_page + 1)

    def previous_page(self) -> None:
        self.go_to_page(self.page.current_page - 1)

    # ------------------------------------------------------------------

    def _publish(self) -> None:
        if not self._subscribers:
            return
        model = self.render_model()
        for callback in list(self._subscribers):
            try:
                callback(model)
            except Exception:
                logger.exception("Render subscriber %r failed", callback)
