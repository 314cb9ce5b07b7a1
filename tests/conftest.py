"""Shared fixtures for the catalogue tests."""

from datetime import datetime, timezone

import pytest

from storefront.catalog.schemas import Product


def make_product(id, name="", code="", category="", price=None, status="published", created_at=None, **extra):
    return Product(
        id=str(id),
        name=name,
        code=code,
        category=category,
        price=price,
        status=status,
        created_at=created_at,
        **extra,
    )


class _Timer:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when ``advance`` is called."""

    def __init__(self):
        self.now = 0.0
        self._timers = []

    def __call__(self, delay, callback):
        timer = _Timer(self.now + delay, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self._timers if not t.cancelled]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = sorted((t for t in self.pending if t.when <= target), key=lambda t: t.when)
            if not due:
                break
            timer = due[0]
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self._timers = self.pending
        self.now = target


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def sample_products():
    return [
        make_product("1", "Sofá Lisboa", "SOF001", "salon", 500, "published",
                     datetime(2024, 3, 5, tzinfo=timezone.utc)),
        make_product("2", "Mesa Porto", "MES001", "salle-a-manger", 1200, "draft",
                     datetime(2024, 2, 11, tzinfo=timezone.utc)),
        make_product("3", "Cadeira Braga", "CAD001", "salle-a-manger", 150, "published",
                     datetime(2024, 1, 20, tzinfo=timezone.utc)),
        make_product("4", "Cama Coimbra", "CAM001", "chambre", None, "published",
                     datetime(2024, 4, 1, tzinfo=timezone.utc)),
        make_product("5", "Estante Évora", "EST001", "bureau", 320, "out_of_stock",
                     datetime(2023, 12, 15, tzinfo=timezone.utc)),
    ]


@pytest.fixture
def numbered_products():
    """25 published products named so that name order equals list order."""
    return [make_product(str(i), f"Produit {i:02d}", f"P{i:03d}", price=i * 10) for i in range(1, 26)]
