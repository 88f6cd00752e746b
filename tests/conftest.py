"""Pytest fixtures shared by the catalog sync tests."""

import os

os.environ.setdefault("LOG_TO_FILE", "false")

import threading

import pytest

from core.errors import NotFound, RemoteUnavailable
from core.local_store import LocalOverrideStore
from core.models import Product
from core.state import ProductStore
from core.storage import DurableStore

T0 = 1_700_000_000_000


class FixedClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now


class FakeRemote:
    """In-memory stand-in for RemoteCatalogClient."""

    def __init__(self, products=None):
        self.products = list(products or [])
        self.categories = ["electronics", "jewelery"]
        self.fail_fetch = False
        self.fail_mirror = False
        self.calls = []

    def fetch_all(self):
        self.calls.append(("fetch_all",))
        if self.fail_fetch:
            raise RemoteUnavailable("GET /products failed: connection refused")
        return list(self.products)

    def fetch_one(self, product_id):
        self.calls.append(("fetch_one", product_id))
        if self.fail_fetch:
            raise RemoteUnavailable("GET /products/%s failed" % product_id)
        for p in self.products:
            if p.id == product_id:
                return p
        raise NotFound(product_id)

    def fetch_categories(self):
        self.calls.append(("fetch_categories",))
        if self.fail_fetch:
            raise RemoteUnavailable("GET /products/categories failed")
        return list(self.categories)

    def _mirror(self, *call):
        self.calls.append(call)
        if self.fail_mirror:
            raise RemoteUnavailable("%s failed: 503 Service Unavailable" % call[0])

    def create(self, fields):
        self._mirror("create", fields)

    def update(self, product_id, fields):
        self._mirror("update", product_id, fields)

    def delete(self, product_id):
        self._mirror("delete", product_id)


class GatedRemote(FakeRemote):
    """FakeRemote whose update/fetch_all calls block until released."""

    def __init__(self, products=None):
        super().__init__(products)
        self.entered = {}
        self.release = {}

    def gate(self, key):
        self.entered[key] = threading.Event()
        self.release[key] = threading.Event()

    def _wait(self, key):
        if key in self.entered:
            self.entered[key].set()
            assert self.release[key].wait(5), f"gate {key!r} was never released"

    def fetch_all(self):
        self._wait("fetch_all")
        return super().fetch_all()

    def update(self, product_id, fields):
        self._wait(fields.get("title"))
        super().update(product_id, fields)


def make_product(product_id, title, price=1.0, **extra) -> Product:
    data = {
        "id": product_id,
        "title": title,
        "price": price,
        "description": extra.pop("description", ""),
        "category": extra.pop("category", "electronics"),
        "image": extra.pop("image", "https://example.test/img.png"),
        "rating": extra.pop("rating", {"rate": 4.1, "count": 10}),
        "stock": extra.pop("stock", 5),
    }
    data.update(extra)
    return Product.from_dict(data)


@pytest.fixture
def product():
    return make_product


@pytest.fixture
def storage(tmp_path):
    return DurableStore(str(tmp_path / "catalog_state.sqlite3"))


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def local(storage, clock):
    return LocalOverrideStore(storage, clock=clock)


@pytest.fixture
def remote():
    return FakeRemote(
        [
            make_product(1, "Backpack", 109.95, category="men's clothing"),
            make_product(2, "Slim Fit T-Shirt", 22.3, category="men's clothing"),
            make_product(3, "Gold Ring", 168.0, category="jewelery"),
        ]
    )


@pytest.fixture
def gated_remote():
    return GatedRemote([make_product(1, "Backpack", 109.95)])


@pytest.fixture
def store(remote, local, storage):
    return ProductStore(remote, local, storage)
