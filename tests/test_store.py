"""Tests for the product sources."""

import json
import os

import httpx
import pytest

from storefront.catalog.store import HttpProductSource, LocalProductSource, build_products, source_from_settings
from storefront.config import Settings
from storefront.errors import DataUnavailable

RECORDS = [
    {"id": "1", "name": "Sofá Lisboa", "code": "SOF001", "price": 500, "status": "published",
     "created_at": "2024-03-05T10:00:00Z"},
    {"id": "2", "name": "Mesa Porto", "code": "MES001", "price": 1200, "status": "draft",
     "created_at": "2024-02-11T09:30:00Z"},
    {"id": "3", "name": "Cadeira Braga", "code": "CAD001", "price": 150, "status": "published",
     "created_at": "2024-04-20T14:15:00Z"},
]


def test_build_products_skips_unidentified_and_duplicate_records(caplog):
    products = build_products(RECORDS + [{"name": "no id"}, {"id": "1", "name": "again"}])
    assert [p.id for p in products] == ["1", "2", "3"]
    assert "Skipping product record #3" in caplog.text
    assert "duplicate product id 1" in caplog.text


class TestLocalProductSource:
    @pytest.fixture
    def data_file(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps(RECORDS), encoding="utf-8")
        return path

    async def test_status_filter_and_newest_first(self, data_file):
        products = await LocalProductSource(data_file)("published")
        assert [p.name for p in products] == ["Cadeira Braga", "Sofá Lisboa"]

    async def test_limit(self, data_file):
        products = await LocalProductSource(data_file, limit=1)(None)
        assert [p.id for p in products] == ["3"]

    async def test_get(self, data_file):
        source = LocalProductSource(data_file)
        assert (await source.get("2")).name == "Mesa Porto"
        assert await source.get("404") is None

    async def test_missing_file(self, tmp_path):
        with pytest.raises(DataUnavailable):
            await LocalProductSource(tmp_path / "absent.json")("published")

    async def test_malformed_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DataUnavailable):
            await LocalProductSource(path)(None)

    async def test_file_is_parsed_once_until_it_changes(self, data_file):
        reads = []

        class CountingSource(LocalProductSource):
            def read(self):
                reads.append(self.path)
                return super().read()

        source = CountingSource(data_file)
        await source("published")
        await source.get("2")
        assert len(reads) == 1

        data_file.write_text(json.dumps(RECORDS[:1]), encoding="utf-8")
        os.utime(data_file, (1_700_000_000, 1_700_000_000))
        assert [p.id for p in await source(None)] == ["1"]
        assert len(reads) == 2

    async def test_bundled_sample(self):
        products = await LocalProductSource()("published")
        assert products
        assert all(p.status == "published" for p in products)


def make_source(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpProductSource("https://shop.test/api/", client=client)


class TestHttpProductSource:
    async def test_fetches_products(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"products": RECORDS})

        products = await make_source(handler)("published")
        assert seen["path"] == "/api/products"
        assert seen["params"] == {"limit": "100", "status": "published"}
        assert [p.id for p in products] == ["1", "3"]

    async def test_accepts_plain_list(self):
        products = await make_source(lambda request: httpx.Response(200, json=RECORDS))(None)
        assert len(products) == 3

    @pytest.mark.parametrize("status", [401, 403, 500, 404])
    async def test_error_statuses(self, status):
        source = make_source(lambda request: httpx.Response(status))
        with pytest.raises(DataUnavailable):
            await source("published")

    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DataUnavailable) as info:
            await make_source(handler)("published")
        assert isinstance(info.value.cause, httpx.ConnectError)

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(DataUnavailable, match="timed out"):
            await make_source(handler)(None)

    async def test_invalid_json(self):
        source = make_source(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(DataUnavailable):
            await source(None)

    async def test_unexpected_payload(self):
        source = make_source(lambda request: httpx.Response(200, json={"count": 3}))
        with pytest.raises(DataUnavailable):
            await source(None)

    async def test_get(self):
        def handler(request):
            if request.url.path.endswith("/products/1"):
                return httpx.Response(200, json={"data": RECORDS[0]})
            return httpx.Response(404)

        source = make_source(handler)
        assert (await source.get("1")).name == "Sofá Lisboa"
        assert await source.get("9") is None


def test_source_from_settings(tmp_path):
    assert isinstance(source_from_settings(Settings(data_file=tmp_path / "x.json")), LocalProductSource)
    remote = source_from_settings(Settings(api_base_url="https://shop.test/api"))
    assert isinstance(remote, HttpProductSource)
    assert remote.base_url == "https://shop.test/api"
