"""Tests for product lookup backends (mocked HTTP)."""

import httpx
import pytest

from wic.benefits.config import load_config
from wic.benefits.db import ApprovedFoodCatalog
from wic.benefits.lookup import ProductInfo, ProductLookupError, create_lookup
from wic.benefits.lookup.catalog import CatalogLookup
from wic.benefits.lookup.openfoodfacts import OpenFoodFactsLookup, _parse_product

MILK_RESPONSE = {
    "code": "011110123460",
    "status": 1,
    "product": {
        "product_name": "Whole Milk",
        "brands": "Dairy Farms, Kroger",
        "quantity": "half gallon",
        "serving_size": "1 cup (240 ml)",
        "image_url": "https://images.example.test/milk.jpg",
    },
}


def _lookup_with(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenFoodFactsLookup(base_url="https://off.test/api/v2", client=client), client


class TestParseProduct:
    def test_full_product(self):
        info = _parse_product("011110123460", MILK_RESPONSE)
        assert info == ProductInfo(
            code="011110123460",
            name="Whole Milk",
            brand="Dairy Farms",
            size_text="half gallon",
            image_url="https://images.example.test/milk.jpg",
        )

    def test_serving_size_fallback(self):
        data = {"status": 1, "product": {"product_name": "Yogurt", "serving_size": "32 oz"}}
        info = _parse_product("1", data)
        assert info.size_text == "32 oz"
        assert info.brand == "Unknown Brand"

    def test_missing_name(self):
        info = _parse_product("1", {"status": 1, "product": {"brands": "Acme"}})
        assert info.name == "Unknown Product"
        assert info.size_text == ""

    def test_status_zero(self):
        assert _parse_product("1", {"status": 0, "status_verbose": "product not found"}) is None

    def test_not_a_dict(self):
        assert _parse_product("1", ["unexpected"]) is None


class TestOpenFoodFactsLookup:
    @pytest.mark.asyncio
    async def test_found(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(200, json=MILK_RESPONSE)

        lookup, client = _lookup_with(handler)
        info = await lookup.lookup("011110123460")
        await client.aclose()

        assert seen["url"] == "https://off.test/api/v2/product/011110123460.json"
        assert info.name == "Whole Milk"
        assert info.size_text == "half gallon"

    @pytest.mark.asyncio
    async def test_not_found_status(self):
        lookup, client = _lookup_with(
            lambda request: httpx.Response(200, json={"status": 0})
        )
        assert await lookup.lookup("999999999999") is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_http_404(self):
        lookup, client = _lookup_with(lambda request: httpx.Response(404))
        assert await lookup.lookup("999999999999") is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_server_error(self):
        lookup, client = _lookup_with(lambda request: httpx.Response(503))
        with pytest.raises(ProductLookupError, match="HTTP 503"):
            await lookup.lookup("011110123460")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        lookup, client = _lookup_with(handler)
        with pytest.raises(ProductLookupError, match="request failed"):
            await lookup.lookup("011110123460")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        lookup, client = _lookup_with(
            lambda request: httpx.Response(200, content=b"<html>oops</html>")
        )
        with pytest.raises(ProductLookupError, match="invalid JSON"):
            await lookup.lookup("011110123460")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        lookup, client = _lookup_with(lambda request: httpx.Response(404))
        await lookup.aclose()
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self):
        lookup = OpenFoodFactsLookup()
        client = lookup._get_client()
        assert client.headers["User-Agent"].startswith("wic-benefits/")
        await lookup.aclose()
        assert client.is_closed


class TestCatalogLookup:
    @pytest.mark.asyncio
    async def test_known_and_unknown(self, tmp_path):
        catalog = ApprovedFoodCatalog(tmp_path / "test.db")
        catalog.add_general_food(
            "Fresh Bananas", "fruits", plu_code="4011", unit_size="per lb"
        )
        lookup = CatalogLookup(catalog)

        info = await lookup.lookup("4011")
        assert info.name == "Fresh Bananas"
        assert info.code == "4011"
        assert info.size_text == "per lb"
        assert await lookup.lookup("4012") is None
        catalog.close()


class TestCreateLookup:
    def test_default_is_catalog(self, tmp_path):
        config = load_config()
        config.database.path = str(tmp_path / "test.db")
        assert isinstance(create_lookup(config), CatalogLookup)

    def test_openfoodfacts(self):
        config = load_config()
        config.lookup.backend = "openfoodfacts"
        assert isinstance(create_lookup(config), OpenFoodFactsLookup)

    def test_unknown_backend(self):
        config = load_config()
        config.lookup.backend = "upcitemdb"
        with pytest.raises(ValueError, match="Unknown lookup backend"):
            create_lookup(config)
