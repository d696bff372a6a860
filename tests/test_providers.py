"""
Tests for the stub and HTTP data providers.
"""

import json

import httpx
import pytest

from concierge.core.config import ConciergeConfig
from concierge.intent.normalizer import normalize_filters
from concierge.providers import HttpProviders, StubProviders, create_providers
from concierge.providers.base import ProviderError

from conftest import make_product


class TestStubProviders:
    """Demo inventory behaviour."""

    @pytest.mark.asyncio
    async def test_gift_search(self):
        stub = StubProviders()
        products = await stub.search_products(normalize_filters({"tags": ["gift"], "priceLt": 300, "readyToShip": True}))
        assert products
        assert all(p.price <= 300 for p in products)

    @pytest.mark.asyncio
    async def test_legacy_shapes_normalized(self):
        stub = StubProviders()
        products = await stub.search_products(normalize_filters({"q": "halo"}))
        assert [p.title for p in products] == ["Aurora Halo Ring"]
        assert products[0].price == 980
        assert products[0].image == "/images/products/aurora-halo.jpg"

    @pytest.mark.asyncio
    async def test_stone_filter(self):
        stub = StubProviders()
        products = await stub.search_products(normalize_filters({"stone": "Lab Diamond"}))
        assert {p.id for p in products} == {"rg-001", "er-001", "br-001"}

    @pytest.mark.asyncio
    async def test_sort_and_paging(self):
        stub = StubProviders()
        products = await stub.search_products(normalize_filters({"sortBy": "price-asc", "limit": 2, "offset": 1}))
        assert [p.price for p in products] == [190, 240]

    @pytest.mark.asyncio
    async def test_order_status_is_deterministic(self):
        stub = StubProviders()
        first = await stub.lookup_order_status({"orderNumber": "GG-12345"})
        second = await stub.lookup_order_status({"orderNumber": "GG-12345"})
        assert first == second
        assert first.reference == "GG-12345"
        assert [e.status for e in first.entries].count("current") == 1

    @pytest.mark.asyncio
    async def test_order_status_by_email(self):
        status = await StubProviders().lookup_order_status({"email": "Jo@Example.com", "postalCode": "94107"})
        assert status.reference.startswith("GG-")

    @pytest.mark.asyncio
    async def test_order_status_requires_reference(self):
        with pytest.raises(ProviderError):
            await StubProviders().lookup_order_status({"email": "jo@example.com"})

    @pytest.mark.asyncio
    async def test_tickets_and_csat_recorded(self):
        stub = StubProviders()
        ack = await stub.create_stylist_ticket({"name": "Jo"})
        await stub.submit_csat({"rating": 5})
        assert "ST-00001" in ack.message
        assert stub.csat_responses == [{"rating": 5}]

    @pytest.mark.asyncio
    async def test_save_shortlist(self):
        stub = StubProviders()
        await stub.save_shortlist("s1", [make_product("p1")])
        assert [p.id for p in stub.shortlists["s1"]] == ["p1"]

    @pytest.mark.asyncio
    async def test_subscribe_order_updates(self):
        stub = StubProviders()
        ack = await stub.subscribe_order_updates({"sessionId": "s1", "orderNumber": "GG-12345"})
        assert "GG-12345" in ack.message
        assert stub.update_subscriptions == [{"sessionId": "s1", "orderNumber": "GG-12345"}]


def mock_transport(handler):
    return httpx.MockTransport(handler)


class TestHttpProviders:
    """HTTP client against a mocked storefront."""

    @pytest.mark.asyncio
    async def test_search_posts_filters(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            seen["request_id"] = request.headers.get("x-request-id")
            return httpx.Response(200, json={"products": [{"_id": "x1", "name": "Cuff", "price": "150"}]})

        client = HttpProviders("http://shop.test/", transport=mock_transport(handler))
        products = await client.search_products(normalize_filters({"priceLt": 300}), "find_product-1")

        assert seen["url"] == "http://shop.test/api/support/products"
        assert seen["body"]["priceLt"] == 300
        assert seen["body"]["limit"] == 20
        assert seen["request_id"] == "find_product-1"
        assert products[0].id == "x1"
        assert products[0].title == "Cuff"
        assert products[0].price == 150

    @pytest.mark.asyncio
    async def test_search_accepts_bare_list(self):
        client = HttpProviders(
            "http://shop.test",
            transport=mock_transport(lambda r: httpx.Response(200, json=[{"id": "a", "title": "A"}])),
        )
        products = await client.search_products(normalize_filters({}))
        assert [p.id for p in products] == ["a"]

    @pytest.mark.asyncio
    async def test_order_status_validated(self):
        body = {
            "reference": "GG-1",
            "entries": [{"id": "placed", "label": "Placed", "status": "complete"}],
        }
        client = HttpProviders("http://shop.test", transport=mock_transport(lambda r: httpx.Response(200, json=body)))
        status = await client.lookup_order_status({"orderNumber": "GG-1"})
        assert status.reference == "GG-1"
        assert status.entries[0].status == "complete"

    @pytest.mark.asyncio
    async def test_invalid_order_status(self):
        client = HttpProviders(
            "http://shop.test", transport=mock_transport(lambda r: httpx.Response(200, json={"entries": []}))
        )
        with pytest.raises(ProviderError):
            await client.lookup_order_status({"orderNumber": "GG-1"})

    @pytest.mark.asyncio
    async def test_http_error(self):
        client = HttpProviders("http://shop.test", transport=mock_transport(lambda r: httpx.Response(503)))
        with pytest.raises(ProviderError) as exc_info:
            await client.file_return({"optionId": "resize"})
        assert exc_info.value.status_code == 503
        assert exc_info.value.operation == "file_return"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = HttpProviders("http://shop.test", transport=mock_transport(handler))
        with pytest.raises(ProviderError):
            await client.create_stylist_ticket({"name": "Jo"})

    @pytest.mark.asyncio
    async def test_ack_message(self):
        client = HttpProviders(
            "http://shop.test",
            transport=mock_transport(lambda r: httpx.Response(200, json={"message": "Filed.", "ticketId": "T1"})),
        )
        ack = await client.file_return({"optionId": "return"})
        assert ack.message == "Filed."

    @pytest.mark.asyncio
    async def test_empty_body(self):
        client = HttpProviders("http://shop.test", transport=mock_transport(lambda r: httpx.Response(204)))
        await client.submit_csat({"rating": 5})

    @pytest.mark.asyncio
    async def test_subscribe_order_updates(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"message": "Texts on."})

        client = HttpProviders("http://shop.test", transport=mock_transport(handler))
        ack = await client.subscribe_order_updates({"sessionId": "s1", "orderNumber": "GG-1"}, "order-updates-1")

        assert seen["path"] == "/api/support/order-updates"
        assert seen["body"]["orderNumber"] == "GG-1"
        assert ack.message == "Texts on."


class TestCreateProviders:
    """Data-mode selection."""

    def test_stub_mode(self):
        providers = create_providers(ConciergeConfig(data_mode="stub"))
        assert isinstance(providers, StubProviders)
        assert providers.is_stub

    def test_live_mode(self):
        providers = create_providers(ConciergeConfig(data_mode="live", api_base_url="http://shop.test"))
        assert isinstance(providers, HttpProviders)
        assert not providers.is_stub
        assert providers.base_url == "http://shop.test"
