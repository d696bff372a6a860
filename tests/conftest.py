"""Pytest configuration for concierge tests."""

import os
import sys
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from concierge.core.config import ConciergeConfig
from concierge.models import (
    LastOrder,
    NormalizedFilters,
    OrderStatus,
    ProductSummary,
    ProviderAck,
    TimelineEntry,
    WidgetSession,
)
from concierge.providers.base import ConciergeProviders, ProviderError
from concierge.session import create_session


# ---------------------------------------------------------------------------
# Fake collaborators. Every call is recorded so tests can assert on what the
# handlers sent downstream.
# ---------------------------------------------------------------------------

class FakeProviders(ConciergeProviders):
    """Scriptable providers for handler / orchestrator / widget tests."""

    data_mode = "live"

    def __init__(
        self,
        search: Optional[Callable[[NormalizedFilters], List[ProductSummary]]] = None,
        order_status: Optional[OrderStatus] = None,
    ):
        self._search = search or (lambda filters: [])
        self.order_status = order_status or OrderStatus(
            reference="GG-10001",
            entries=[
                TimelineEntry(id="placed", label="Order placed", status="complete"),
                TimelineEntry(id="crafting", label="Crafting in the studio", status="current"),
                TimelineEntry(id="shipped", label="Shipped", status="upcoming"),
            ],
        )
        self.calls: Dict[str, List[Any]] = {}
        self.request_ids: List[Optional[str]] = []
        self.fail_on: Dict[str, Exception] = {}

    def _record(self, name: str, value: Any, request_id: Optional[str]) -> None:
        self.calls.setdefault(name, []).append(value)
        self.request_ids.append(request_id)
        if name in self.fail_on:
            raise self.fail_on[name]

    async def search_products(self, filters, request_id=None):
        self._record("search_products", filters, request_id)
        return self._search(filters)

    async def lookup_order_status(self, details, request_id=None):
        self._record("lookup_order_status", details, request_id)
        return self.order_status

    async def file_return(self, selection, request_id=None):
        self._record("file_return", selection, request_id)
        return ProviderAck(message=f"Filed {selection.get('optionId')}.")

    async def create_stylist_ticket(self, payload, request_id=None):
        self._record("create_stylist_ticket", payload, request_id)
        return ProviderAck(message="Ticket ST-1 is open.")

    async def submit_csat(self, response, request_id=None):
        self._record("submit_csat", response, request_id)

    async def save_shortlist(self, session_id: str, items: Sequence[ProductSummary], request_id=None):
        self._record("save_shortlist", (session_id, list(items)), request_id)

    async def subscribe_order_updates(self, details, request_id=None):
        self._record("subscribe_order_updates", details, request_id)
        return ProviderAck(message="Texts are on.")


def make_product(product_id: str, title: str = "Test Piece", price: float = 250) -> ProductSummary:
    return ProductSummary(id=product_id, title=title, price=price)


@pytest.fixture
def providers() -> FakeProviders:
    """Providers whose search always comes back empty."""
    return FakeProviders()


@pytest.fixture
def session() -> WidgetSession:
    return create_session("session-test")


@pytest.fixture
def session_with_order() -> WidgetSession:
    return create_session("session-order").model_copy(
        update={"last_order": LastOrder(order_number="GG-10001")}
    )


@pytest.fixture
def config() -> ConciergeConfig:
    return ConciergeConfig()


@pytest.fixture
def failing_providers() -> FakeProviders:
    """Providers whose every primary call raises ProviderError."""
    fake = FakeProviders()
    for name in ("search_products", "lookup_order_status", "file_return", "create_stylist_ticket"):
        fake.fail_on[name] = ProviderError(name, "HTTP 503", 503)
    return fake
