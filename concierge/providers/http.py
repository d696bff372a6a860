"""
HTTP providers: concierge -> storefront support API.

Each collaborator call is a JSON POST to the storefront. ``api_base_url``
points at the storefront (default http://localhost:3000). The request id, when
known, travels in the ``x-request-id`` header.
"""
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from concierge.intent.normalizer import normalize_product_response
from concierge.models import NormalizedFilters, OrderStatus, ProductSummary, ProviderAck
from concierge.providers.base import ConciergeProviders, ProviderError
from concierge.utils.logger import get_logger

logger = get_logger("providers.http")

PATHS = {
    "search_products": "/api/support/products",
    "lookup_order_status": "/api/support/order-status",
    "file_return": "/api/support/returns",
    "create_stylist_ticket": "/api/support/stylist",
    "submit_csat": "/api/support/csat",
    "save_shortlist": "/api/support/shortlist",
    "subscribe_order_updates": "/api/support/order-updates",
}


class HttpProviders(ConciergeProviders):
    """Providers backed by the storefront's support endpoints."""

    data_mode = "live"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # Injected in tests (httpx.MockTransport)
        self._transport = transport

    async def _post(self, operation: str, body: Dict[str, Any], request_id: Optional[str]) -> Any:
        """POST ``body`` to the operation's endpoint and return the decoded JSON."""
        url = f"{self.base_url}{PATHS[operation]}"
        headers = {"x-request-id": request_id} if request_id else {}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, json=body, headers=headers)
                resp.raise_for_status()
                return resp.json() if resp.content else {}
        except httpx.HTTPStatusError as e:
            logger.warning(f"{operation}: HTTP {e.response.status_code} body={e.response.text[:300]}")
            raise ProviderError(operation, f"HTTP {e.response.status_code}", e.response.status_code) from e
        except httpx.RequestError as e:
            logger.error(f"{operation}: request failed: {e}")
            raise ProviderError(operation, f"request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(operation, "response was not JSON") from e

    async def search_products(
        self, filters: NormalizedFilters, request_id: Optional[str] = None
    ) -> List[ProductSummary]:
        data = await self._post("search_products", filters.to_raw_map(), request_id)
        items = data.get("products", []) if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise ProviderError("search_products", "expected a product list")
        return [normalize_product_response(item) for item in items]

    async def lookup_order_status(
        self, details: Dict[str, Any], request_id: Optional[str] = None
    ) -> OrderStatus:
        data = await self._post("lookup_order_status", details, request_id)
        try:
            return OrderStatus.model_validate(data)
        except ValidationError as e:
            raise ProviderError("lookup_order_status", f"invalid response: {e.error_count()} errors") from e

    async def file_return(
        self, selection: Dict[str, Any], request_id: Optional[str] = None
    ) -> ProviderAck:
        data = await self._post("file_return", selection, request_id)
        return ProviderAck.model_validate(data if isinstance(data, dict) else {})

    async def create_stylist_ticket(
        self, payload: Dict[str, Any], request_id: Optional[str] = None
    ) -> ProviderAck:
        data = await self._post("create_stylist_ticket", payload, request_id)
        return ProviderAck.model_validate(data if isinstance(data, dict) else {})

    async def submit_csat(self, response: Dict[str, Any], request_id: Optional[str] = None) -> None:
        await self._post("submit_csat", response, request_id)

    async def save_shortlist(
        self, session_id: str, items: Sequence[ProductSummary], request_id: Optional[str] = None
    ) -> None:
        body = {
            "sessionId": session_id,
            "items": [item.model_dump(by_alias=True, exclude_none=True, mode="json") for item in items],
        }
        await self._post("save_shortlist", body, request_id)

    async def subscribe_order_updates(
        self, details: Dict[str, Any], request_id: Optional[str] = None
    ) -> ProviderAck:
        data = await self._post("subscribe_order_updates", details, request_id)
        return ProviderAck.model_validate(data if isinstance(data, dict) else {})
