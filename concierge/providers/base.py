"""
Collaborator interface between the concierge core and the storefront.

Handlers only talk to data through these async calls. Every call takes an
optional ``request_id`` correlation token that implementations forward to the
backing service.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from concierge.models import NormalizedFilters, OrderStatus, ProductSummary, ProviderAck


class ProviderError(Exception):
    """A collaborator call failed (network, HTTP status, bad payload)."""

    def __init__(self, operation: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.status_code = status_code


class ConciergeProviders(ABC):
    """Data providers used by the intent handlers."""

    # "stub" when serving demo inventory, "live" when backed by the storefront
    data_mode: str = "live"

    @property
    def is_stub(self) -> bool:
        return self.data_mode == "stub"

    @abstractmethod
    async def search_products(
        self, filters: NormalizedFilters, request_id: Optional[str] = None
    ) -> List[ProductSummary]:
        """Products matching ``filters``."""

    @abstractmethod
    async def lookup_order_status(
        self, details: Dict[str, Any], request_id: Optional[str] = None
    ) -> OrderStatus:
        """Order timeline for ``{orderId?, email?, postalCode?}``."""

    @abstractmethod
    async def file_return(
        self, selection: Dict[str, Any], request_id: Optional[str] = None
    ) -> ProviderAck:
        """File a return / resize / care refresh request."""

    @abstractmethod
    async def create_stylist_ticket(
        self, payload: Dict[str, Any], request_id: Optional[str] = None
    ) -> ProviderAck:
        """Open a stylist follow-up ticket."""

    @abstractmethod
    async def submit_csat(
        self, response: Dict[str, Any], request_id: Optional[str] = None
    ) -> None:
        """Record a satisfaction rating. Callers treat this as best-effort."""

    async def save_shortlist(
        self, session_id: str, items: Sequence[ProductSummary], request_id: Optional[str] = None
    ) -> None:
        """Persist a session's shortlist. Providers without storage keep it in the session only."""
        return None

    @abstractmethod
    async def subscribe_order_updates(
        self, details: Dict[str, Any], request_id: Optional[str] = None
    ) -> ProviderAck:
        """Sign the guest up for text milestones on ``{sessionId, originIntent, orderId?, orderNumber?}``."""
