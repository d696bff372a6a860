"""
In-memory demo providers.

Used when ``data_mode`` is "stub" (local development, demos, tests). The catalog
intentionally mixes the product shapes older storefront endpoints return
(``name`` vs ``title``, ``imageUrl`` vs ``image``, string prices) so everything
goes through ``normalize_product_response`` the same way live data does.
"""
import zlib
from typing import Any, Dict, List, Optional, Sequence

from concierge.intent.normalizer import coerce_number, normalize_product_response, slugify
from concierge.models import NormalizedFilters, OrderStatus, ProductSummary, ProviderAck, TimelineEntry
from concierge.providers.base import ConciergeProviders, ProviderError
from concierge.utils.logger import get_logger

logger = get_logger("providers.stub")

DEMO_CATALOG: List[Dict[str, Any]] = [
    {"id": "rg-001", "title": "Solstice Solitaire Ring", "price": 1450, "category": "ring", "metal": "platinum",
     "stone": "lab diamond", "readyToShip": True, "featured": True, "tags": ["engagement"],
     "image": "/images/products/solstice.jpg", "slug": "solstice-solitaire-ring",
     "shippingPromise": "Ships in 2 days", "createdAt": "2025-09-02"},
    {"id": "rg-002", "name": "Aurora Halo Ring", "price": "980", "category": "ring", "metal": "white-gold",
     "stone": "moissanite", "readyToShip": False, "tags": ["engagement"],
     "imageUrl": "/images/products/aurora-halo.jpg", "slug": "aurora-halo-ring", "createdAt": "2025-10-11"},
    {"id": "rg-003", "title": "Everyday Stacking Band", "price": 240, "category": "ring", "metal": "gold",
     "materials": ["recycled gold"], "readyToShip": True, "tags": ["gift", "stacking"],
     "image": "/images/products/stacking-band.jpg", "slug": "everyday-stacking-band",
     "shippingPromise": "Ships tomorrow", "createdAt": "2025-06-20"},
    {"id": "rg-004", "title": "Coral Signet Ring", "price": 310, "category": "ring", "metal": "silver",
     "readyToShip": True, "tags": ["gift"], "image": "/images/products/coral-signet.jpg",
     "slug": "coral-signet-ring", "createdAt": "2025-03-14"},
    {"id": "nk-001", "title": "Constellation Pendant", "price": 285, "category": "necklace", "metal": "gold",
     "stone": "sapphire", "readyToShip": True, "featured": True, "tags": ["gift"],
     "image": "/images/products/constellation.jpg", "slug": "constellation-pendant",
     "shippingPromise": "Ships in 2 days", "createdAt": "2025-08-01"},
    {"id": "nk-002", "name": "Tidal Chain Necklace", "price": "460", "category": "necklace", "metal": "rose-gold",
     "readyToShip": False, "tags": ["layering"], "imageUrl": "/images/products/tidal-chain.jpg",
     "slug": "tidal-chain-necklace", "createdAt": "2025-10-01"},
    {"id": "er-001", "title": "Lumen Stud Earrings", "price": 190, "category": "earrings", "metal": "gold",
     "stone": "lab diamond", "readyToShip": True, "tags": ["gift", "everyday"],
     "image": "/images/products/lumen-studs.jpg", "slug": "lumen-stud-earrings",
     "shippingPromise": "Ships tomorrow", "createdAt": "2025-05-05"},
    {"id": "er-002", "title": "Crescent Hoops", "price": 720, "category": "earrings", "metal": "platinum",
     "readyToShip": False, "image": "/images/products/crescent-hoops.jpg", "slug": "crescent-hoops",
     "createdAt": "2025-09-18"},
    {"id": "br-001", "title": "Halcyon Tennis Bracelet", "price": 1150, "category": "bracelet", "metal": "white-gold",
     "stone": "lab diamond", "readyToShip": True, "featured": True, "tags": ["gift"],
     "image": "/images/products/halcyon.jpg", "slug": "halcyon-tennis-bracelet",
     "shippingPromise": "Ships in 3 days", "createdAt": "2025-07-22"},
    {"id": "br-002", "name": "Driftwood Cuff", "price": "150", "category": "bracelet", "metal": "silver",
     "materials": ["recycled silver"], "readyToShip": True, "tags": ["everyday"],
     "imageUrl": "/images/products/driftwood.jpg", "slug": "driftwood-cuff", "createdAt": "2025-02-10"},
]

ORDER_MILESTONES = [
    ("placed", "Order placed"),
    ("design", "Design approved"),
    ("crafting", "Crafting in the studio"),
    ("quality", "Quality check"),
    ("shipped", "Shipped"),
]

RETURN_MESSAGES = {
    "resize": "Your resize request is in. We'll email a prepaid label within the hour.",
    "return": "Your return is filed. Refunds post 3-5 business days after the piece reaches the studio.",
    "care-refresh": "Your care refresh is booked. We'll polish and inspect the piece, free of charge.",
}


def _product_tags(product: Dict[str, Any]) -> List[str]:
    tags = [t.lower() for t in product.get("tags", [])]
    if product.get("stone"):
        tags.append(slugify(product["stone"]))
    return tags


def _matches(product: Dict[str, Any], filters: NormalizedFilters) -> bool:
    price = coerce_number(product.get("price")) or 0
    if filters.category and product.get("category") != filters.category:
        return False
    if filters.metal and product.get("metal") != filters.metal:
        return False
    if filters.stone and (product.get("stone") or "").lower() != filters.stone:
        return False
    if filters.materials and not set(filters.materials) & set(product.get("materials", [])):
        return False
    if filters.ready_to_ship is not None and bool(product.get("readyToShip")) != filters.ready_to_ship:
        return False
    if filters.featured is not None and bool(product.get("featured")) != filters.featured:
        return False
    if filters.tags and not set(filters.tags) <= set(_product_tags(product)):
        return False
    if filters.price_min is not None and price < filters.price_min:
        return False
    if filters.price_lt is not None and price > filters.price_lt:
        return False
    if filters.q:
        title = (product.get("title") or product.get("name") or "").lower()
        if filters.q.lower() not in title:
            return False
    return True


def _sort(products: List[Dict[str, Any]], sort_by: Optional[str]) -> List[Dict[str, Any]]:
    if sort_by == "newest":
        return sorted(products, key=lambda p: p.get("createdAt", ""), reverse=True)
    if sort_by in ("price-asc", "price-desc"):
        return sorted(products, key=lambda p: coerce_number(p.get("price")) or 0,
                      reverse=sort_by == "price-desc")
    if sort_by == "featured":
        return sorted(products, key=lambda p: not p.get("featured"))
    return products


def _checksum(value: str) -> int:
    return zlib.crc32(value.encode("utf-8"))


class StubProviders(ConciergeProviders):
    """Demo-data providers with deterministic answers."""

    data_mode = "stub"

    def __init__(self, catalog: Optional[List[Dict[str, Any]]] = None):
        self.catalog = catalog if catalog is not None else DEMO_CATALOG
        self.shortlists: Dict[str, List[ProductSummary]] = {}
        self.csat_responses: List[Dict[str, Any]] = []
        self.tickets: List[Dict[str, Any]] = []
        self.update_subscriptions: List[Dict[str, Any]] = []

    async def search_products(
        self, filters: NormalizedFilters, request_id: Optional[str] = None
    ) -> List[ProductSummary]:
        matched = _sort([p for p in self.catalog if _matches(p, filters)], filters.sort_by)
        page = matched[filters.offset:filters.offset + filters.limit]
        return [normalize_product_response(p) for p in page]

    async def lookup_order_status(
        self, details: Dict[str, Any], request_id: Optional[str] = None
    ) -> OrderStatus:
        reference = details.get("orderNumber") or details.get("orderId")
        if not reference:
            email = details.get("email")
            if not (email and details.get("postalCode")):
                raise ProviderError("lookup_order_status", "order number or email + postal code required")
            reference = f"GG-{_checksum(email.lower()) % 1_000_000:06d}"

        current = _checksum(str(reference)) % len(ORDER_MILESTONES)
        entries = []
        for index, (entry_id, label) in enumerate(ORDER_MILESTONES):
            if index < current:
                status = "complete"
            elif index == current:
                status = "current"
            else:
                status = "upcoming"
            entries.append(TimelineEntry(id=entry_id, label=label, status=status))
        return OrderStatus(reference=str(reference), entries=entries)

    async def file_return(
        self, selection: Dict[str, Any], request_id: Optional[str] = None
    ) -> ProviderAck:
        return ProviderAck(message=RETURN_MESSAGES.get(selection.get("optionId")))

    async def create_stylist_ticket(
        self, payload: Dict[str, Any], request_id: Optional[str] = None
    ) -> ProviderAck:
        self.tickets.append(payload)
        ticket_id = f"ST-{len(self.tickets):05d}"
        return ProviderAck(message=f"Ticket {ticket_id} is open. A stylist will reach out within one business day.")

    async def submit_csat(self, response: Dict[str, Any], request_id: Optional[str] = None) -> None:
        self.csat_responses.append(response)
        logger.info(f"CSAT recorded: rating={response.get('rating')} intent={response.get('intent')}")

    async def save_shortlist(
        self, session_id: str, items: Sequence[ProductSummary], request_id: Optional[str] = None
    ) -> None:
        self.shortlists[session_id] = list(items)

    async def subscribe_order_updates(
        self, details: Dict[str, Any], request_id: Optional[str] = None
    ) -> ProviderAck:
        self.update_subscriptions.append(details)
        reference = details.get("orderNumber") or details.get("orderId")
        if reference:
            return ProviderAck(message=f"You're set. I'll text studio milestones for order {reference}.")
        return ProviderAck()
