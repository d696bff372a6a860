"""
Pydantic models for the concierge core.

Field names are snake_case; camelCase aliases match the payload shapes the
storefront and widget exchange (``priceLt``, ``readyToShip``, ``orderNumber``...).
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class SupportIntent(str, Enum):
    """Support topics the concierge can route to."""
    FIND_PRODUCT = "find_product"
    TRACK_ORDER = "track_order"
    RETURN_EXCHANGE = "return_exchange"
    SIZING_REPAIRS = "sizing_repairs"
    CARE_WARRANTY = "care_warranty"
    FINANCING = "financing"
    STYLIST_CONTACT = "stylist_contact"
    CSAT = "csat"


# Non-intent outcome of classification
CLARIFY = "clarify"

SortBy = Literal["featured", "newest", "price-asc", "price-desc"]
SORT_OPTIONS: Tuple[str, ...] = ("featured", "newest", "price-asc", "price-desc")

DEFAULT_LIMIT = 20
DEFAULT_OFFSET = 0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class NormalizedFilters(_CamelModel):
    """Canonical product-search criteria. Built only by ``normalize_filters``."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, frozen=True)

    category: Optional[str] = None
    metal: Optional[str] = None
    materials: Optional[Tuple[str, ...]] = None
    stone: Optional[str] = None
    ready_to_ship: Optional[bool] = None
    tags: Optional[Tuple[str, ...]] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    price_lt: Optional[float] = None  # legacy mirror of price_max
    featured: Optional[bool] = None
    sort_by: Optional[SortBy] = None
    limit: int = DEFAULT_LIMIT
    offset: int = DEFAULT_OFFSET
    q: Optional[str] = None

    @model_validator(mode="after")
    def _ceiling_mirrored(self) -> "NormalizedFilters":
        if self.price_max != self.price_lt:
            raise ValueError("price_max and price_lt must carry the same value")
        return self

    @property
    def price_ceiling(self) -> Optional[float]:
        return self.price_lt

    def has_criteria(self) -> bool:
        """True when anything besides paging is set."""
        return bool(self.to_raw_map(include_paging=False))

    def to_raw_map(self, include_paging: bool = True) -> Dict[str, Any]:
        """Dump to the camelCase payload shape, omitting unset fields."""
        raw = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        if not include_paging:
            raw.pop("limit", None)
            raw.pop("offset", None)
        return raw

    def with_ceiling(self, value: Optional[float]) -> "NormalizedFilters":
        """Copy with both ceiling fields set to ``value``."""
        return self.model_copy(update={"price_max": value, "price_lt": value})

    def without_paging(self) -> "NormalizedFilters":
        return self.model_copy(update={"limit": DEFAULT_LIMIT, "offset": DEFAULT_OFFSET})


class ProductSummary(_CamelModel):
    """Canonical product shape handed to handlers and the widget."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, frozen=True)

    id: str
    title: str = Field(default="Untitled Product", min_length=1)
    price: float = 0
    image: Optional[str] = None
    tags: Optional[Tuple[str, ...]] = None
    shipping_promise: Optional[str] = None
    slug: Optional[str] = None


class IntentDecision(BaseModel):
    """Output of the classification engine for one message."""
    intent: Union[SupportIntent, Literal["clarify"]]
    confidence: float = Field(ge=0, le=1)
    filters: Optional[NormalizedFilters] = None
    reason: str
    source: str = "none"
    # Action payload forwarded to the handler (e.g. a detected order number)
    payload: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_clarify(self) -> bool:
        return self.intent == CLARIFY


class LastOrder(_CamelModel):
    """Order reference remembered across turns."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, frozen=True)

    order_id: Optional[str] = None
    order_number: Optional[str] = None
    email: Optional[str] = None
    postal_code: Optional[str] = None

    @property
    def reference(self) -> Optional[str]:
        return self.order_number or self.order_id


class WidgetSession(_CamelModel):
    """Per-conversation state. Changed only through ``apply_session_patch``."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, frozen=True)

    id: str
    last_intent: Optional[SupportIntent] = None
    last_filters: Optional[NormalizedFilters] = None
    shortlist: Tuple[ProductSummary, ...] = ()
    has_shown_csat: bool = False
    last_order: Optional[LastOrder] = None
    last_active: datetime = Field(default_factory=utcnow)


class SessionPatch(_CamelModel):
    """Partial session update returned by handlers."""
    last_intent: Optional[SupportIntent] = None
    last_filters: Optional[NormalizedFilters] = None
    shortlist: Optional[Tuple[ProductSummary, ...]] = None
    has_shown_csat: Optional[bool] = None
    last_order: Optional[LastOrder] = None

    def updates(self) -> Dict[str, Any]:
        """Fields explicitly set on this patch (None included)."""
        return {name: getattr(self, name) for name in self.model_fields_set}

    def is_empty(self) -> bool:
        return not self.model_fields_set


class TimelineEntry(_CamelModel):
    """One milestone of an order timeline."""
    id: str
    label: str
    status: Literal["complete", "current", "upcoming"] = "upcoming"
    date: Optional[str] = None
    description: Optional[str] = None


class OrderStatus(_CamelModel):
    """Result of an order-status lookup."""
    reference: str
    entries: List[TimelineEntry] = Field(default_factory=list)


class ProviderAck(_CamelModel):
    """Acknowledgement from return filing / ticket creation."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="allow")

    message: Optional[str] = None
