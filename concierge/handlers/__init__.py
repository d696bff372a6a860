"""
Intent handlers, one per support intent.
"""
from concierge.handlers.base import IntentHandler, IntentResponse
from concierge.handlers.csat import handle_csat
from concierge.handlers.find_product import handle_find_product
from concierge.handlers.informational import handle_care_warranty, handle_financing, handle_sizing_repairs
from concierge.handlers.return_exchange import handle_return_exchange
from concierge.handlers.stylist_contact import handle_stylist_contact
from concierge.handlers.track_order import handle_track_order

__all__ = [
    "IntentHandler",
    "IntentResponse",
    "handle_find_product",
    "handle_track_order",
    "handle_return_exchange",
    "handle_sizing_repairs",
    "handle_care_warranty",
    "handle_financing",
    "handle_stylist_contact",
    "handle_csat",
]
