"""
track_order: order status lookup.

awaiting input -> order lookup form
submitted      -> lookup, timeline module, order reference remembered in the session
"""
from typing import Any, Dict, List, Optional

from concierge.handlers.base import IntentResponse, action_of, concierge_module, concierge_text, string_field
from concierge.models import LastOrder, SessionPatch, SupportIntent, TimelineEntry, WidgetSession
from concierge.modules import OrderLookupFormModule, OrderTimelineModule, module_id
from concierge.providers.base import ConciergeProviders
from concierge.utils.logger import get_logger

logger = get_logger("handlers.track_order")

INTENT = SupportIntent.TRACK_ORDER
SUBMIT_ACTION = "submit-order-lookup"


def _lookup_form(headline: str = "Let's find your order") -> OrderLookupFormModule:
    return OrderLookupFormModule(
        id=module_id("order-lookup-form"),
        headline=headline,
        description="Enter your order number, or the email and postal code used at checkout.",
    )


def _lookup_details(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Lookup request built from the submission, or None if it can't identify an order."""
    order_id = string_field(data, "orderId")
    order_number = string_field(data, "orderNumber")
    email = string_field(data, "email")
    postal_code = string_field(data, "postalCode")

    details: Dict[str, Any] = {}
    if order_id:
        details["orderId"] = order_id
    if order_number:
        details["orderNumber"] = order_number
    if email and postal_code:
        details["email"] = email
        details["postalCode"] = postal_code

    if not (order_id or order_number or "email" in details):
        return None
    return details


def mark_current(entries: List[TimelineEntry]) -> List[TimelineEntry]:
    """Ensure one milestone is current: promote the first upcoming entry if none is."""
    if any(entry.status == "current" for entry in entries):
        return entries
    promoted = []
    done = False
    for entry in entries:
        if not done and entry.status == "upcoming":
            promoted.append(entry.model_copy(update={"status": "current"}))
            done = True
        else:
            promoted.append(entry)
    return promoted


async def handle_track_order(
    data: Dict[str, Any],
    session: WidgetSession,
    providers: ConciergeProviders,
    request_id: Optional[str] = None,
) -> IntentResponse:
    if action_of(data) != SUBMIT_ACTION:
        return IntentResponse(
            messages=[
                concierge_text("I can check on that. What's your order number?", INTENT),
                concierge_module(_lookup_form(), INTENT),
            ],
            session_patch=SessionPatch(last_intent=INTENT),
        )

    details = _lookup_details(data)
    if details is None:
        return IntentResponse(
            messages=[
                concierge_text(
                    "I need either your order number or both the email and postal code from checkout.",
                    INTENT,
                ),
                concierge_module(_lookup_form("Try that lookup again"), INTENT),
            ],
            session_patch=SessionPatch(last_intent=INTENT),
        )

    status = await providers.lookup_order_status(details, request_id)
    entries = mark_current(status.entries)
    current = next((entry for entry in entries if entry.status == "current"), None)

    summary = f"Here's the latest on order {status.reference}."
    if current:
        summary += f" Current step: {current.label}."

    timeline = OrderTimelineModule(
        id=module_id("order-timeline"),
        reference=status.reference,
        entries=entries,
    )
    last_order = LastOrder(
        order_id=details.get("orderId"),
        order_number=details.get("orderNumber") or status.reference,
        email=details.get("email"),
        postal_code=details.get("postalCode"),
    )
    logger.info(f"track_order: {status.reference} at {current.id if current else 'unknown'}")

    return IntentResponse(
        messages=[concierge_text(summary, INTENT), concierge_module(timeline, INTENT)],
        session_patch=SessionPatch(last_intent=INTENT, last_order=last_order),
    )
