"""
return_exchange: resize, return, or care refresh.

awaiting input -> three-option menu
submitted      -> file the request (order reference filled from the session),
                  then always offer the escalation form
"""
from typing import Any, Dict, Optional

from concierge.handlers.base import IntentResponse, action_of, concierge_module, concierge_text, string_field
from concierge.models import SessionPatch, SupportIntent, WidgetSession
from concierge.modules import ReturnOption, ReturnOptionsModule, escalation_form, module_id
from concierge.providers.base import ConciergeProviders
from concierge.utils.logger import get_logger

logger = get_logger("handlers.return_exchange")

INTENT = SupportIntent.RETURN_EXCHANGE
SUBMIT_ACTION = "submit-return-option"

RETURN_OPTIONS = [
    ReturnOption(id="resize", label="Resize", description="Free resizing within 60 days of delivery."),
    ReturnOption(id="return", label="Return", description="Full refund within 30 days, prepaid label included."),
    ReturnOption(id="care-refresh", label="Care refresh", description="Complimentary cleaning, polish and inspection."),
]
RETURN_OPTION_IDS = {option.id for option in RETURN_OPTIONS}


def _options_menu() -> ReturnOptionsModule:
    return ReturnOptionsModule(
        id=module_id("return-options"),
        headline="How can we help with your piece?",
        options=RETURN_OPTIONS,
    )


def build_return_selection(data: Dict[str, Any], session: WidgetSession) -> Dict[str, Any]:
    """Selection payload for ``file_return``, falling back to the session's last order."""
    selection = {k: v for k, v in data.items() if k != "action"}
    has_reference = string_field(data, "orderId", "orderNumber")
    if not has_reference and session.last_order:
        if session.last_order.order_id:
            selection["orderId"] = session.last_order.order_id
        if session.last_order.order_number:
            selection["orderNumber"] = session.last_order.order_number
    return selection


async def handle_return_exchange(
    data: Dict[str, Any],
    session: WidgetSession,
    providers: ConciergeProviders,
    request_id: Optional[str] = None,
) -> IntentResponse:
    option_id = data.get("optionId")
    if action_of(data) != SUBMIT_ACTION or option_id not in RETURN_OPTION_IDS:
        return IntentResponse(
            messages=[
                concierge_text("No problem. Which of these fits what you need?", INTENT),
                concierge_module(_options_menu(), INTENT),
            ],
            session_patch=SessionPatch(last_intent=INTENT),
        )

    selection = build_return_selection(data, session)
    ack = await providers.file_return(selection, request_id)
    logger.info(f"return_exchange: filed {option_id} for {selection.get('orderNumber') or selection.get('orderId')}")

    return IntentResponse(
        messages=[
            concierge_text(ack.message or "Your request is in. We'll email next steps shortly.", INTENT),
            concierge_module(
                escalation_form(
                    INTENT,
                    headline="Want a stylist to follow up?",
                    shortlist_count=len(session.shortlist),
                ),
                INTENT,
            ),
        ],
        session_patch=SessionPatch(last_intent=INTENT),
        offer_triggered=True,
    )
