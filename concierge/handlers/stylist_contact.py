"""
stylist_contact: hand the conversation to a human stylist.

awaiting input -> escalation form
submitted      -> ticket with contact details and the shortlist, then a CSAT prompt
"""
from typing import Any, Dict, Optional

from concierge.handlers.base import IntentResponse, action_of, concierge_module, concierge_text
from concierge.models import SessionPatch, SupportIntent, WidgetSession
from concierge.modules import csat_prompt, escalation_form
from concierge.providers.base import ConciergeProviders
from concierge.utils.logger import get_logger

logger = get_logger("handlers.stylist_contact")

INTENT = SupportIntent.STYLIST_CONTACT
SUBMIT_ACTION = "submit-escalation"

CONTACT_FIELDS = ("name", "email", "phone", "preferredContact", "notes", "topic")


def _topic_of(data: Dict[str, Any]) -> SupportIntent:
    """Intent the guest escalated from, defaulting to stylist_contact."""
    try:
        return SupportIntent(data.get("topic"))
    except ValueError:
        return INTENT


def build_ticket_payload(data: Dict[str, Any], session: WidgetSession) -> Dict[str, Any]:
    payload: Dict[str, Any] = {field: data[field] for field in CONTACT_FIELDS if data.get(field) is not None}
    payload["shortlist"] = [
        item.model_dump(by_alias=True, exclude_none=True, mode="json") for item in session.shortlist
    ]
    payload["shortlistCount"] = len(session.shortlist)
    payload["sessionId"] = session.id
    if session.last_order and session.last_order.reference:
        payload["orderNumber"] = session.last_order.reference
    return payload


async def handle_stylist_contact(
    data: Dict[str, Any],
    session: WidgetSession,
    providers: ConciergeProviders,
    request_id: Optional[str] = None,
) -> IntentResponse:
    if action_of(data) != SUBMIT_ACTION:
        return IntentResponse(
            messages=[
                concierge_text("I'd be glad to connect you with a stylist. How should they reach you?", INTENT),
                concierge_module(
                    escalation_form(_topic_of(data), shortlist_count=len(session.shortlist)),
                    INTENT,
                ),
            ],
            session_patch=SessionPatch(last_intent=INTENT),
        )

    ticket = build_ticket_payload(data, session)
    ack = await providers.create_stylist_ticket(ticket, request_id)
    logger.info(f"stylist_contact: ticket created for session {session.id} ({ticket['shortlistCount']} shortlisted)")

    return IntentResponse(
        messages=[
            concierge_text(ack.message or "You're all set. A stylist will reach out within one business day.", INTENT),
            concierge_module(csat_prompt(), INTENT),
        ],
        session_patch=SessionPatch(last_intent=INTENT, has_shown_csat=True),
    )
