"""
Dialogue orchestrator.

``execute_intent`` is the single entry point the widget uses to run a turn:
it dispatches to the handler registered for the intent and always returns an
``IntentResponse``. Handler and provider failures are logged and turned into
an apology message; nothing propagates to the caller.
"""
from typing import Any, Dict, Mapping, Optional, Union

from concierge.handlers import (
    IntentHandler,
    IntentResponse,
    handle_care_warranty,
    handle_csat,
    handle_financing,
    handle_find_product,
    handle_return_exchange,
    handle_sizing_repairs,
    handle_stylist_contact,
    handle_track_order,
)
from concierge.handlers.base import concierge_text
from concierge.models import SessionPatch, SupportIntent, WidgetSession
from concierge.providers.base import ConciergeProviders
from concierge.utils.logger import get_logger

logger = get_logger("scripts")

INTENT_HANDLERS: Dict[SupportIntent, IntentHandler] = {
    SupportIntent.FIND_PRODUCT: handle_find_product,
    SupportIntent.TRACK_ORDER: handle_track_order,
    SupportIntent.RETURN_EXCHANGE: handle_return_exchange,
    SupportIntent.SIZING_REPAIRS: handle_sizing_repairs,
    SupportIntent.CARE_WARRANTY: handle_care_warranty,
    SupportIntent.FINANCING: handle_financing,
    SupportIntent.STYLIST_CONTACT: handle_stylist_contact,
    SupportIntent.CSAT: handle_csat,
}

UNSUPPORTED_COPY = (
    "I can't help with that flow yet, but a stylist can. "
    "Type /stylist and I'll connect you."
)
FAILURE_COPY = (
    "I'm sorry, something went wrong on our side. Please try again, "
    "or type /stylist and a stylist will take it from here."
)
REQUEST_FAILED = "request_failed"


def _as_intent(intent: Union[SupportIntent, str]) -> Optional[SupportIntent]:
    try:
        return SupportIntent(intent)
    except (TypeError, ValueError):
        return None


async def execute_intent(
    intent: Union[SupportIntent, str],
    payload: Optional[Mapping[str, Any]],
    session: WidgetSession,
    providers: ConciergeProviders,
    request_id: Optional[str] = None,
) -> IntentResponse:
    """
    Run one turn for ``intent``.

    Args:
        intent: Intent to run (enum or its string value)
        payload: Action payload from the widget; ``action`` selects the handler step
        session: Read-only session snapshot
        providers: Data collaborators
        request_id: Correlation id; falls back to ``payload["requestId"]``

    Returns:
        IntentResponse. Never raises.
    """
    # Malformed payloads are treated as empty rather than raising here
    data = dict(payload) if isinstance(payload, Mapping) else {}
    request_id = request_id or data.get("requestId")

    resolved = _as_intent(intent)
    handler = INTENT_HANDLERS.get(resolved) if resolved else None
    if handler is None:
        logger.warning(f"No handler registered for intent {intent!r}")
        return IntentResponse(messages=[concierge_text(UNSUPPORTED_COPY, resolved)])

    try:
        return await handler(data, session, providers, request_id)
    except Exception as e:
        logger.error(f"[{request_id or '-'}] {resolved.value} handler failed: {e}", exc_info=True)
        return IntentResponse(
            messages=[concierge_text(FAILURE_COPY, resolved)],
            session_patch=SessionPatch(last_intent=resolved),
            error=REQUEST_FAILED,
        )
