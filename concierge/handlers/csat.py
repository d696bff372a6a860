"""
csat: satisfaction survey.

awaiting input -> inline CSAT prompt
submitted      -> rating mapped to 1-5 and posted best-effort
"""
from typing import Any, Dict, Optional

from concierge.handlers.base import IntentResponse, action_of, concierge_module, concierge_text
from concierge.models import SessionPatch, SupportIntent, WidgetSession
from concierge.modules import csat_prompt
from concierge.providers.base import ConciergeProviders
from concierge.utils.logger import get_logger

logger = get_logger("handlers.csat")

INTENT = SupportIntent.CSAT
SUBMIT_ACTION = "submit-csat"

RATING_SCALE = {
    "great": 5,
    "good": 4,
    "okay": 3,
    "needs_follow_up": 2,
    "poor": 1,
}

FOLLOW_UP_THRESHOLD = 2


def map_rating(rating: Any) -> Optional[int]:
    """Categorical rating -> 1..5. Numeric ratings in range pass through."""
    if isinstance(rating, bool):
        return None
    if isinstance(rating, (int, float)):
        return int(rating) if 1 <= rating <= 5 and rating == int(rating) else None
    if isinstance(rating, str):
        return RATING_SCALE.get(rating.strip().lower())
    return None


async def handle_csat(
    data: Dict[str, Any],
    session: WidgetSession,
    providers: ConciergeProviders,
    request_id: Optional[str] = None,
) -> IntentResponse:
    if action_of(data) != SUBMIT_ACTION:
        return IntentResponse(
            messages=[concierge_module(csat_prompt(), INTENT)],
            session_patch=SessionPatch(has_shown_csat=True),
        )

    rating = map_rating(data.get("rating"))
    if rating is None:
        logger.warning(f"csat: unmappable rating {data.get('rating')!r}, not submitted")
    else:
        order_number = session.last_order.reference if session.last_order else None
        response = {
            "rating": rating,
            "sessionId": session.id,
            "intent": (data.get("intent") or (session.last_intent.value if session.last_intent else None)),
            "orderNumber": order_number,
        }
        try:
            await providers.submit_csat(response, request_id)
        except Exception as e:
            # Feedback is best-effort; the guest still gets a thank-you
            logger.warning(f"csat: submission failed: {e}")

    messages = [concierge_text("Thank you for the feedback!", INTENT)]
    if rating is not None and rating <= FOLLOW_UP_THRESHOLD:
        messages.append(
            concierge_text("I'm sorry we missed the mark. A member of our care team will follow up with you.", INTENT)
        )

    return IntentResponse(
        messages=messages,
        session_patch=SessionPatch(has_shown_csat=True),
    )
