"""
Single-turn informational handlers: sizing & repairs, care & warranty, financing.

Each answers with one explanatory message and an escalation form.
"""
from typing import Any, Dict, Optional

from concierge.handlers.base import IntentResponse, concierge_module, concierge_text
from concierge.models import SessionPatch, SupportIntent, WidgetSession
from concierge.modules import escalation_form
from concierge.providers.base import ConciergeProviders

SIZING_COPY = (
    "Every ring includes one free resize within 60 days, and our studio handles repairs, "
    "prong checks and stone tightening. Not sure of a size? We can mail you a free ring sizer."
)
CARE_COPY = (
    "Your piece is covered by a lifetime warranty against manufacturing defects. "
    "Clean it with warm water and mild soap, store it separately, and book a complimentary "
    "care refresh once a year."
)
FINANCING_COPY = (
    "We offer 0% APR financing on orders over $500 for up to 12 months, subject to approval. "
    "You can choose financing at checkout; prequalifying won't affect your credit score."
)


def _informational(intent: SupportIntent, copy: str, headline: str, session: WidgetSession) -> IntentResponse:
    return IntentResponse(
        messages=[
            concierge_text(copy, intent),
            concierge_module(
                escalation_form(intent, headline=headline, shortlist_count=len(session.shortlist)),
                intent,
            ),
        ],
        session_patch=SessionPatch(last_intent=intent),
    )


async def handle_sizing_repairs(
    data: Dict[str, Any],
    session: WidgetSession,
    providers: ConciergeProviders,
    request_id: Optional[str] = None,
) -> IntentResponse:
    return _informational(SupportIntent.SIZING_REPAIRS, SIZING_COPY, "Need help with a fit or repair?", session)


async def handle_care_warranty(
    data: Dict[str, Any],
    session: WidgetSession,
    providers: ConciergeProviders,
    request_id: Optional[str] = None,
) -> IntentResponse:
    return _informational(SupportIntent.CARE_WARRANTY, CARE_COPY, "Questions about your warranty?", session)


async def handle_financing(
    data: Dict[str, Any],
    session: WidgetSession,
    providers: ConciergeProviders,
    request_id: Optional[str] = None,
) -> IntentResponse:
    return _informational(SupportIntent.FINANCING, FINANCING_COPY, "Talk through payment options", session)
