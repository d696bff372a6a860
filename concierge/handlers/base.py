"""
Shared handler types.

A handler is one step of a small per-intent state machine:

    async def handler(data, session, providers, request_id=None) -> IntentResponse

``data`` is the action payload from the widget. Whether the handler is
awaiting input or processing a submission is decided by the ``action`` field
in ``data``; the handler keeps no state of its own and reports changes through
``IntentResponse.session_patch``.
"""
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from concierge.models import SessionPatch, SupportIntent, WidgetSession
from concierge.modules import ModulePayload, WidgetMessage, create_message
from concierge.providers.base import ConciergeProviders


class IntentResponse(BaseModel):
    """What a handler (and the orchestrator) hands back to the widget."""
    messages: List[WidgetMessage] = Field(default_factory=list)
    session_patch: SessionPatch = Field(default_factory=SessionPatch)
    offer_triggered: Optional[bool] = None
    error: Optional[str] = None


IntentHandler = Callable[
    [Dict[str, Any], WidgetSession, ConciergeProviders, Optional[str]],
    Awaitable[IntentResponse],
]


def concierge_text(text: str, intent: Optional[SupportIntent] = None) -> WidgetMessage:
    return create_message("concierge", text, intent)


def concierge_module(module: ModulePayload, intent: Optional[SupportIntent] = None) -> WidgetMessage:
    return create_message("concierge", module, intent)


def action_of(data: Mapping[str, Any]) -> Optional[str]:
    """The submitted action, if any."""
    action = data.get("action")
    return action if isinstance(action, str) and action else None


def string_field(data: Mapping[str, Any], *keys: str) -> Optional[str]:
    """First non-empty trimmed string among ``keys``."""
    for key in keys:
        value = data.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
