"""
Session state helpers.

Sessions are immutable snapshots. Handlers return a ``SessionPatch`` and the
owner of the conversation merges it with ``apply_session_patch``, which yields
a new session. ``SessionStore`` keeps sessions in memory for the demo and for
hosts that don't bring their own storage.
"""
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Union

from concierge.models import ProductSummary, SessionPatch, SupportIntent, WidgetSession, utcnow
from concierge.modules import WidgetMessage
from concierge.utils.logger import get_logger

logger = get_logger("session")


def create_session(session_id: Optional[str] = None) -> WidgetSession:
    return WidgetSession(id=session_id or f"session-{uuid.uuid4().hex}")


def apply_session_patch(session: WidgetSession, patch: Optional[SessionPatch]) -> WidgetSession:
    """Merge the fields set on ``patch`` and bump ``last_active``."""
    updates = patch.updates() if patch else {}
    updates["last_active"] = utcnow()
    return session.model_copy(update=updates)


def create_request_id(scope: Union[SupportIntent, str]) -> str:
    """Correlation id for one turn, e.g. ``track_order-9f1c...``."""
    prefix = scope.value if isinstance(scope, SupportIntent) else scope
    return f"{prefix}-{uuid.uuid4().hex}"


# Shortlist patches

def add_to_shortlist(session: WidgetSession, product: ProductSummary) -> SessionPatch:
    """Patch adding ``product`` unless a product with the same id is already there."""
    if any(item.id == product.id for item in session.shortlist):
        return SessionPatch(shortlist=session.shortlist)
    return SessionPatch(shortlist=session.shortlist + (product,))


def remove_from_shortlist(session: WidgetSession, product_id: str) -> SessionPatch:
    return SessionPatch(shortlist=tuple(item for item in session.shortlist if item.id != product_id))


def clear_shortlist() -> SessionPatch:
    return SessionPatch(shortlist=())


def prune_modules(messages: Sequence[WidgetMessage]) -> List[WidgetMessage]:
    """Keep only the newest module message of each kind; text messages are untouched."""
    seen = set()
    kept: List[WidgetMessage] = []
    for message in reversed(messages):
        kind = message.module_type
        if kind is not None:
            if kind in seen:
                continue
            seen.add(kind)
        kept.append(message)
    kept.reverse()
    return kept


class SessionStore:
    """In-memory session storage keyed by session id."""

    def __init__(self):
        self._sessions: Dict[str, WidgetSession] = {}

    def get(self, session_id: str) -> Optional[WidgetSession]:
        return self._sessions.get(session_id)

    def get_or_create(self, session_id: Optional[str] = None) -> WidgetSession:
        if session_id and session_id in self._sessions:
            return self._sessions[session_id]
        session = create_session(session_id)
        self._sessions[session.id] = session
        logger.info(f"Created session: {session.id}")
        return session

    def save(self, session: WidgetSession) -> None:
        self._sessions[session.id] = session

    def apply_patch(self, session_id: str, patch: SessionPatch) -> WidgetSession:
        session = apply_session_patch(self.get_or_create(session_id), patch)
        self._sessions[session.id] = session
        return session

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def expire_inactive(self, ttl_minutes: int, now: Optional[datetime] = None) -> int:
        """Drop sessions idle for longer than ``ttl_minutes``. Returns how many were dropped."""
        cutoff = (now or utcnow()) - timedelta(minutes=ttl_minutes)
        expired = [sid for sid, s in self._sessions.items() if s.last_active < cutoff]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info(f"Expired {len(expired)} inactive session(s)")
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
