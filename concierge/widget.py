"""
Concierge widget controller.

Owns one conversation: the message log, the session, and the miss counter
used for disambiguation. Free text goes through the intent engine; module
actions (form submissions, quick-start chips, shortlist buttons) are routed
straight to the matching intent.
"""
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from concierge.core.config import ConciergeConfig, get_config
from concierge.handlers.base import IntentResponse, concierge_module, concierge_text
from concierge.intent.engine import IntentContext, decide_intent
from concierge.intent.normalizer import normalize_product_response
from concierge.models import IntentDecision, ProductSummary, SessionPatch, SupportIntent, WidgetSession
from concierge.modules import IntentChooserModule, ShortlistPanelModule, WidgetMessage, create_message, module_id
from concierge.providers.base import ConciergeProviders
from concierge.scripts import execute_intent
from concierge.session import (
    add_to_shortlist,
    apply_session_patch,
    clear_shortlist,
    create_request_id,
    create_session,
    prune_modules,
    remove_from_shortlist,
)
from concierge.utils.logger import get_logger
from concierge.utils.structured_logger import track_event

logger = get_logger("widget")

CHOOSER_COPY = "Got it. Pick what you need and I'll route you quickly."
CHOOSER_HUMAN_COPY = "I want to be sure I'm helping with the right thing. Choose one below, or I can bring in a stylist."

CONFIRMATION_COPY = {
    SupportIntent.FIND_PRODUCT: "On it. I'll open product recommendations.",
    SupportIntent.TRACK_ORDER: "On it. Opening order lookup.",
    SupportIntent.RETURN_EXCHANGE: "On it. Starting returns & resizing.",
    SupportIntent.SIZING_REPAIRS: "On it. Starting sizing help.",
    SupportIntent.CARE_WARRANTY: "On it. Sharing care & warranty info.",
    SupportIntent.FINANCING: "On it. Pulling financing options.",
    SupportIntent.STYLIST_CONTACT: "On it. Bringing in a stylist.",
    SupportIntent.CSAT: "Happy to take feedback.",
}
READY_TO_SHIP_COPY = "On it. Pulling ready-to-ship picks to get you started."
TRACK_FIRST_COPY = "I need an order number first. Tap \"Track order\" so I can file the return with the studio."
SHORTLIST_ERROR_COPY = "I couldn't save your shortlist just now. Mind trying again in a moment?"
TEXT_UPDATES_COPY = "Perfect. I'll text studio milestones to you in real time."
TEXT_UPDATES_ERROR_COPY = "I wasn't able to subscribe you just now. We can still email updates if that helps."
SHORTLIST_EMPTY_COPY = "No items saved yet."

# Module actions that are plain handler submissions
SUBMIT_ACTIONS = {
    "submit-product-filters": SupportIntent.FIND_PRODUCT,
    "submit-order-lookup": SupportIntent.TRACK_ORDER,
    "submit-escalation": SupportIntent.STYLIST_CONTACT,
    "submit-csat": SupportIntent.CSAT,
}


class ConciergeWidget:
    """
    One concierge conversation.

    Turns are processed one at a time: each message or module action is
    awaited to completion before the next is accepted.
    """

    def __init__(
        self,
        providers: ConciergeProviders,
        session: Optional[WidgetSession] = None,
        config: Optional[ConciergeConfig] = None,
    ):
        self.providers = providers
        self.session = session or create_session()
        self.config = config or get_config()
        self.messages: List[WidgetMessage] = []
        self.miss_count = 0

    # --- Message log / session ---

    def append_messages(self, messages: List[WidgetMessage]) -> None:
        self.messages.extend(messages)

    def update_session(self, patch: Optional[SessionPatch]) -> None:
        self.session = apply_session_patch(self.session, patch)

    def purge_modules(self) -> None:
        before = len(self.messages)
        self.messages = prune_modules(self.messages)
        if len(self.messages) != before:
            track_event(
                "intent_modules_pruned",
                sessionId=self.session.id,
                before=before,
                after=len(self.messages),
            )

    def _order_number(self) -> Optional[str]:
        return self.session.last_order.reference if self.session.last_order else None

    # --- Free text ---

    async def send_message(self, text: str) -> Optional[IntentResponse]:
        """
        Handle a guest message.

        Returns the handler response when an intent ran, None when the message
        was ignored or answered with the intent chooser.
        """
        trimmed = (text or "").strip()
        if not trimmed:
            return None

        self.append_messages([create_message("guest", trimmed)])
        decision = decide_intent(trimmed, IntentContext.from_session(self.session))

        if decision.is_clarify:
            self._track_miss("no_match", trimmed, decision)
            self.show_disambiguation("no_match", decision, trimmed)
            return None

        if decision.confidence < self.config.low_confidence_threshold:
            self._track_miss("low_confidence", trimmed, decision)
            self.show_disambiguation(
                "low_confidence",
                decision,
                trimmed,
                force_human=decision.confidence < self.config.human_emphasis_threshold,
            )
            return None

        self.miss_count = 0
        extra = dict(decision.payload)
        extra.update(source=decision.source, reason=decision.reason)
        return await self.run_intent(decision.intent, extra)

    def _track_miss(self, reason: str, text: str, decision: IntentDecision) -> None:
        track_event(
            "intent_miss",
            reason=reason,
            text=text,
            intent=None if decision.is_clarify else decision.intent,
            confidence=decision.confidence,
            detectedReason=decision.reason,
            lastIntent=self.session.last_intent,
            missCount=self.miss_count + 1,
            sessionId=self.session.id,
        )

    def show_disambiguation(
        self,
        reason: str,
        decision: Optional[IntentDecision] = None,
        text: Optional[str] = None,
        force_human: bool = False,
    ) -> None:
        """Offer the intent chooser; from the second miss in a row, lean on human help."""
        self.miss_count += 1
        repeated = self.miss_count >= 2
        chooser = IntentChooserModule(
            id=module_id("intent-chooser"),
            headline="What do you need?",
            description="Pick an option to jump right into the right flow.",
            emphasize_human=force_human or repeated,
        )
        self.append_messages([
            concierge_text(CHOOSER_HUMAN_COPY if repeated else CHOOSER_COPY),
            concierge_module(chooser),
        ])
        self.purge_modules()
        track_event(
            "intent_disambiguation_shown",
            reason=reason,
            text=text,
            intent=None if decision is None or decision.is_clarify else decision.intent,
            confidence=decision.confidence if decision else None,
            detectedReason=decision.reason if decision else None,
            lastIntent=self.session.last_intent,
            missCount=self.miss_count,
            sessionId=self.session.id,
        )

    # --- Intent execution ---

    async def run_intent(
        self, intent: SupportIntent, extra: Optional[Dict[str, Any]] = None
    ) -> IntentResponse:
        """Run one intent turn and fold its response into the conversation."""
        extra = dict(extra or {})
        request_id = create_request_id(intent)
        payload = {**extra, "requestId": request_id}
        context = {
            "intent": intent,
            "sessionId": self.session.id,
            "requestId": request_id,
            "orderNumber": self._order_number(),
        }

        track_event("intent_detected", source=extra.get("source"), reason=extra.get("reason"), **context)
        response = await execute_intent(intent, payload, self.session, self.providers, request_id)

        self.append_messages(response.messages)
        self.update_session(response.session_patch)
        self.purge_modules()

        if response.error:
            track_event("intent_error", error=response.error, **context)
        else:
            track_event(
                "intent_completed",
                source=extra.get("source"),
                messageCount=len(response.messages),
                offerTriggered=response.offer_triggered,
                **context,
            )
        return response

    # --- Module actions ---

    async def handle_module_action(
        self,
        action_type: str,
        data: Optional[Dict[str, Any]] = None,
        origin_intent: Optional[SupportIntent] = None,
    ) -> Optional[IntentResponse]:
        """Route a button press or form submission from a rendered module."""
        data = dict(data) if isinstance(data, dict) else {}

        if action_type.startswith("shortlist-"):
            return await self._handle_shortlist_action(action_type, data, origin_intent)

        if action_type in SUBMIT_ACTIONS:
            return await self.run_intent(SUBMIT_ACTIONS[action_type], {"action": action_type, **data})

        if action_type == "submit-return-option":
            last_order = self.session.last_order
            if not (last_order and last_order.reference):
                self.append_messages([concierge_text(TRACK_FIRST_COPY, SupportIntent.RETURN_EXCHANGE)])
                return None
            return await self.run_intent(
                SupportIntent.RETURN_EXCHANGE,
                {
                    "action": action_type,
                    **data,
                    "orderId": last_order.order_id or last_order.order_number,
                    "orderNumber": last_order.order_number or last_order.order_id,
                },
            )

        if action_type == "apply-filters":
            track_event(
                "concierge_empty_state_cta_clicked",
                suggestion=data.get("slug") or "unknown",
                filtersApplied=data.get("filters"),
            )
            return await self.run_intent(
                SupportIntent.FIND_PRODUCT,
                {"source": "quickstart", "slug": data.get("slug"), "filters": data.get("filters") or {}},
            )

        if action_type == "intent-chooser-select":
            return await self._handle_chooser_select(data)

        if action_type == "filter_change":
            filters = data.get("filters") if isinstance(data.get("filters"), dict) else {}
            extra: Dict[str, Any] = {"source": "module", "filters": filters}
            if isinstance(data.get("sortBy"), str):
                extra["sortBy"] = data["sortBy"]
            return await self.run_intent(SupportIntent.FIND_PRODUCT, extra)

        if action_type == "text-updates":
            await self._subscribe_text_updates(origin_intent)
            return None

        logger.debug(f"Ignoring unknown module action: {action_type}")
        return None

    async def _subscribe_text_updates(self, origin_intent: Optional[SupportIntent]) -> None:
        """Order timeline "text me updates" button."""
        last_order = self.session.last_order
        request_id = create_request_id("order-updates")
        details = {
            "sessionId": self.session.id,
            "originIntent": origin_intent.value if origin_intent else None,
            "orderId": last_order.order_id if last_order else None,
            "orderNumber": last_order.order_number if last_order else None,
        }
        try:
            ack = await self.providers.subscribe_order_updates(details, request_id)
        except Exception as e:
            logger.warning(f"[{request_id}] subscribe_order_updates failed: {e}")
            self.append_messages([concierge_text(TEXT_UPDATES_ERROR_COPY, origin_intent)])
            track_event(
                "timeline_text_updates_error",
                sessionId=self.session.id,
                requestId=request_id,
                orderNumber=self._order_number(),
            )
            return

        self.append_messages([concierge_text(ack.message or TEXT_UPDATES_COPY, origin_intent)])
        track_event(
            "timeline_text_updates",
            success=True,
            sessionId=self.session.id,
            requestId=request_id,
            orderNumber=self._order_number(),
        )

    async def _handle_chooser_select(self, data: Dict[str, Any]) -> Optional[IntentResponse]:
        try:
            intent = SupportIntent(data.get("intent"))
        except ValueError:
            return None

        self.miss_count = 0
        track_event(
            "intent_disambiguation_selected",
            intent=intent,
            source=data.get("source") if isinstance(data.get("source"), str) else "intent-chooser",
            sessionId=self.session.id,
        )

        chooser_payload = data.get("payload") if isinstance(data.get("payload"), dict) else {}
        default_ready_to_ship = intent == SupportIntent.FIND_PRODUCT and not chooser_payload
        payload: Dict[str, Any] = {"source": "intent-chooser"}
        if default_ready_to_ship:
            payload.update(slug="ready-to-ship", filters={"readyToShip": True})
        payload.update(chooser_payload)

        copy = READY_TO_SHIP_COPY if default_ready_to_ship else CONFIRMATION_COPY[intent]
        self.append_messages([concierge_text(copy, intent)])
        return await self.run_intent(intent, payload)

    async def _handle_shortlist_action(
        self,
        action_type: str,
        data: Dict[str, Any],
        origin_intent: Optional[SupportIntent],
    ) -> Optional[IntentResponse]:
        if action_type == "shortlist-escalate":
            track_event(
                "shortlist_escalate",
                sessionId=self.session.id,
                shortlistCount=len(self.session.shortlist),
                orderNumber=self._order_number(),
            )
            return await self.run_intent(SupportIntent.STYLIST_CONTACT, {"source": "shortlist"})

        if action_type in ("shortlist-share", "shortlist-copy-link", "shortlist-view-links"):
            self._share_shortlist(action_type, data, origin_intent)
            return None

        if action_type == "shortlist-product":
            product = data.get("product")
            if not product:
                return None
            item = product if isinstance(product, ProductSummary) else normalize_product_response(product)
            if not item.id:
                logger.debug("Ignoring shortlist-product without a product id")
                return None
            patch = add_to_shortlist(self.session, item)
            confirmation = [
                concierge_text(f"Saved {item.title} to your shortlist."),
                concierge_text(self._shortlist_count_copy(len(patch.shortlist))),
            ]
        elif action_type == "shortlist-remove":
            product_id = data.get("productId")
            if not product_id:
                return None
            patch = remove_from_shortlist(self.session, str(product_id))
            confirmation = [concierge_text(self._shortlist_count_copy(len(patch.shortlist)))]
        elif action_type == "shortlist-clear":
            patch = clear_shortlist()
            confirmation = [concierge_text("Cleared your shortlist.")]
        else:
            logger.debug(f"Ignoring unknown shortlist action: {action_type}")
            return None

        if origin_intent is not None:
            patch = SessionPatch(shortlist=patch.shortlist, last_intent=origin_intent)
        self.update_session(patch)

        request_id = create_request_id("shortlist")
        try:
            await self.providers.save_shortlist(self.session.id, self.session.shortlist, request_id)
        except Exception as e:
            logger.warning(f"[{request_id}] save_shortlist failed: {e}")
            self.append_messages([concierge_text(SHORTLIST_ERROR_COPY)])
            track_event("product_shortlist_error", action=action_type, sessionId=self.session.id, requestId=request_id)
            return None

        panel = ShortlistPanelModule(
            id=module_id("shortlist-panel"),
            title="My shortlist",
            items=list(self.session.shortlist),
            cta_label="Invite stylist to review",
        )
        self.append_messages(confirmation + [concierge_module(panel, origin_intent)])
        self.purge_modules()
        track_event(
            "shortlist_updated",
            action=action_type,
            sessionId=self.session.id,
            requestId=request_id,
            shortlistCount=len(self.session.shortlist),
            orderNumber=self._order_number(),
        )
        return None

    def _share_shortlist(
        self, action_type: str, data: Dict[str, Any], origin_intent: Optional[SupportIntent]
    ) -> None:
        """Shareable text and links for the saved pieces. Nothing is persisted."""
        shortlist = self.session.shortlist
        storefront = self.config.api_base_url

        if action_type == "shortlist-view-links":
            title = data.get("title") if isinstance(data.get("title"), str) else "this piece"
            product_id = data.get("productId") if isinstance(data.get("productId"), str) else ""
            pdp_url = f"{storefront}/products/{product_id}" if product_id else f"{storefront}/collections"
            collection_url = f"{storefront}/collections?highlight={quote(product_id or 'shortlist', safe='')}"
            self.append_messages([concierge_text(
                f"Reopen {title}:\n- PDP: {pdp_url}\n- Collection: {collection_url}\n\n"
                "Tip: Save or share these links to revisit your shortlist.",
                origin_intent,
            )])
            track_event("shortlist_view_links", productId=product_id, sessionId=self.session.id)
            return

        if action_type == "shortlist-copy-link":
            ids = ",".join(item.id for item in shortlist)
            url = f"{storefront}/collections?shortlist={quote(ids, safe='')}"
            text = f"Here's your shortlist link:\n{url}\n\nCopy and share to reopen these picks on any device."
            method = "link"
        else:
            lines = "\n".join(f"{item.title}: ${_format_price(item.price)}" for item in shortlist)
            share_text = f"Here are my saved pieces:\n\n{lines or SHORTLIST_EMPTY_COPY}\n\nSent from Aurora Concierge"
            text = (
                f"Here is your shortlist to copy:\n{share_text}\n\n"
                "Tip: paste this into chat or email so a stylist can jump in."
            )
            method = "text"

        self.append_messages([concierge_text(text, origin_intent)])
        track_event(
            "shortlist_share",
            sessionId=self.session.id,
            shortlistCount=len(shortlist),
            requestId=create_request_id("shortlist-share"),
            method=method,
        )

    @staticmethod
    def _shortlist_count_copy(count: int) -> str:
        return f"You now have {count} item{'' if count == 1 else 's'} saved."


def _format_price(price: float) -> str:
    """1250 -> "1,250", 99.5 -> "99.50"."""
    if float(price).is_integer():
        return f"{int(price):,}"
    return f"{price:,.2f}"
