"""
Rule-based intent classification for concierge messages.

Deterministic waterfall; the first stage that produces a decision wins and
confidences are never compared across stages:
1. Slash commands (exact match)
2. Order references (order number, or email + postal code)
3. Keyword rules (ordered table, fixed confidences)
4. Product signal extraction (category, metal, ready-to-ship, price, gift),
   or inherited filters from the previous product turn
5. "More options" continuation of the previous product turn
6. Clarify
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Pattern, Tuple

from concierge.intent.normalizer import normalize_filters
from concierge.models import (
    CLARIFY,
    IntentDecision,
    NormalizedFilters,
    SupportIntent,
    WidgetSession,
)
from concierge.utils.logger import get_logger

logger = get_logger("intent.engine")

COMMAND_CONFIDENCE = 0.95
ORDER_REFERENCE_CONFIDENCE = 0.92
EXTRACTION_CONFIDENCE = 0.75
INHERITED_CONFIDENCE = 0.55
CONTINUATION_CONFIDENCE = 0.5
CLARIFY_CONFIDENCE = 0.2

FILTER_ACTION = "submit-product-filters"
ORDER_LOOKUP_ACTION = "submit-order-lookup"


# --- Stage 1: slash commands ---
COMMANDS: Dict[str, SupportIntent] = {
    "/track": SupportIntent.TRACK_ORDER,
    "/order": SupportIntent.TRACK_ORDER,
    "/return": SupportIntent.RETURN_EXCHANGE,
    "/exchange": SupportIntent.RETURN_EXCHANGE,
    "/resize": SupportIntent.RETURN_EXCHANGE,
    "/size": SupportIntent.SIZING_REPAIRS,
    "/repair": SupportIntent.SIZING_REPAIRS,
    "/care": SupportIntent.CARE_WARRANTY,
    "/warranty": SupportIntent.CARE_WARRANTY,
    "/financing": SupportIntent.FINANCING,
    "/finance": SupportIntent.FINANCING,
    "/stylist": SupportIntent.STYLIST_CONTACT,
    "/human": SupportIntent.STYLIST_CONTACT,
    "/feedback": SupportIntent.CSAT,
    "/csat": SupportIntent.CSAT,
    "/shop": SupportIntent.FIND_PRODUCT,
    "/gift": SupportIntent.FIND_PRODUCT,
}


# --- Stage 2: order references ---
# Digit runs glued to "$" or another word character are not order numbers
ORDER_NUMBER_PATTERN = re.compile(r"(?<![\w$])(?:GG-)?\d{5,12}\b", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
POSTAL_CODE_PATTERN = re.compile(
    r"\b(?:\d{5}(?:-\d{4})?|[A-Za-z]\d[A-Za-z][ -]?\d[A-Za-z]\d)\b"
)


# --- Stage 3: keyword rules ---
@dataclass(frozen=True)
class KeywordRule:
    """One row of the keyword table."""
    intent: SupportIntent
    patterns: Tuple[Pattern, ...]
    confidence: float
    reason: str

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self.patterns)


def _rule(intent: SupportIntent, patterns: List[str], confidence: float, reason: str) -> KeywordRule:
    return KeywordRule(intent, tuple(re.compile(p, re.IGNORECASE) for p in patterns), confidence, reason)


# Order matters: returns/resizing are checked before generic shopping phrasing
KEYWORD_RULES: List[KeywordRule] = [
    _rule(SupportIntent.STYLIST_CONTACT, [
        r"\b(talk|speak|chat) (to|with) (a |an )?(human|person|someone|stylist|agent|representative)\b",
        r"\b(real|live) (person|human|agent)\b",
        r"\bstylist\b",
        r"\bcall me\b",
    ], 0.9, "stylist_request"),
    _rule(SupportIntent.RETURN_EXCHANGE, [
        r"\breturns?\b",
        r"\brefunds?\b",
        r"\bexchange\b",
        r"\bsend (it|this|them) back\b",
        r"\bswap (it|this|that|them)\b",
        r"\bresiz(e|ed|ing)\b",
    ], 0.88, "return_or_exchange"),
    _rule(SupportIntent.TRACK_ORDER, [
        r"\btrack(ing)?\b",
        r"\bwhere('?s| is) my (order|package|ring|piece|delivery)\b",
        r"\border status\b",
        r"\bhas (my|the) order shipped\b",
        r"\bdelivery (date|status|update)\b",
        r"\bwhen will (it|my order) (arrive|ship)\b",
    ], 0.86, "order_status_language"),
    _rule(SupportIntent.FINANCING, [
        r"\bfinanc(e|ing)\b",
        r"\bpayment plans?\b",
        r"\binstall?ments?\b",
        r"\b(affirm|klarna|afterpay)\b",
        r"\bpay (over time|monthly|later)\b",
        r"\bmonthly payments?\b",
    ], 0.85, "financing_language"),
    _rule(SupportIntent.SIZING_REPAIRS, [
        r"\bring size\b",
        r"\bsiz(ing|e guide|e chart)\b",
        r"\b(what|my) size\b",
        r"\btoo (tight|loose|big|small)\b",
        r"\brepair(s|ed)?\b",
        r"\bbroken\b",
        r"\bfix\b",
    ], 0.82, "sizing_or_repair"),
    _rule(SupportIntent.CARE_WARRANTY, [
        r"\bwarrant(y|ies)\b",
        r"\bguarantee\b",
        r"\bclean(ing)?\b",
        r"\bcare (for|tips|guide|instructions)\b",
        r"\btarnish(ed|ing)?\b",
        r"\bpolish(ing)?\b",
        r"\binsur(e|ance)\b",
    ], 0.8, "care_or_warranty"),
    _rule(SupportIntent.FIND_PRODUCT, [
        r"\brecommend(ation)?s?\b",
        r"\bgift ideas?\b",
        r"\bhelp me (find|choose|pick)\b",
        r"\bwhat should i (buy|get)\b",
        r"\bbrowse\b",
        r"\bshop(ping)? for\b",
    ], 0.74, "shopping_language"),
    _rule(SupportIntent.CSAT, [
        r"\bfeedback\b",
        r"\bsurvey\b",
        r"\brate (you|this|the (chat|service))\b",
        r"\b(you were|that was) (so )?(helpful|great|unhelpful|useless)\b",
    ], 0.72, "feedback_language"),
]


# --- Stage 4: product signals ---
CATEGORY_PATTERNS: List[Tuple[Pattern, str]] = [
    (re.compile(r"\b(earrings?|studs|hoops)\b", re.I), "earrings"),
    (re.compile(r"\b(engagement )?rings?\b", re.I), "ring"),
    (re.compile(r"\b(necklaces?|pendants?|chains?)\b", re.I), "necklace"),
    (re.compile(r"\b(bracelets?|bangles?|cuffs?)\b", re.I), "bracelet"),
]
METAL_PATTERNS: List[Tuple[Pattern, str]] = [
    (re.compile(r"\brose gold\b", re.I), "rose-gold"),
    (re.compile(r"\bwhite gold\b", re.I), "white-gold"),
    (re.compile(r"\byellow gold\b", re.I), "yellow-gold"),
    (re.compile(r"\bgold\b", re.I), "gold"),
    (re.compile(r"\bplatinum\b", re.I), "platinum"),
    (re.compile(r"\b(sterling )?silver\b", re.I), "silver"),
]
READY_TO_SHIP_PATTERN = re.compile(r"\bready[\s-]to[\s-]ship\b|\bin[\s-]stock\b|\bships? (today|now|fast)\b", re.I)
MADE_TO_ORDER_PATTERN = re.compile(r"\bmade[\s-]to[\s-]order\b|\bcustom[\s-]made\b", re.I)
GIFT_PATTERN = re.compile(r"\bgift(s|ed|ing)?\b|\bpresent for\b", re.I)

_AMOUNT = r"(\d[\d,]*(?:\.\d+)?)(\s*k\b)?"
# Rejects partial numbers and durations ("under 3 days")
_NOT_DURATION = (
    r"(?!\d|\.\d)"
    r"(?!\s*(?:business )?(?:min(?:ute)?s?|hours?|hrs?|days?|nights?|weeks?|wks?|months?|years?|yrs?)\b)"
)
# "up to" / "max" / "within" only count with a currency marker
_HAS_CURRENCY = r"(?=\$|\d[\d,.]*\s*(?:k\b|dollars\b|bucks\b|usd\b))"
PRICE_PATTERNS: List[Pattern] = [
    re.compile(
        r"\b(?:under|below|less than|no more than|budget(?: of| is)?)\s*(?:\$\s*)?" + _AMOUNT + _NOT_DURATION,
        re.I,
    ),
    re.compile(
        r"\b(?:up to|max(?:imum)?|within)\s*" + _HAS_CURRENCY + r"(?:\$\s*)?" + _AMOUNT + _NOT_DURATION,
        re.I,
    ),
    re.compile(r"\$?" + _AMOUNT + r"\s*(?:or less|or under|or below|max)\b", re.I),
    re.compile(r"\b" + _AMOUNT + r"\s*(?:dollars|bucks|usd)\b", re.I),
]

# Generic reference to products, used to inherit the previous filters
PRODUCT_REFERENCE_PATTERN = re.compile(
    r"\b(pieces?|jewel(le)?ry|something|options?|styles?|designs?|ones)\b", re.I
)


# --- Stage 5: continuation ---
CONTINUATION_PATTERN = re.compile(r"\b(more|another|others?|different|else|alternatives?|next)\b", re.I)


@dataclass
class IntentContext:
    """What the engine may know about the previous turn."""
    last_intent: Optional[SupportIntent] = None
    last_filters: Optional[NormalizedFilters] = None

    @classmethod
    def from_session(cls, session: Optional[WidgetSession]) -> "IntentContext":
        if session is None:
            return cls()
        return cls(last_intent=session.last_intent, last_filters=session.last_filters)

    @property
    def has_product_filters(self) -> bool:
        return (
            self.last_intent == SupportIntent.FIND_PRODUCT
            and self.last_filters is not None
            and self.last_filters.has_criteria()
        )


def _price_spans(text: str) -> List[Tuple[int, int]]:
    return [m.span(1) for pattern in PRICE_PATTERNS for m in pattern.finditer(text)]


def extract_price_ceiling(text: str) -> Optional[float]:
    """Pull a budget ceiling out of phrases like "under $300" or "2k or less"."""
    for pattern in PRICE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        amount = float(match.group(1).replace(",", ""))
        if match.group(2):
            amount *= 1000
        if amount > 0:
            return amount
    return None


def extract_product_signals(text: str) -> Dict[str, Any]:
    """
    Scan a message for product-search signals.

    Returns:
        Raw filter map (empty when nothing was found)
    """
    signals: Dict[str, Any] = {}

    for pattern, category in CATEGORY_PATTERNS:
        if pattern.search(text):
            signals["category"] = category
            break

    for pattern, metal in METAL_PATTERNS:
        if pattern.search(text):
            signals["metal"] = metal
            break

    if READY_TO_SHIP_PATTERN.search(text) and not MADE_TO_ORDER_PATTERN.search(text):
        signals["readyToShip"] = True

    ceiling = extract_price_ceiling(text)
    if ceiling is not None:
        signals["priceLt"] = ceiling

    if GIFT_PATTERN.search(text):
        signals["tags"] = ["gift"]

    return signals


def _detect_order_reference(text: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    email = EMAIL_PATTERN.search(text)
    if email:
        remainder = text.replace(email.group(0), " ")
        postal = POSTAL_CODE_PATTERN.search(remainder)
        if postal:
            return "email_postal_detected", {
                "action": ORDER_LOOKUP_ACTION,
                "email": email.group(0),
                "postalCode": postal.group(0).upper(),
            }

    price_spans = _price_spans(text)
    for match in ORDER_NUMBER_PATTERN.finditer(text):
        start, end = match.span()
        if any(start < p_end and p_start < end for p_start, p_end in price_spans):
            continue
        return "order_number_detected", {
            "action": ORDER_LOOKUP_ACTION,
            "orderNumber": match.group(0).upper(),
        }
    return None


def _product_payload(filters: NormalizedFilters) -> Dict[str, Any]:
    return {"action": FILTER_ACTION, "filters": filters.to_raw_map(include_paging=False)}


def decide_intent(message: str, context: Optional[IntentContext] = None) -> IntentDecision:
    """
    Classify a guest message.

    Args:
        message: Raw text typed by the guest
        context: Previous turn's intent and filters

    Returns:
        IntentDecision; ``clarify`` when no stage matched
    """
    context = context or IntentContext()
    text = (message or "").strip()
    if not text:
        return IntentDecision(intent=CLARIFY, confidence=0, reason="empty_message")

    decision = (
        _match_command(text)
        or _match_order_reference(text)
        or _match_keyword_rule(text)
        or _match_product_signals(text, context)
        or _match_continuation(text, context)
    )
    if decision is None:
        decision = IntentDecision(intent=CLARIFY, confidence=CLARIFY_CONFIDENCE, reason="no_match")

    logger.debug(
        f"decide_intent: '{text[:80]}' -> {decision.intent} "
        f"({decision.confidence}, {decision.reason})"
    )
    return decision


def _match_command(text: str) -> Optional[IntentDecision]:
    intent = COMMANDS.get(text.lower())
    if intent is None:
        return None
    return IntentDecision(
        intent=intent, confidence=COMMAND_CONFIDENCE, reason="command_match", source="command"
    )


def _match_order_reference(text: str) -> Optional[IntentDecision]:
    detected = _detect_order_reference(text)
    if detected is None:
        return None
    reason, payload = detected
    return IntentDecision(
        intent=SupportIntent.TRACK_ORDER,
        confidence=ORDER_REFERENCE_CONFIDENCE,
        reason=reason,
        source="order_reference",
        payload=payload,
    )


def _match_keyword_rule(text: str) -> Optional[IntentDecision]:
    for rule in KEYWORD_RULES:
        if not rule.matches(text):
            continue
        filters = None
        payload: Dict[str, Any] = {}
        if rule.intent == SupportIntent.FIND_PRODUCT:
            signals = extract_product_signals(text)
            if signals:
                filters = normalize_filters(signals)
                payload = _product_payload(filters)
        return IntentDecision(
            intent=rule.intent,
            confidence=rule.confidence,
            reason=rule.reason,
            source="keyword",
            filters=filters,
            payload=payload,
        )
    return None


def _match_product_signals(text: str, context: IntentContext) -> Optional[IntentDecision]:
    signals = extract_product_signals(text)
    if signals:
        filters = normalize_filters(signals)
        return IntentDecision(
            intent=SupportIntent.FIND_PRODUCT,
            confidence=EXTRACTION_CONFIDENCE,
            reason="product_signals_extracted",
            source="extraction",
            filters=filters,
            payload=_product_payload(filters),
        )

    # "More options" phrasing is left to the continuation stage
    if (
        context.has_product_filters
        and PRODUCT_REFERENCE_PATTERN.search(text)
        and not CONTINUATION_PATTERN.search(text)
    ):
        return IntentDecision(
            intent=SupportIntent.FIND_PRODUCT,
            confidence=INHERITED_CONFIDENCE,
            reason="inherited_last_filters",
            source="context",
            filters=context.last_filters,
            payload=_product_payload(context.last_filters),
        )
    return None


def _match_continuation(text: str, context: IntentContext) -> Optional[IntentDecision]:
    if not (context.has_product_filters and CONTINUATION_PATTERN.search(text)):
        return None
    return IntentDecision(
        intent=SupportIntent.FIND_PRODUCT,
        confidence=CONTINUATION_CONFIDENCE,
        reason="context_continuation",
        source="context",
        filters=context.last_filters,
        payload=_product_payload(context.last_filters),
    )


__all__ = [
    "decide_intent",
    "extract_product_signals",
    "extract_price_ceiling",
    "IntentContext",
    "KeywordRule",
    "KEYWORD_RULES",
    "COMMANDS",
]
