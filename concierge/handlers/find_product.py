"""
find_product: product recommendations with fallback search.

awaiting input -> product filter form
submitted      -> preset + caller filters, normalized, searched with fallbacks
"""
from typing import Any, Dict, Mapping, Optional

from concierge.handlers.base import IntentResponse, action_of, concierge_module, concierge_text
from concierge.intent.fallback import search_with_fallbacks
from concierge.intent.normalizer import normalize_filters
from concierge.intent.presets import QUICK_START_PRESETS, get_preset
from concierge.models import SORT_OPTIONS, SessionPatch, SupportIntent, WidgetSession
from concierge.modules import PresetOption, ProductCarouselModule, ProductFilterFormModule, module_id
from concierge.providers.base import ConciergeProviders
from concierge.utils.logger import get_logger

logger = get_logger("handlers.find_product")

INTENT = SupportIntent.FIND_PRODUCT
SUBMIT_ACTION = "submit-product-filters"

# Payload keys that steer the flow rather than describe the search
CONTROL_KEYS = {"action", "filters", "slug", "source", "reason", "requestId"}
PAGING_KEYS = ("limit", "offset")

FALLBACK_COPY = {
    "drop_metal": "opened up the metal choice",
    "raise_price": "stretched the budget a little",
    "drop_ready_to_ship": "included made-to-order pieces",
    "default_ready_to_ship": "switched to ready-to-ship favorites",
}

STUB_DATA_NOTICE = (
    "Heads up: I'm browsing demo inventory right now, so the live catalog may have more options."
)


def is_submission(data: Mapping[str, Any]) -> bool:
    """A filter form submission, a quick-start preset, or a filter change."""
    return action_of(data) == SUBMIT_ACTION or "filters" in data or "slug" in data


def merge_filter_sources(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Preset filters < top-level payload fields < explicit ``filters`` map.

    Each layer is normalized on its own before merging, so a caller's
    ``priceMax`` or ``priceBand`` replaces a preset's ``priceLt`` instead of
    losing to it on key precedence.
    """
    preset = get_preset(data.get("slug"))
    explicit = data.get("filters")
    layers = [
        preset.filters if preset else {},
        {k: v for k, v in data.items() if k not in CONTROL_KEYS},
        explicit if isinstance(explicit, Mapping) else {},
    ]

    merged: Dict[str, Any] = {}
    for layer in layers:
        merged.update(normalize_filters(layer).to_raw_map(include_paging=False))
        for key in PAGING_KEYS:
            if key in layer:
                merged[key] = layer[key]
    return merged


def _filter_form() -> ProductFilterFormModule:
    return ProductFilterFormModule(
        id=module_id("product-filter-form"),
        headline="What are you shopping for?",
        description="Pick a starting point or set a category, metal and budget.",
        presets=[PresetOption(slug=p.slug, label=p.label) for p in QUICK_START_PRESETS],
        sort_options=list(SORT_OPTIONS),
    )


async def handle_find_product(
    data: Dict[str, Any],
    session: WidgetSession,
    providers: ConciergeProviders,
    request_id: Optional[str] = None,
) -> IntentResponse:
    if not is_submission(data):
        return IntentResponse(
            messages=[
                concierge_text("Happy to help you find something. Tell me a little about what you have in mind.", INTENT),
                concierge_module(_filter_form(), INTENT),
            ],
            session_patch=SessionPatch(last_intent=INTENT),
        )

    base = normalize_filters(merge_filter_sources(data))
    outcome = await search_with_fallbacks(providers.search_products, base, request_id)
    applied = outcome.filters.without_paging()

    if not outcome.found:
        messages = [
            concierge_text(
                "I couldn't find a match for those filters yet. Try a different budget or metal, "
                "or I can bring in a stylist to source something for you.",
                INTENT,
            )
        ]
        if providers.is_stub:
            messages.append(concierge_text(STUB_DATA_NOTICE, INTENT))
        return IntentResponse(
            messages=messages,
            session_patch=SessionPatch(last_intent=INTENT, last_filters=applied),
        )

    count = len(outcome.products)
    headline = f"Here {'is' if count == 1 else 'are'} {count} piece{'' if count == 1 else 's'} you might love."
    if outcome.relaxed:
        headline += f" Nothing matched exactly, so I {FALLBACK_COPY[outcome.reason]}."

    carousel = ProductCarouselModule(
        id=module_id("product-carousel"),
        headline="Recommended for you",
        products=outcome.products,
        filters=applied.to_raw_map(include_paging=False),
        relaxed=outcome.relaxed,
        fallback_reason=outcome.reason,
    )
    logger.info(f"find_product: {count} results after {outcome.attempts} attempt(s), reason={outcome.reason}")

    return IntentResponse(
        messages=[concierge_text(headline, INTENT), concierge_module(carousel, INTENT)],
        session_patch=SessionPatch(last_intent=INTENT, last_filters=applied),
    )
