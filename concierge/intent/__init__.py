"""
Intent classification and product-filter handling.

- normalizer: raw filter payloads -> NormalizedFilters, provider products -> ProductSummary
- fallback: ordered relaxation of empty product searches
- engine: free text -> IntentDecision
"""
from concierge.intent.engine import IntentContext, decide_intent
from concierge.intent.fallback import build_product_fallbacks, search_with_fallbacks
from concierge.intent.normalizer import normalize_filters, normalize_product_response

__all__ = [
    "IntentContext",
    "decide_intent",
    "build_product_fallbacks",
    "search_with_fallbacks",
    "normalize_filters",
    "normalize_product_response",
]
