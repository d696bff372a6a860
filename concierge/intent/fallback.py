"""
Fallback search planning.

When a product search comes back empty, constraints are loosened in a fixed
merchandising order rather than dropped wholesale:

1. drop_metal             - metal is the most negotiable constraint
2. raise_price            - ceiling +300, never above 1200
3. drop_ready_to_ship     - made-to-order becomes acceptable
4. default_ready_to_ship  - always last: in-stock pieces as a safety net

Each variant builds on the one before it. Attempts run one at a time and stop
at the first non-empty result.
"""
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from concierge.models import NormalizedFilters, ProductSummary
from concierge.utils.logger import get_logger

logger = get_logger("intent.fallback")

PRICE_RAISE_STEP = 300
PRICE_RAISE_CAP = 1200

FALLBACK_REASONS = ("drop_metal", "raise_price", "drop_ready_to_ship", "default_ready_to_ship")

# Async search callable: (filters, request_id) -> products
SearchFn = Callable[[NormalizedFilters, Optional[str]], Awaitable[List[ProductSummary]]]


@dataclass(frozen=True)
class FallbackVariant:
    """A loosened filter set and the rule that produced it."""
    filters: NormalizedFilters
    reason: str


@dataclass
class FallbackOutcome:
    """Result of running the base search plus fallbacks."""
    products: List[ProductSummary]
    filters: NormalizedFilters     # filters of the attempt that matched (base if none did)
    reason: Optional[str] = None   # fallback reason, None when the base search matched
    attempts: int = 0

    @property
    def found(self) -> bool:
        return bool(self.products)

    @property
    def relaxed(self) -> bool:
        return self.found and self.reason is not None


def build_product_fallbacks(base: NormalizedFilters) -> List[FallbackVariant]:
    """
    Build the ordered list of loosened variants for an empty search.

    Args:
        base: Filters of the search that returned nothing

    Returns:
        Variants in retry order; ``default_ready_to_ship`` is always last
    """
    variants: List[FallbackVariant] = []
    current = base

    if current.metal:
        current = current.model_copy(update={"metal": None})
        variants.append(FallbackVariant(current, "drop_metal"))

    ceiling = current.price_ceiling
    if ceiling is not None and ceiling < PRICE_RAISE_CAP:
        current = current.with_ceiling(min(ceiling + PRICE_RAISE_STEP, PRICE_RAISE_CAP))
        variants.append(FallbackVariant(current, "raise_price"))

    if current.ready_to_ship is not None:
        current = current.model_copy(update={"ready_to_ship": None})
        variants.append(FallbackVariant(current, "drop_ready_to_ship"))

    variants.append(
        FallbackVariant(current.model_copy(update={"ready_to_ship": True}), "default_ready_to_ship")
    )
    return variants


async def search_with_fallbacks(
    search: SearchFn,
    base: NormalizedFilters,
    request_id: Optional[str] = None,
) -> FallbackOutcome:
    """
    Search with ``base``, then each fallback in order until something matches.

    Attempts are awaited sequentially so the winning attempt is always the
    earliest one that matched.
    """
    attempts = [FallbackVariant(base, "base")] + build_product_fallbacks(base)

    for index, attempt in enumerate(attempts, start=1):
        products = await search(attempt.filters, request_id)
        logger.info(
            f"Search attempt {index}/{len(attempts)} ({attempt.reason}): {len(products)} results "
            f"filters={attempt.filters.to_raw_map(include_paging=False)}"
        )
        if products:
            reason = None if attempt.reason == "base" else attempt.reason
            return FallbackOutcome(products=list(products), filters=attempt.filters,
                                   reason=reason, attempts=index)

    logger.info(f"No products after {len(attempts)} attempts")
    return FallbackOutcome(products=[], filters=base, reason=None, attempts=len(attempts))


__all__ = [
    "build_product_fallbacks",
    "search_with_fallbacks",
    "FallbackVariant",
    "FallbackOutcome",
    "FALLBACK_REASONS",
    "PRICE_RAISE_STEP",
    "PRICE_RAISE_CAP",
]
