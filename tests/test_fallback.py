"""
Unit tests for the fallback planner and the sequential search loop.
"""

import pytest

from concierge.intent.fallback import build_product_fallbacks, search_with_fallbacks
from concierge.intent.normalizer import normalize_filters

from conftest import make_product


def reasons(variants):
    return [variant.reason for variant in variants]


class TestBuildProductFallbacks:
    """Test variant order and content."""

    def test_full_order(self):
        base = normalize_filters({"metal": "gold", "readyToShip": True, "priceLt": 500})
        variants = build_product_fallbacks(base)
        assert reasons(variants) == [
            "drop_metal",
            "raise_price",
            "drop_ready_to_ship",
            "default_ready_to_ship",
        ]

    def test_variants_are_cumulative(self):
        base = normalize_filters({"metal": "gold", "readyToShip": True, "priceLt": 500, "category": "ring"})
        drop_metal, raise_price, drop_rts, default_rts = build_product_fallbacks(base)

        assert drop_metal.filters.metal is None
        assert drop_metal.filters.price_lt == 500

        assert raise_price.filters.metal is None
        assert raise_price.filters.price_lt == 800
        assert raise_price.filters.price_max == 800

        assert drop_rts.filters.ready_to_ship is None
        assert drop_rts.filters.price_lt == 800

        assert default_rts.filters.ready_to_ship is True
        assert default_rts.filters.category == "ring"

    def test_price_raise_capped(self):
        variants = build_product_fallbacks(normalize_filters({"priceLt": 1150}))
        raised = [v for v in variants if v.reason == "raise_price"]
        assert len(raised) == 1
        assert raised[0].filters.price_lt == 1200
        assert raised[0].filters.price_max == 1200

    def test_no_raise_at_cap(self):
        variants = build_product_fallbacks(normalize_filters({"priceLt": 1200}))
        assert "raise_price" not in reasons(variants)

    def test_no_raise_above_cap(self):
        variants = build_product_fallbacks(normalize_filters({"priceLt": 5000}))
        assert reasons(variants) == ["default_ready_to_ship"]

    def test_default_ready_to_ship_always_last(self):
        assert reasons(build_product_fallbacks(normalize_filters({}))) == ["default_ready_to_ship"]
        assert reasons(build_product_fallbacks(normalize_filters({"metal": "silver"})))[-1] == "default_ready_to_ship"

    def test_drop_ready_to_ship_when_false(self):
        variants = build_product_fallbacks(normalize_filters({"readyToShip": False}))
        assert reasons(variants) == ["drop_ready_to_ship", "default_ready_to_ship"]

    def test_base_untouched(self):
        base = normalize_filters({"metal": "gold", "priceLt": 500})
        build_product_fallbacks(base)
        assert base.metal == "gold"
        assert base.price_lt == 500


class TestSearchWithFallbacks:
    """Test the sequential search loop."""

    @pytest.mark.asyncio
    async def test_base_match_is_not_relaxed(self):
        seen = []

        async def search(filters, request_id):
            seen.append(filters)
            return [make_product("p1")]

        base = normalize_filters({"metal": "gold"})
        outcome = await search_with_fallbacks(search, base)

        assert outcome.found
        assert not outcome.relaxed
        assert outcome.reason is None
        assert outcome.attempts == 1
        assert seen == [base]

    @pytest.mark.asyncio
    async def test_stops_at_first_match(self):
        seen = []

        async def search(filters, request_id):
            seen.append(filters)
            # Only matches once the budget was raised
            if filters.price_lt and filters.price_lt > 500:
                return [make_product("p2")]
            return []

        base = normalize_filters({"metal": "gold", "readyToShip": True, "priceLt": 500})
        outcome = await search_with_fallbacks(search, base, "find_product-abc")

        assert outcome.reason == "raise_price"
        assert outcome.relaxed
        assert outcome.attempts == 3
        assert outcome.filters.price_lt == 800
        assert len(seen) == 3

    @pytest.mark.asyncio
    async def test_request_id_forwarded(self):
        ids = []

        async def search(filters, request_id):
            ids.append(request_id)
            return []

        await search_with_fallbacks(search, normalize_filters({}), "find_product-xyz")
        assert ids == ["find_product-xyz", "find_product-xyz"]

    @pytest.mark.asyncio
    async def test_all_empty(self):
        async def search(filters, request_id):
            return []

        base = normalize_filters({"metal": "gold", "readyToShip": True, "priceLt": 500})
        outcome = await search_with_fallbacks(search, base)

        assert not outcome.found
        assert not outcome.relaxed
        assert outcome.filters == base
        assert outcome.attempts == 5
