"""
Unit tests for the widget controller: disambiguation, module actions and
shortlist handling.
"""

from unittest.mock import patch

import pytest

from concierge.models import LastOrder, SupportIntent
from concierge.widget import (
    CHOOSER_COPY,
    CHOOSER_HUMAN_COPY,
    READY_TO_SHIP_COPY,
    SHORTLIST_ERROR_COPY,
    TEXT_UPDATES_COPY,
    TEXT_UPDATES_ERROR_COPY,
    TRACK_FIRST_COPY,
    ConciergeWidget,
)

from conftest import FakeProviders, make_product


@pytest.fixture
def stocked_providers():
    return FakeProviders(search=lambda f: [make_product("p1", "Lumen Studs"), make_product("p2")])


@pytest.fixture
def widget(stocked_providers, session, config):
    return ConciergeWidget(stocked_providers, session=session, config=config)


def concierge_payloads(widget):
    return [m.payload for m in widget.messages if m.role == "concierge"]


class TestSendMessage:
    """Free-text routing."""

    @pytest.mark.asyncio
    async def test_empty_message_ignored(self, widget):
        assert await widget.send_message("   ") is None
        assert widget.messages == []

    @pytest.mark.asyncio
    async def test_confident_intent_runs(self, widget, stocked_providers):
        response = await widget.send_message("gifts under $300 ready to ship")

        assert response is not None
        assert widget.messages[0].role == "guest"
        assert widget.messages[-1].module_type == "product-carousel"
        assert widget.session.last_intent == SupportIntent.FIND_PRODUCT
        assert widget.session.last_filters.price_lt == 300
        assert widget.miss_count == 0

    @pytest.mark.asyncio
    async def test_request_id_scoped_to_intent(self, widget, stocked_providers):
        await widget.send_message("/track")
        await widget.handle_module_action("submit-order-lookup", {"orderNumber": "GG-10001"})
        assert stocked_providers.request_ids[0].startswith("track_order-")

    @pytest.mark.asyncio
    async def test_no_match_shows_chooser(self, widget):
        assert await widget.send_message("hello there") is None

        chooser = widget.messages[-1].payload
        assert chooser.type == "intent-chooser"
        assert chooser.emphasize_human is False
        assert widget.messages[-2].payload == CHOOSER_COPY
        assert widget.miss_count == 1

    @pytest.mark.asyncio
    async def test_second_miss_emphasizes_human(self, widget):
        await widget.send_message("hello there")
        await widget.send_message("hmm")

        assert widget.messages[-2].payload == CHOOSER_HUMAN_COPY
        assert widget.messages[-1].payload.emphasize_human is True
        # Only the newest chooser is kept
        assert sum(1 for m in widget.messages if m.module_type == "intent-chooser") == 1

    @pytest.mark.asyncio
    async def test_low_confidence_shows_chooser(self, widget, stocked_providers):
        await widget.send_message("gold rings")
        widget.miss_count = 0

        # Continuation scores 0.5: below the 0.7 threshold, not below 0.5
        assert await widget.send_message("show me more") is None
        chooser = widget.messages[-1].payload
        assert chooser.type == "intent-chooser"
        assert chooser.emphasize_human is False

    @pytest.mark.asyncio
    async def test_very_low_confidence_forces_human(self, widget):
        from concierge.models import IntentDecision

        decision = IntentDecision(intent=SupportIntent.FIND_PRODUCT, confidence=0.3, reason="test")
        with patch("concierge.widget.decide_intent", return_value=decision):
            await widget.send_message("whatever")
        assert widget.messages[-1].payload.emphasize_human is True

    @pytest.mark.asyncio
    async def test_hit_resets_miss_count(self, widget):
        await widget.send_message("hello there")
        await widget.send_message("/care")
        assert widget.miss_count == 0


class TestModuleActions:
    """Module action routing."""

    @pytest.mark.asyncio
    async def test_order_lookup_remembers_order(self, widget):
        await widget.handle_module_action("submit-order-lookup", {"orderNumber": "GG-10001"})
        assert widget.session.last_order.order_number == "GG-10001"
        assert widget.messages[-1].module_type == "order-timeline"

    @pytest.mark.asyncio
    async def test_return_requires_order(self, widget, stocked_providers):
        result = await widget.handle_module_action("submit-return-option", {"optionId": "resize"})
        assert result is None
        assert concierge_payloads(widget)[-1] == TRACK_FIRST_COPY
        assert "file_return" not in stocked_providers.calls

    @pytest.mark.asyncio
    async def test_return_uses_last_order(self, stocked_providers, session, config):
        session = session.model_copy(update={"last_order": LastOrder(order_id="ord_1")})
        widget = ConciergeWidget(stocked_providers, session=session, config=config)

        response = await widget.handle_module_action("submit-return-option", {"optionId": "return"})

        selection = stocked_providers.calls["file_return"][0]
        assert selection["orderId"] == "ord_1"
        assert selection["orderNumber"] == "ord_1"
        assert response.offer_triggered is True

    @pytest.mark.asyncio
    async def test_apply_filters_quickstart(self, widget, stocked_providers):
        await widget.handle_module_action("apply-filters", {"slug": "engagement-rings"})
        searched = stocked_providers.calls["search_products"][0]
        assert searched.category == "ring"
        assert searched.tags == ("engagement",)

    @pytest.mark.asyncio
    async def test_chooser_find_product_defaults_ready_to_ship(self, widget, stocked_providers):
        await widget.send_message("hello there")
        await widget.handle_module_action("intent-chooser-select", {"intent": "find_product"})

        assert READY_TO_SHIP_COPY in concierge_payloads(widget)
        assert stocked_providers.calls["search_products"][0].ready_to_ship is True
        assert widget.miss_count == 0

    @pytest.mark.asyncio
    async def test_chooser_other_intent(self, widget):
        await widget.handle_module_action("intent-chooser-select", {"intent": "financing"})
        assert "On it. Pulling financing options." in concierge_payloads(widget)
        assert widget.session.last_intent == SupportIntent.FINANCING

    @pytest.mark.asyncio
    async def test_chooser_invalid_intent_ignored(self, widget):
        assert await widget.handle_module_action("intent-chooser-select", {"intent": "nope"}) is None
        assert widget.messages == []

    @pytest.mark.asyncio
    async def test_filter_change(self, widget, stocked_providers):
        await widget.handle_module_action("filter_change", {"filters": {"metal": "Platinum"}, "sortBy": "newest"})
        searched = stocked_providers.calls["search_products"][0]
        assert searched.metal == "platinum"
        assert searched.sort_by == "newest"

    @pytest.mark.asyncio
    async def test_csat_submission(self, widget, stocked_providers):
        await widget.handle_module_action("submit-csat", {"rating": "good"})
        assert stocked_providers.calls["submit_csat"][0]["rating"] == 4
        assert widget.session.has_shown_csat is True

    @pytest.mark.asyncio
    async def test_unknown_action_ignored(self, widget):
        assert await widget.handle_module_action("view-product", {"slug": "x"}) is None
        assert widget.messages == []

    @pytest.mark.asyncio
    async def test_handler_error_reported(self, session, config, failing_providers):
        widget = ConciergeWidget(failing_providers, session=session, config=config)
        response = await widget.handle_module_action("submit-order-lookup", {"orderNumber": "GG-1"})
        assert response.error == "request_failed"
        assert widget.session.last_intent == SupportIntent.TRACK_ORDER


class TestShortlistActions:
    """Shortlist buttons."""

    @pytest.mark.asyncio
    async def test_add_and_persist(self, widget, stocked_providers):
        product = make_product("p1", "Lumen Studs").model_dump(by_alias=True)
        await widget.handle_module_action("shortlist-product", {"product": product}, SupportIntent.FIND_PRODUCT)

        assert [p.id for p in widget.session.shortlist] == ["p1"]
        assert widget.session.last_intent == SupportIntent.FIND_PRODUCT
        session_id, items = stocked_providers.calls["save_shortlist"][0]
        assert session_id == widget.session.id
        assert [p.id for p in items] == ["p1"]
        assert widget.messages[-1].module_type == "shortlist-panel"
        assert "Saved Lumen Studs to your shortlist." in concierge_payloads(widget)

    @pytest.mark.asyncio
    async def test_remove_and_clear(self, widget):
        await widget.handle_module_action("shortlist-product", {"product": make_product("p1")})
        await widget.handle_module_action("shortlist-product", {"product": make_product("p2")})
        await widget.handle_module_action("shortlist-remove", {"productId": "p1"})
        assert [p.id for p in widget.session.shortlist] == ["p2"]

        await widget.handle_module_action("shortlist-clear")
        assert widget.session.shortlist == ()
        # One panel at a time
        assert sum(1 for m in widget.messages if m.module_type == "shortlist-panel") == 1

    @pytest.mark.asyncio
    async def test_save_failure_reported(self, widget, stocked_providers):
        stocked_providers.fail_on["save_shortlist"] = RuntimeError("offline")
        await widget.handle_module_action("shortlist-product", {"product": make_product("p1")})
        assert concierge_payloads(widget)[-1] == SHORTLIST_ERROR_COPY

    @pytest.mark.asyncio
    async def test_escalate_sends_shortlist(self, widget, stocked_providers):
        await widget.handle_module_action("shortlist-product", {"product": make_product("p1")})
        await widget.handle_module_action("shortlist-escalate")
        assert widget.messages[-1].payload.type == "escalation-form"
        assert widget.messages[-1].payload.shortlist_count == 1

        await widget.handle_module_action("submit-escalation", {"name": "Jo", "email": "jo@example.com"})
        ticket = stocked_providers.calls["create_stylist_ticket"][0]
        assert ticket["shortlistCount"] == 1

    @pytest.mark.asyncio
    async def test_product_without_id_ignored(self, widget, stocked_providers):
        result = await widget.handle_module_action("shortlist-product", {"product": {"title": "Mystery", "price": 90}})
        assert result is None
        assert widget.session.shortlist == ()
        assert "save_shortlist" not in stocked_providers.calls

    @pytest.mark.asyncio
    async def test_legacy_product_shape_normalized(self, widget):
        await widget.handle_module_action("shortlist-product", {"product": {"_id": "x9", "name": "Halo Cuff", "price": "310"}})
        saved = widget.session.shortlist[0]
        assert saved.id == "x9"
        assert saved.title == "Halo Cuff"
        assert saved.price == 310

    @pytest.mark.asyncio
    async def test_share_lists_saved_pieces(self, widget, stocked_providers):
        await widget.handle_module_action("shortlist-product", {"product": make_product("p1", "Lumen Studs", 1250)})
        await widget.handle_module_action("shortlist-share")

        text = concierge_payloads(widget)[-1]
        assert "Lumen Studs: $1,250" in text
        assert "Sent from Aurora Concierge" in text
        # Sharing does not touch storage
        assert len(stocked_providers.calls["save_shortlist"]) == 1

    @pytest.mark.asyncio
    async def test_share_empty_shortlist(self, widget):
        await widget.handle_module_action("shortlist-share")
        assert "No items saved yet." in concierge_payloads(widget)[-1]

    @pytest.mark.asyncio
    async def test_copy_link(self, widget):
        await widget.handle_module_action("shortlist-product", {"product": make_product("p1")})
        await widget.handle_module_action("shortlist-product", {"product": make_product("p2")})
        await widget.handle_module_action("shortlist-copy-link")
        assert "http://localhost:3000/collections?shortlist=p1%2Cp2" in concierge_payloads(widget)[-1]

    @pytest.mark.asyncio
    async def test_view_links(self, widget):
        await widget.handle_module_action("shortlist-view-links", {"title": "Lumen Studs", "productId": "p1"})
        text = concierge_payloads(widget)[-1]
        assert text.startswith("Reopen Lumen Studs:")
        assert "http://localhost:3000/products/p1" in text
        assert "http://localhost:3000/collections?highlight=p1" in text


class TestTextUpdates:
    """Order timeline text-updates button."""

    @pytest.mark.asyncio
    async def test_subscribes_with_last_order(self, stocked_providers, session_with_order, config):
        widget = ConciergeWidget(stocked_providers, session=session_with_order, config=config)

        result = await widget.handle_module_action("text-updates", {}, SupportIntent.TRACK_ORDER)

        assert result is None
        details = stocked_providers.calls["subscribe_order_updates"][0]
        assert details == {
            "sessionId": "session-order",
            "originIntent": "track_order",
            "orderId": None,
            "orderNumber": "GG-10001",
        }
        assert stocked_providers.request_ids[-1].startswith("order-updates-")
        assert concierge_payloads(widget)[-1] == "Texts are on."

    @pytest.mark.asyncio
    async def test_default_copy_when_ack_is_empty(self, widget, stocked_providers):
        from concierge.models import ProviderAck

        with patch.object(stocked_providers, "subscribe_order_updates", return_value=ProviderAck()):
            await widget.handle_module_action("text-updates")
        assert concierge_payloads(widget)[-1] == TEXT_UPDATES_COPY

    @pytest.mark.asyncio
    async def test_failure_apologizes(self, widget, stocked_providers):
        stocked_providers.fail_on["subscribe_order_updates"] = RuntimeError("offline")
        await widget.handle_module_action("text-updates", {}, SupportIntent.TRACK_ORDER)
        assert concierge_payloads(widget)[-1] == TEXT_UPDATES_ERROR_COPY
        assert widget.messages[-1].intent == SupportIntent.TRACK_ORDER
