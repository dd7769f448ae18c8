"""Tests for the hybrid conversation engine."""

from unittest.mock import MagicMock

import pytest

from dispatch_advisor.conversation.engine import (
    ConversationEngine,
    ConversationResponse,
    pricing_context_for,
)
from dispatch_advisor.conversation.extractor import IntentType
from dispatch_advisor.domain import (
    ConversationContext,
    CustomerTier,
    Estimate,
    OrderCreationStep,
    PricingModel,
    StopInfo,
)
from dispatch_advisor.infrastructure.ai_client import AIClientError, GeminiConversationClient


def _recommendation(response: ConversationResponse, model: PricingModel):
    return next(rec for rec in response.recommendations if rec.model == model)


class TestRuleBasedReplies:
    """Engine behavior without an AI client."""

    @pytest.mark.asyncio
    async def test_delivery_count_drives_recommendations(self, engine: ConversationEngine) -> None:
        """A stated delivery count makes multi-delivery pricing eligible."""
        response = await engine.process_message("I need 3 deliveries")

        assert response.context.customer_profile.current_delivery_count == 3
        assert response.intent.type == IntentType.DELIVERY_REQUIREMENTS
        assert _recommendation(response, PricingModel.MULTI_DELIVERY).eligible is True
        assert _recommendation(response, PricingModel.VOLUME_DISCOUNT).eligible is False
        assert "3 deliveries" in response.message

    @pytest.mark.asyncio
    async def test_address_starts_order(self, engine: ConversationEngine) -> None:
        """An address-shaped first message starts order creation."""
        response = await engine.process_message("123 Main St, San Francisco, CA, 94105")

        state = response.context.order_creation
        assert state.in_progress is True
        assert state.step == OrderCreationStep.PICKUP
        assert state.pickup_info.address.state == "CA"
        assert response.next_questions == []
        assert "business name" in response.message

    @pytest.mark.asyncio
    async def test_ai_unavailable_uses_templates(self, mock_booking_client: MagicMock) -> None:
        """Without credentials the engine still answers with correct recommendations."""
        engine = ConversationEngine(
            booking_client=mock_booking_client,
            ai_client=GeminiConversationClient(api_key=""),
        )

        response = await engine.process_message("What's the best pricing for 4 deliveries?")

        assert engine.is_ai_available() is False
        assert response.message
        assert _recommendation(response, PricingModel.MULTI_DELIVERY).eligible is True

    @pytest.mark.asyncio
    async def test_context_carries_across_turns(self, engine: ConversationEngine) -> None:
        first = await engine.process_message("I'm a gold tier customer")
        second = await engine.process_message("compare pricing", first.context)

        assert second.context is first.context
        assert _recommendation(second, PricingModel.LOYALTY_DISCOUNT).eligible is True
        assert [turn.role for turn in second.context.history] == [
            "user",
            "assistant",
            "user",
            "assistant",
        ]

    @pytest.mark.asyncio
    async def test_pricing_history_for_pricing_goals(self, engine: ConversationEngine) -> None:
        response = await engine.process_message("compare pricing")
        assert len(response.context.pricing_history) == 1
        assert response.context.current_goal == "compare_pricing"

        response = await engine.process_message("hello", response.context)
        assert len(response.context.pricing_history) == 1

    @pytest.mark.asyncio
    async def test_next_questions_for_new_customer(self, engine: ConversationEngine) -> None:
        response = await engine.process_message("hello")
        assert "How many orders do you place per month?" in response.next_questions


class TestStopDetailsLeaveProfileAlone:
    """Business names in pickup and drop-off details are not profile facts."""

    GOLD_PICKUP = "Gold Coast Bulk Supply, Jane Doe, 123 Main St, San Francisco, CA 94105"

    @pytest.mark.asyncio
    async def test_pickup_answer(self, engine: ConversationEngine) -> None:
        first = await engine.process_message("create order")

        response = await engine.process_message(self.GOLD_PICKUP, first.context)

        profile = response.context.customer_profile
        assert response.context.order_creation.pickup_info.business_name == "Gold Coast Bulk Supply"
        assert profile.tier == CustomerTier.BRONZE
        assert profile.is_bulk_order is False
        assert _recommendation(response, PricingModel.LOYALTY_DISCOUNT).eligible is False

    @pytest.mark.asyncio
    async def test_address_block_starting_order(self, engine: ConversationEngine) -> None:
        response = await engine.process_message(self.GOLD_PICKUP)

        assert response.context.order_creation.in_progress is True
        assert response.context.customer_profile.tier == CustomerTier.BRONZE

    @pytest.mark.asyncio
    async def test_profile_updates_resume_after_stops(
        self, engine: ConversationEngine, pickup_block: str, drop_off_block: str
    ) -> None:
        """Outside the pickup and delivery steps, stated facts still count."""
        response = await engine.process_message("create order")
        context = response.context
        for message in (pickup_block, drop_off_block, "done"):
            response = await engine.process_message(message, context)

        response = await engine.process_message("I'm a gold tier customer", context)

        assert context.order_creation.step == OrderCreationStep.VEHICLE
        assert response.context.customer_profile.tier == CustomerTier.GOLD


class TestValidationErrors:
    """Validation errors short-circuit the turn."""

    @pytest.mark.asyncio
    async def test_error_reply_and_cleared_errors(self, engine: ConversationEngine) -> None:
        response = await engine.process_message(
            "Acme, Jane, 123 Main St, Springfield, Narnia, 123"
        )

        assert "valid zip code" in response.message
        assert response.recommendations == []
        assert response.context.order_creation.validation_errors == []
        assert response.context.order_creation.in_progress is False

    @pytest.mark.asyncio
    async def test_service_area_rejection(
        self,
        engine: ConversationEngine,
        mock_booking_client: MagicMock,
        pickup_block: str,
        drop_off_block: str,
    ) -> None:
        """A drop-off with no delivery options is rejected with a clear message."""
        first = await engine.process_message(pickup_block)
        mock_booking_client.create_estimate.return_value = Estimate()

        response = await engine.process_message(drop_off_block, first.context)

        assert "don't currently deliver" in response.message
        assert response.context.order_creation.drop_offs == []
        assert response.context.order_creation.validation_errors == []


class TestAIReplies:
    """Engine behavior with an AI client."""

    @pytest.mark.asyncio
    async def test_ai_supplies_prose_only(
        self, mock_booking_client: MagicMock, mock_ai_client: MagicMock
    ) -> None:
        engine = ConversationEngine(booking_client=mock_booking_client, ai_client=mock_ai_client)

        response = await engine.process_message("I need 3 deliveries")

        assert response.message == "Here is what I suggest."
        assert _recommendation(response, PricingModel.MULTI_DELIVERY).eligible is True
        system_prompt, user_message, history = mock_ai_client.generate_reply.call_args.args
        assert "- Delivery Count: 3" in system_prompt
        assert user_message == "I need 3 deliveries"
        assert history == []

    @pytest.mark.asyncio
    async def test_ai_failure_falls_back(
        self, mock_booking_client: MagicMock, mock_ai_client: MagicMock
    ) -> None:
        """AI errors never reach the user."""
        mock_ai_client.generate_reply.side_effect = AIClientError("quota exceeded")
        engine = ConversationEngine(booking_client=mock_booking_client, ai_client=mock_ai_client)

        response = await engine.process_message("I need 3 deliveries")

        assert "quota" not in response.message
        assert "3 deliveries" in response.message

    @pytest.mark.asyncio
    async def test_order_prompts_bypass_ai(
        self, mock_booking_client: MagicMock, mock_ai_client: MagicMock
    ) -> None:
        engine = ConversationEngine(booking_client=mock_booking_client, ai_client=mock_ai_client)

        response = await engine.process_message("create order")

        assert "business name" in response.message
        mock_ai_client.generate_reply.assert_not_called()

    def test_engine_info(
        self, mock_booking_client: MagicMock, mock_ai_client: MagicMock
    ) -> None:
        engine = ConversationEngine(booking_client=mock_booking_client, ai_client=mock_ai_client)

        info = engine.engine_info()

        assert info["engine_type"] == "ai_hybrid"
        assert info["ai_available"] is True
        assert info["fallback_mode"] is False
        assert info["ai_model"] == "gemini-test"

    def test_engine_info_fallback(self, engine: ConversationEngine) -> None:
        info = engine.engine_info()
        assert info["ai_available"] is False
        assert info["fallback_mode"] is True
        assert "rule_based_processing" in info["features"]


class TestFullOrder:
    """A complete order conversation."""

    @pytest.mark.asyncio
    async def test_order_to_completion(
        self,
        engine: ConversationEngine,
        mock_booking_client: MagicMock,
        pickup_block: str,
        drop_off_block: str,
    ) -> None:
        response = await engine.process_message("create order")
        context = response.context
        for message in (pickup_block, drop_off_block, "done", "sprinter", "none", "asap"):
            response = await engine.process_message(message, context)

        assert context.order_creation.step == OrderCreationStep.REVIEW
        assert "**Order Summary**" in response.message

        response = await engine.process_message("yes, create it", context)

        assert "Order created successfully!" in response.message
        assert context.order_creation.in_progress is False
        assert context.order_creation.submitted_order.id == "ORD-100"
        mock_booking_client.create_order.assert_awaited_once()


class TestPricingContextFor:
    """Tests for the pricing snapshot."""

    def test_uses_drop_off_count(self) -> None:
        """Collected drop-offs count as deliveries."""
        context = ConversationContext()
        context.customer_profile.current_delivery_count = 1
        context.order_creation.drop_offs = [StopInfo(), StopInfo(), StopInfo()]

        assert pricing_context_for(context).delivery_count == 3
