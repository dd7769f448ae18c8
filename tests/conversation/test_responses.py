"""Tests for reply templates, error messages and the system prompt."""

import pytest

from dispatch_advisor.conversation.extractor import Intent, IntentType
from dispatch_advisor.conversation.order_flow import (
    NO_DELIVERY_OPTIONS,
    PICKUP_VALIDATION_FAILED,
    SERVICE_AREA_FAILED,
)
from dispatch_advisor.conversation.prompts import build_system_prompt, format_order_information
from dispatch_advisor.conversation.responses import (
    GENERIC_ERROR_MESSAGE,
    PricingRecommendation,
    best_recommendation,
    error_reply,
    intent_reply,
    next_questions,
    recommendations_from,
)
from dispatch_advisor.domain import (
    AddressInput,
    ConversationContext,
    CustomerTier,
    DeliveryRequirement,
    PricingContext,
    PricingEngine,
    PricingModel,
    StopInfo,
)


@pytest.fixture
def pricing_engine() -> PricingEngine:
    return PricingEngine()


@pytest.fixture
def rules(pricing_engine: PricingEngine) -> dict:
    return {rule.model: rule for rule in pricing_engine.rules}


@pytest.fixture
def multi_delivery_recommendations(pricing_engine: PricingEngine) -> list[PricingRecommendation]:
    comparison = pricing_engine.compare_all(50.0, PricingContext(delivery_count=3))
    return recommendations_from(comparison)


class TestRecommendations:
    """Tests for recommendation helpers."""

    def test_one_per_rule(self, multi_delivery_recommendations) -> None:
        assert [rec.model for rec in multi_delivery_recommendations] == list(PricingModel)

    def test_best_recommendation(self, multi_delivery_recommendations) -> None:
        best = best_recommendation(multi_delivery_recommendations)
        assert best.model == PricingModel.MULTI_DELIVERY
        assert best.savings == pytest.approx(50.0 - 50.0 * 0.85 * 0.98)

    def test_no_savings_means_no_best(self, pricing_engine: PricingEngine) -> None:
        """Standard pricing alone is not a recommendation."""
        recs = recommendations_from(pricing_engine.compare_all(50.0, PricingContext(delivery_count=1)))
        assert best_recommendation(recs) is None


class TestIntentReplies:
    """Tests for intent templates."""

    def test_comparison_reply(self, multi_delivery_recommendations, rules) -> None:
        reply = intent_reply(
            Intent(type=IntentType.COMPARE_PRICING), multi_delivery_recommendations, rules
        )
        assert "✅ **Multi-Delivery Discount**" in reply
        assert "❌ **Loyalty Discount**: Requires gold tier" in reply
        assert "🏆 **Best Option**: Multi-Delivery Discount" in reply

    def test_recommendation_reply(self, multi_delivery_recommendations, rules) -> None:
        reply = intent_reply(
            Intent(type=IntentType.GET_RECOMMENDATION), multi_delivery_recommendations, rules
        )
        assert "I recommend **Multi-Delivery Discount**" in reply

    def test_recommendation_reply_needs_information(self, pricing_engine, rules) -> None:
        recs = recommendations_from(pricing_engine.compare_all(50.0, PricingContext()))
        reply = intent_reply(Intent(type=IntentType.GET_RECOMMENDATION), recs, rules)
        assert "more information" in reply

    def test_exploration_reply(self, multi_delivery_recommendations, rules) -> None:
        reply = intent_reply(
            Intent(type=IntentType.EXPLORE_OPTIONS), multi_delivery_recommendations, rules
        )
        assert "**Available Options:**" in reply
        assert "**Potential Options:**" in reply

    def test_delivery_requirements_reply(self, rules) -> None:
        intent = Intent(type=IntentType.DELIVERY_REQUIREMENTS, entities={"delivery_count": "3"})
        reply = intent_reply(intent, [], rules)
        assert "3 deliveries" in reply
        assert "15% off" in reply

    def test_delivery_requirements_without_count(self, rules) -> None:
        reply = intent_reply(Intent(type=IntentType.DELIVERY_REQUIREMENTS), [], rules)
        assert "How many deliveries" in reply

    def test_gold_tier_reply_mentions_loyalty(self, rules) -> None:
        intent = Intent(type=IntentType.CUSTOMER_TIER, entities={"customer_tier": "gold"})
        reply = intent_reply(intent, [], rules)
        assert "Loyalty Discount" in reply
        assert "10% off" in reply

    def test_silver_tier_reply_has_no_loyalty(self, rules) -> None:
        intent = Intent(type=IntentType.CUSTOMER_TIER, entities={"customer_tier": "silver"})
        reply = intent_reply(intent, [], rules)
        assert "Loyalty Discount" not in reply

    def test_default_reply(self, rules) -> None:
        reply = intent_reply(Intent(type=IntentType.GENERAL_INQUIRY), [], rules)
        assert "how many deliveries" in reply


class TestNextQuestions:
    """Tests for follow-up questions."""

    def test_new_context(self) -> None:
        questions = next_questions(ConversationContext())
        assert len(questions) == 4

    def test_known_customer(self) -> None:
        context = ConversationContext()
        context.customer_profile.order_frequency = 5
        context.customer_profile.tier = CustomerTier.GOLD
        context.delivery_history.append(DeliveryRequirement(count=2))

        assert next_questions(context) == []


class TestErrorReply:
    """Tests for mapping validation errors to user messages."""

    def test_no_delivery_options(self) -> None:
        assert "don't currently deliver" in error_reply([NO_DELIVERY_OPTIONS])

    def test_service_area_failure(self) -> None:
        reply = error_reply([f"{SERVICE_AREA_FAILED}: timeout"])
        assert "couldn't verify delivery coverage" in reply

    def test_zip_code(self) -> None:
        reply = error_reply([f"{PICKUP_VALIDATION_FAILED}: Invalid zip code format"])
        assert "valid zip code" in reply

    def test_state(self) -> None:
        reply = error_reply([f"{PICKUP_VALIDATION_FAILED}: Invalid state format"])
        assert "2-letter state code" in reply

    def test_required(self) -> None:
        reply = error_reply([f"{PICKUP_VALIDATION_FAILED}: street is required"])
        assert "complete address" in reply

    def test_required_wins_over_field_names(self) -> None:
        """Missing fields named city and state ask for a complete address."""
        reply = error_reply([f"{PICKUP_VALIDATION_FAILED}: city is required; state is required"])
        assert "complete address" in reply
        assert "2-letter state code" not in reply

    def test_unknown_error(self) -> None:
        assert error_reply(["something odd"]) == GENERIC_ERROR_MESSAGE

    def test_duplicates_dropped(self) -> None:
        reply = error_reply([NO_DELIVERY_OPTIONS, NO_DELIVERY_OPTIONS])
        assert reply.count("don't currently deliver") == 1


class TestSystemPrompt:
    """Tests for the AI system prompt."""

    def test_contains_pricing_table_and_context(self, pricing_engine: PricingEngine) -> None:
        context = ConversationContext()
        pricing_context = PricingContext(delivery_count=3, customer_tier=CustomerTier.GOLD)

        prompt = build_system_prompt(context, pricing_context, pricing_engine.rules)

        assert "- Multi-Delivery Discount: 15% off (2+ deliveries)" in prompt
        assert "- Loyalty Discount: 10% off (gold tier)" in prompt
        assert "- Delivery Count: 3" in prompt
        assert "- Customer Tier: gold" in prompt
        assert "- Current Step: not_started" in prompt
        assert "- No order in progress" in prompt
        assert "Ask ONE question at a time" in prompt

    def test_order_information(self) -> None:
        context = ConversationContext()
        state = context.order_creation
        state.in_progress = True
        state.pickup_info = StopInfo(
            business_name="Acme",
            address=AddressInput(street="1 Main St", city="Austin", state="TX", zip_code="78701"),
        )

        info = format_order_information(context)

        assert "- Pickup Location:" in info
        assert "  - Business: Acme" in info
        assert "  - Address: 1 Main St, Austin, TX 78701" in info
        assert "- Delivery Locations: None collected yet" in info
