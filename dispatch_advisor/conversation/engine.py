"""Hybrid conversation engine.

Every turn updates the context locally: intent extraction, profile updates,
order-creation progress and pricing. Reply prose comes from the
conversational AI when it is configured, and from local templates
otherwise. The AI never supplies prices or state changes.
"""

from dataclasses import dataclass, field
from typing import Any

import structlog

from dispatch_advisor.conversation.context import GOAL_INTENTS, ContextManager
from dispatch_advisor.conversation.extractor import Intent, IntentExtractor
from dispatch_advisor.conversation.order_flow import OrderCreationFlow
from dispatch_advisor.conversation.prompts import build_system_prompt
from dispatch_advisor.conversation.responses import (
    PricingRecommendation,
    error_reply,
    intent_reply,
    next_questions,
    recommendations_from,
)
from dispatch_advisor.domain.conversation import ConversationContext, ConversationTurn
from dispatch_advisor.domain.pricing import PricingContext, PricingEngine
from dispatch_advisor.domain.state_machines import OrderCreationStep
from dispatch_advisor.infrastructure.ai_client import AIClientError, GeminiConversationClient
from dispatch_advisor.infrastructure.dispatch_client import BookingClient

logger = structlog.get_logger()

# Cost used for conversational recommendations before a real estimate exists
SAMPLE_ESTIMATE_COST = 50.0

# Steps whose answers are business names and addresses, not profile facts
STOP_DETAIL_STEPS = {OrderCreationStep.PICKUP, OrderCreationStep.DELIVERIES}


@dataclass
class ConversationResponse:
    """Result of processing one message."""

    message: str
    context: ConversationContext
    recommendations: list[PricingRecommendation] = field(default_factory=list)
    next_questions: list[str] = field(default_factory=list)
    intent: Intent | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "recommendations": [rec.to_dict() for rec in self.recommendations],
            "next_questions": self.next_questions,
            "intent": self.intent.type.value if self.intent else None,
            "context": self.context.model_dump(mode="json"),
        }


def pricing_context_for(context: ConversationContext) -> PricingContext:
    """Snapshot the pricing inputs of a conversation."""
    profile = context.customer_profile
    return PricingContext(
        delivery_count=max(profile.current_delivery_count, len(context.order_creation.drop_offs)),
        customer_tier=profile.tier,
        order_frequency=profile.order_frequency,
        total_order_value=profile.average_order_value,
        is_bulk_order=profile.is_bulk_order,
    )


class ConversationEngine:
    """Processes user messages into replies, recommendations and context.

    Example usage:
        engine = ConversationEngine(booking_client=MockDispatchClient())
        response = await engine.process_message("I need 3 deliveries")
        print(response.message)
    """

    def __init__(
        self,
        booking_client: BookingClient,
        ai_client: GeminiConversationClient | None = None,
        pricing_engine: PricingEngine | None = None,
        extractor: IntentExtractor | None = None,
        context_manager: ContextManager | None = None,
        organization_druid: str | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            booking_client: Booking client for service-area checks and orders.
            ai_client: Optional AI client for reply prose.
            pricing_engine: Pricing engine; defaults to the standard rule set.
            extractor: Intent extractor.
            context_manager: Applies intents to contexts.
            organization_druid: Organization attached to submitted orders.
        """
        self.ai_client = ai_client
        self.pricing_engine = pricing_engine or PricingEngine()
        self.extractor = extractor or IntentExtractor()
        self.context_manager = context_manager or ContextManager()
        self.order_flow = OrderCreationFlow(
            booking_client=booking_client,
            extractor=self.extractor,
            organization_druid=organization_druid,
        )

    def is_ai_available(self) -> bool:
        return self.ai_client is not None and self.ai_client.is_available

    def engine_info(self) -> dict[str, Any]:
        """Describe the engine mode and its features."""
        available = self.is_ai_available()
        info: dict[str, Any] = {
            "engine_type": "ai_hybrid",
            "ai_available": available,
            "fallback_mode": not available,
        }
        if available:
            info["ai_model"] = self.ai_client.model_name
            info["features"] = [
                "natural_language_understanding",
                "contextual_responses",
                "intelligent_recommendations",
                "conversational_flow",
            ]
        else:
            info["features"] = [
                "rule_based_processing",
                "pattern_matching",
                "basic_intent_recognition",
            ]
        return info

    async def process_message(
        self,
        text: str,
        context: ConversationContext | None = None,
        history: list[ConversationTurn] | None = None,
    ) -> ConversationResponse:
        """Process one user message.

        Args:
            text: User message.
            context: Session context, or None to start a new session.
            history: Earlier turns for the AI; defaults to the context's own.

        Returns:
            ConversationResponse with the updated context.
        """
        intent = self.extractor.extract_intent(text)
        context = self.context_manager.update(
            context,
            intent,
            apply_entities=not self._is_stop_details(text, context),
        )
        if history is None:
            history = list(context.history)

        flow_reply = await self.order_flow.handle(text, context)
        state = context.order_creation

        if state.validation_errors:
            message = error_reply(state.validation_errors)
            logger.info(
                "Validation errors reported",
                session_id=context.session_id,
                errors=state.validation_errors,
            )
            state.validation_errors = []
            return self._respond(text, message, context, intent=intent)

        pricing_context = pricing_context_for(context)
        comparison = self.pricing_engine.compare_all(SAMPLE_ESTIMATE_COST, pricing_context)
        if intent.type in GOAL_INTENTS:
            context.pricing_history.append(comparison)
        recommendations = recommendations_from(comparison)

        if flow_reply is not None:
            message = flow_reply
        else:
            message = await self._generate_text(text, intent, recommendations, context, history)

        return self._respond(
            text,
            message,
            context,
            intent=intent,
            recommendations=recommendations,
            questions=[] if state.in_progress else next_questions(context),
        )

    def _is_stop_details(self, text: str, context: ConversationContext | None) -> bool:
        """Check if a message answers a pickup or drop-off question."""
        if context is not None and context.order_creation.step in STOP_DETAIL_STEPS:
            return True
        return self.extractor.looks_like_address_block(text)

    async def _generate_text(
        self,
        text: str,
        intent: Intent,
        recommendations: list[PricingRecommendation],
        context: ConversationContext,
        history: list[ConversationTurn],
    ) -> str:
        if self.is_ai_available():
            system_prompt = build_system_prompt(
                context,
                pricing_context_for(context),
                self.pricing_engine.rules,
            )
            try:
                return await self.ai_client.generate_reply(system_prompt, text, history)
            except AIClientError as e:
                logger.warning(
                    "AI reply failed, using template",
                    session_id=context.session_id,
                    error=e.message,
                )

        rules = {rule.model: rule for rule in self.pricing_engine.rules}
        return intent_reply(intent, recommendations, rules)

    @staticmethod
    def _respond(
        text: str,
        message: str,
        context: ConversationContext,
        intent: Intent,
        recommendations: list[PricingRecommendation] | None = None,
        questions: list[str] | None = None,
    ) -> ConversationResponse:
        context.add_turn("user", text)
        context.add_turn("assistant", message)
        context.touch()
        return ConversationResponse(
            message=message,
            context=context,
            recommendations=recommendations or [],
            next_questions=questions or [],
            intent=intent,
        )
