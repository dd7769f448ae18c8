"""Deterministic reply templates.

Used whenever the conversational AI is unavailable or fails, and for
every validation-error turn.
"""

from dataclasses import dataclass
from typing import Any

from dispatch_advisor.conversation.extractor import Intent, IntentType
from dispatch_advisor.conversation.order_flow import (
    NO_DELIVERY_OPTIONS,
    ORDER_SUBMISSION_FAILED,
    SERVICE_AREA_FAILED,
)
from dispatch_advisor.domain.conversation import ConversationContext
from dispatch_advisor.domain.pricing import (
    CustomerTier,
    PricingComparison,
    PricingModel,
    PricingRule,
    VOLUME_MIN_FREQUENCY,
)


@dataclass(frozen=True)
class PricingRecommendation:
    """One pricing model's outcome, as shown to the user."""

    model: PricingModel
    name: str
    savings: float
    savings_percent: float
    eligible: bool
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model.value,
            "name": self.name,
            "savings": round(self.savings, 2),
            "savings_percent": round(self.savings_percent, 2),
            "eligible": self.eligible,
            "reason": self.reason,
        }


def recommendations_from(comparison: PricingComparison) -> list[PricingRecommendation]:
    return [
        PricingRecommendation(
            model=result.model,
            name=result.name,
            savings=result.savings,
            savings_percent=result.discount_percent,
            eligible=result.eligible,
            reason=result.reason,
        )
        for result in comparison.pricing_models
    ]


def best_recommendation(
    recommendations: list[PricingRecommendation],
) -> PricingRecommendation | None:
    """Eligible recommendation with the largest savings; first one wins ties."""
    best = None
    for recommendation in recommendations:
        if not recommendation.eligible or recommendation.savings <= 0:
            continue
        if best is None or recommendation.savings > best.savings:
            best = recommendation
    return best


def _percent_off(rule: PricingRule) -> int:
    return round((1 - rule.base_price_multiplier) * 100)


# ============================================================================
# Intent Templates
# ============================================================================


def comparison_reply(recommendations: list[PricingRecommendation]) -> str:
    if not recommendations:
        return (
            "I'd be happy to help you compare pricing options! "
            "Could you tell me about your delivery needs?"
        )

    lines = ["Here are your pricing options:", ""]
    for recommendation in recommendations:
        if recommendation.eligible:
            lines.append(
                f"✅ **{recommendation.name}**: Save ${recommendation.savings:.2f} "
                f"({recommendation.savings_percent:.1f}%)"
            )
        else:
            lines.append(f"❌ **{recommendation.name}**: {recommendation.reason}")

    best = best_recommendation(recommendations)
    if best is not None:
        lines.append("")
        lines.append(f"🏆 **Best Option**: {best.name} with ${best.savings:.2f} savings!")
    return "\n".join(lines)


def recommendation_reply(recommendations: list[PricingRecommendation]) -> str:
    best = best_recommendation(recommendations)
    if best is None:
        return (
            "I need a bit more information to give you the best recommendation. "
            "Could you tell me about your delivery count and customer tier?"
        )
    return (
        f"Based on your profile, I recommend **{best.name}** for ${best.savings:.2f} "
        f"savings ({best.savings_percent:.1f}% off)! "
        "This gives you the best value for your delivery needs."
    )


def exploration_reply(recommendations: list[PricingRecommendation]) -> str:
    lines = ["Let's explore your pricing options! Here's what's available:", ""]

    eligible = [rec for rec in recommendations if rec.eligible]
    ineligible = [rec for rec in recommendations if not rec.eligible]

    if eligible:
        lines.append("**Available Options:**")
        lines.extend(f"• {rec.name}: ${rec.savings:.2f} savings" for rec in eligible)
    if ineligible:
        lines.append("")
        lines.append("**Potential Options:**")
        lines.extend(f"• {rec.name}: {rec.reason}" for rec in ineligible)
    return "\n".join(lines)


def delivery_requirements_reply(
    intent: Intent,
    multi_delivery_rule: PricingRule,
) -> str:
    count = intent.entities.get("delivery_count")
    if not count:
        return (
            "I'd love to help you with your delivery needs! "
            "How many deliveries are you planning?"
        )
    if int(count) >= multi_delivery_rule.volume_threshold:
        return (
            f"Great! {count} deliveries gives you access to our {multi_delivery_rule.name} "
            f"({_percent_off(multi_delivery_rule)}% off). "
            "Would you like to see all your pricing options?"
        )
    return (
        f"Got it, {count} delivery. Add a stop to qualify for our "
        f"{multi_delivery_rule.name} ({_percent_off(multi_delivery_rule)}% off "
        f"from {multi_delivery_rule.volume_threshold} deliveries)."
    )


def customer_tier_reply(intent: Intent, loyalty_rule: PricingRule) -> str:
    tier = intent.entities.get("customer_tier")
    if not tier:
        return (
            "What's your customer tier? "
            "This helps me find the best pricing options for you."
        )
    if loyalty_rule.loyalty_tier is not None and tier == loyalty_rule.loyalty_tier.value:
        return (
            f"Excellent! Your {tier} tier status gives you access to our "
            f"{loyalty_rule.name} ({_percent_off(loyalty_rule)}% off). "
            "Let me show you all available pricing options."
        )
    return (
        f"Thanks! As a {tier} tier customer you can still save with multi-delivery "
        "and volume pricing. Let me show you all available pricing options."
    )


def default_reply() -> str:
    return (
        "I'd be happy to help you with pricing! Could you tell me about your "
        "delivery needs? For example, how many deliveries do you need and "
        "what's your customer tier?"
    )


def intent_reply(
    intent: Intent,
    recommendations: list[PricingRecommendation],
    rules: dict[PricingModel, PricingRule],
) -> str:
    """Render the template for a recognized intent.

    Args:
        intent: Intent of the latest message.
        recommendations: Recommendations computed for this turn.
        rules: Pricing rules by model, used for discount wording.

    Returns:
        Reply text.
    """
    if intent.type == IntentType.COMPARE_PRICING:
        return comparison_reply(recommendations)
    if intent.type == IntentType.GET_RECOMMENDATION:
        return recommendation_reply(recommendations)
    if intent.type == IntentType.EXPLORE_OPTIONS:
        return exploration_reply(recommendations)
    if intent.type == IntentType.DELIVERY_REQUIREMENTS:
        return delivery_requirements_reply(intent, rules[PricingModel.MULTI_DELIVERY])
    if intent.type == IntentType.CUSTOMER_TIER:
        return customer_tier_reply(intent, rules[PricingModel.LOYALTY_DISCOUNT])
    return default_reply()


def next_questions(context: ConversationContext) -> list[str]:
    """Follow-up questions for information the advisor is still missing."""
    profile = context.customer_profile
    questions = []

    if profile.order_frequency == 0:
        questions.append("How many orders do you place per month?")
    if not context.delivery_history:
        questions.append("How many deliveries do you need for this order?")
    if profile.tier == CustomerTier.BRONZE:
        questions.append("Would you like to learn about our loyalty program?")
    if profile.order_frequency < VOLUME_MIN_FREQUENCY:
        questions.append("Are you interested in increasing your order frequency for better pricing?")

    return questions


# ============================================================================
# Validation Errors
# ============================================================================

ERROR_MESSAGES: tuple[tuple[str, str], ...] = (
    (
        NO_DELIVERY_OPTIONS,
        "Sorry, we don't currently deliver to this location. Please try a different address.",
    ),
    (
        SERVICE_AREA_FAILED,
        "We couldn't verify delivery coverage for this address right now, "
        "but I've saved it. You can continue with the order.",
    ),
    (
        ORDER_SUBMISSION_FAILED,
        "Sorry, we couldn't submit your order right now. "
        "Please say 'yes' to try again in a moment.",
    ),
    ("required", "Please provide a complete address with street, city, state, and zip code"),
    (
        "zip code",
        "Please provide a valid zip code (5 digits or 5+4 format like 12345 or 12345-6789)",
    ),
    ("state", "Please provide a valid 2-letter state code (e.g., CA, NY, TX)"),
    ("phone", "Please provide a valid phone number (at least 7 digits)"),
)

GENERIC_ERROR_MESSAGE = "Please check your address format and try again"


def error_reply(errors: list[str]) -> str:
    """Turn recorded validation errors into user-facing sentences.

    Each error maps to the first matching canned message; duplicates are
    dropped.
    """
    messages: list[str] = []
    for error in errors:
        message = GENERIC_ERROR_MESSAGE
        for marker, candidate in ERROR_MESSAGES:
            if marker in error:
                message = candidate
                break
        if message not in messages:
            messages.append(message)
    return "\n".join(messages)
