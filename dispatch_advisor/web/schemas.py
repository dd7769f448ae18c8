"""API schemas for the web chat front-end.

Pydantic models for request/response validation and serialization.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from dispatch_advisor.conversation.responses import PricingRecommendation, best_recommendation
from dispatch_advisor.domain.conversation import ConversationContext, StopInfo


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


# ============================================================================
# Session Schemas
# ============================================================================


class SessionResponse(BaseModel):
    """Newly created chat session."""

    session_id: str
    created_at: datetime


class SessionStatsResponse(BaseModel):
    """Session store statistics."""

    total_sessions: int
    tier_distribution: dict[str, int]
    goal_distribution: dict[str, int]


# ============================================================================
# Chat Schemas
# ============================================================================


class ChatRequest(BaseModel):
    """Chat message from the user."""

    session_id: str | None = Field(
        default=None,
        description="Session to continue; a new session is created when omitted",
    )
    message: str = Field(..., min_length=1, max_length=4000, description="User message")


class RecommendationSchema(BaseModel):
    """Pricing model outcome."""

    model: str
    name: str
    savings: float
    savings_percent: float
    eligible: bool
    reason: str = ""


class StopSchema(BaseModel):
    """Pickup or delivery location collected so far."""

    business_name: str = ""
    address: str = ""
    contact_name: str = ""
    phone_number: str = ""


class OrderInfoSchema(BaseModel):
    """Order creation progress."""

    in_progress: bool
    step: str
    current_question: str | None = None
    pickup_info: StopSchema | None = None
    deliveries: list[StopSchema] = Field(default_factory=list)
    completed_fields: list[str] = Field(default_factory=list)
    missing_fields: list[str] = Field(default_factory=list)
    order_id: str | None = None
    tracking_number: str | None = None


class PricingInfoSchema(BaseModel):
    """Pricing recommendations with the best option highlighted."""

    recommendations: list[RecommendationSchema]
    best_option: RecommendationSchema | None = None
    total_savings: float = 0.0


class ChatResponse(BaseModel):
    """Reply to a chat message."""

    session_id: str
    message: str
    recommendations: list[RecommendationSchema] = Field(default_factory=list)
    next_questions: list[str] = Field(default_factory=list)
    context: dict[str, Any]
    order_info: OrderInfoSchema | None = None
    pricing_info: PricingInfoSchema | None = None


# ============================================================================
# Converters
# ============================================================================


def recommendation_to_schema(recommendation: PricingRecommendation) -> RecommendationSchema:
    return RecommendationSchema(**recommendation.to_dict())


def stop_to_schema(stop: StopInfo) -> StopSchema:
    return StopSchema(
        business_name=stop.business_name or "",
        address=stop.address.one_line() if stop.address else "",
        contact_name=stop.contact_name or "",
        phone_number=stop.contact_phone or "",
    )


def order_info_from(context: ConversationContext) -> OrderInfoSchema | None:
    """Summarize order progress; None when no order was ever started."""
    state = context.order_creation
    if not state.in_progress and state.submitted_order is None:
        return None

    order = state.submitted_order
    return OrderInfoSchema(
        in_progress=state.in_progress,
        step=state.step.value,
        current_question=state.current_question.value if state.current_question else None,
        pickup_info=stop_to_schema(state.pickup_info) if state.pickup_info else None,
        deliveries=[stop_to_schema(drop_off) for drop_off in state.drop_offs],
        completed_fields=list(state.completed_fields),
        missing_fields=list(state.missing_fields),
        order_id=order.id if order else None,
        tracking_number=order.tracking_number if order else None,
    )


def pricing_info_from(
    recommendations: list[PricingRecommendation],
) -> PricingInfoSchema | None:
    if not recommendations:
        return None

    best = best_recommendation(recommendations)
    return PricingInfoSchema(
        recommendations=[recommendation_to_schema(rec) for rec in recommendations],
        best_option=recommendation_to_schema(best) if best else None,
        total_savings=round(best.savings, 2) if best else 0.0,
    )
