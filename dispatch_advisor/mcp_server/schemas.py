"""Input schemas for the MCP tools.

Structured arguments arrive as JSON-encoded strings. ``Json[...]`` fields
decode and validate them in one step, so malformed JSON, unknown enum
values, out-of-range counts and invalid addresses all surface as a single
pydantic ValidationError.
"""

from typing import Any

from pydantic import BaseModel, Field, Json, field_validator

from dispatch_advisor.conversation.validation import validate_address, validate_phone
from dispatch_advisor.domain.booking import (
    DeliveryInfoInput,
    DeliveryScenario,
    DropOffInfoInput,
    EstimateOption,
    LocationInput,
    PickupInfoInput,
    TagInput,
    VehicleType,
)
from dispatch_advisor.domain.conversation import ConversationContext, CustomerProfile
from dispatch_advisor.domain.pricing import CustomerTier


def _check_stop(location: LocationInput, phone: str | None, label: str) -> None:
    if location.address is None and location.geo_coordinates is None:
        raise ValueError(f"{label} location requires an address or geo coordinates")
    if location.address is not None:
        result = validate_address(location.address)
        if not result.valid:
            raise ValueError(f"{label} address validation failed: {result.message}")
    result = validate_phone(phone)
    if not result.valid:
        raise ValueError(f"{label} phone validation failed: {result.message}")


def _check_pickup(pickup: PickupInfoInput) -> PickupInfoInput:
    _check_stop(pickup.location, pickup.contact_phone_number, "pickup_info")
    return pickup


def _check_drop_offs(drop_offs: list[DropOffInfoInput]) -> list[DropOffInfoInput]:
    if not drop_offs:
        raise ValueError("at least one drop-off is required")
    for index, drop_off in enumerate(drop_offs):
        _check_stop(drop_off.location, drop_off.contact_phone_number, f"drop_offs[{index}]")
    return drop_offs


class CreateEstimateInput(BaseModel):
    """Input schema for create_estimate tool."""

    pickup_info: Json[PickupInfoInput] = Field(
        ...,
        description="JSON object: business_name, contact_name, contact_phone_number, "
        "location {address {street, city, state, zip_code, country}}.",
    )
    drop_offs: Json[list[DropOffInfoInput]] = Field(
        ...,
        description="JSON array of drop-off objects (same shape as pickup_info).",
    )
    vehicle_type: VehicleType = Field(
        ...,
        description="One of: pickup_truck, cargo_van, sprinter_van, box_truck.",
    )
    add_ons: Json[list[str]] | None = Field(
        None,
        description="Optional JSON array of add-on names.",
    )
    dedicated_vehicle: bool | None = Field(
        None,
        description="Whether to request a dedicated vehicle.",
    )
    organization_druid: str | None = Field(
        None,
        description="Optional organization identifier.",
    )

    check_pickup = field_validator("pickup_info")(_check_pickup)
    check_drop_offs = field_validator("drop_offs")(_check_drop_offs)


class CreateOrderInput(BaseModel):
    """Input schema for create_order tool."""

    delivery_info: Json[DeliveryInfoInput] = Field(
        ...,
        description="JSON object: service_type (from the estimate), organization_druid.",
    )
    pickup_info: Json[PickupInfoInput] = Field(
        ...,
        description="JSON pickup object, as for create_estimate.",
    )
    drop_offs: Json[list[DropOffInfoInput]] = Field(
        ...,
        description="JSON array of drop-off objects, as for create_estimate.",
    )
    tags: Json[list[TagInput]] | None = Field(
        None,
        description="Optional JSON array of {name, value} tags.",
    )

    check_pickup = field_validator("pickup_info")(_check_pickup)
    check_drop_offs = field_validator("drop_offs")(_check_drop_offs)


class ComparePricingModelsInput(BaseModel):
    """Input schema for compare_pricing_models tool."""

    original_estimate: Json[EstimateOption] = Field(
        ...,
        description="JSON estimate option; estimatedOrderCost is the price to compare.",
    )
    delivery_count: int = Field(
        default=1,
        ge=1,
        le=100,
        description="Number of deliveries in the order (1-100).",
    )
    customer_tier: CustomerTier = Field(
        default=CustomerTier.BRONZE,
        description="Customer tier: bronze, silver or gold.",
    )
    order_frequency: int = Field(
        default=1,
        ge=1,
        le=100,
        description="Orders placed per month (1-100).",
    )
    total_order_value: float | None = Field(
        None,
        ge=0,
        description="Total order value; defaults to the estimate cost.",
    )
    is_bulk_order: bool = Field(
        default=False,
        description="Whether the order is flagged as a bulk order.",
    )

    @field_validator("original_estimate")
    @classmethod
    def non_negative_cost(cls, value: EstimateOption) -> EstimateOption:
        if value.estimated_order_cost < 0:
            raise ValueError("estimatedOrderCost must not be negative")
        return value


class SelectDeliveryOptionInput(BaseModel):
    """Input schema for select_delivery_option tool."""

    estimate_response: Json[dict[str, Any]] = Field(
        ...,
        description="JSON create_estimate response (full GraphQL envelope or estimate object).",
    )
    delivery_scenario: DeliveryScenario = Field(
        ...,
        description="fastest, asap or urgent pick the first option; "
        "cheapest, economy or sometime_today pick the last.",
    )


class ConversationalPricingAdvisorInput(BaseModel):
    """Input schema for conversational_pricing_advisor tool."""

    user_message: str = Field(
        ...,
        min_length=1,
        description="The customer's message.",
    )
    session_id: str | None = Field(
        None,
        description="Optional session ID returned by an earlier call.",
    )
    conversation_context: Json[ConversationContext] | None = Field(
        None,
        description="Optional JSON conversation context from an earlier call.",
    )
    customer_profile: Json[CustomerProfile] | None = Field(
        None,
        description="Optional JSON customer profile (tier, order_frequency, ...).",
    )
