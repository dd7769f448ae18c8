"""Conversation context models.

The ConversationContext is the per-session aggregate mutated by every
message: customer profile, delivery and pricing history, the order being
collected, and recent turns. It is a pydantic model so a whole session can
be exported to JSON and imported back.
"""

import time
from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from dispatch_advisor.domain.booking import (
    AddressInput,
    DispatchOrder,
    DropOffInfoInput,
    LocationInput,
    PickupInfoInput,
    VehicleType,
)
from dispatch_advisor.domain.pricing import CustomerTier, PricingComparison, PricingModel
from dispatch_advisor.domain.state_machines import (
    OrderCreationStep,
    OrderQuestion,
    validate_step_transition,
)

# Turns kept for the AI history
MAX_HISTORY_TURNS = 20


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_session_id() -> str:
    """Generate a session ID of the form ``session_<unix-ts>_<suffix>``."""
    return f"session_{int(time.time())}_{uuid4().hex[:8]}"


# ============================================================================
# Customer
# ============================================================================


class CustomerProfile(BaseModel):
    """What the advisor knows about the customer."""

    tier: CustomerTier = CustomerTier.BRONZE
    order_frequency: int = Field(default=0, ge=0, description="Orders per month")
    current_delivery_count: int = Field(default=0, ge=0)
    average_order_value: float = Field(default=0.0, ge=0)
    preferred_vehicle: str | None = None
    special_needs: list[str] = Field(default_factory=list)
    is_bulk_order: bool = False


class DeliveryRequirement(BaseModel):
    """One stated delivery need."""

    count: int
    vehicle_type: str | None = None
    recorded_at: datetime = Field(default_factory=_utcnow)


class CustomerPreferences(BaseModel):
    """Soft preferences picked up during the conversation."""

    preferred_pricing_model: PricingModel | None = None
    budget_conscious: bool = False
    speed_priority: bool = False
    notes: list[str] = Field(default_factory=list)


class ConversationTurn(BaseModel):
    """A single message in the conversation."""

    role: Literal["user", "assistant"]
    content: str


# ============================================================================
# Order Creation
# ============================================================================


class StopInfo(BaseModel):
    """Pickup or drop-off details collected from the user."""

    business_name: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    address: AddressInput | None = None
    notes: str | None = None

    def to_pickup_input(self) -> PickupInfoInput:
        return PickupInfoInput(
            business_name=self.business_name or "",
            contact_name=self.contact_name,
            contact_phone_number=self.contact_phone,
            location=LocationInput(address=self.address),
            pickup_notes=self.notes,
        )

    def to_drop_off_input(self) -> DropOffInfoInput:
        return DropOffInfoInput(
            business_name=self.business_name or "",
            contact_name=self.contact_name,
            contact_phone_number=self.contact_phone,
            location=LocationInput(address=self.address),
            drop_off_notes=self.notes,
        )


class SchedulingInfo(BaseModel):
    """Requested pickup and delivery times."""

    pickup_date: str | None = None
    pickup_time: str | None = None
    delivery_date: str | None = None
    delivery_time: str | None = None
    asap: bool = False


class OrderCreationState(BaseModel):
    """Progress of the order being collected in a conversation."""

    in_progress: bool = False
    step: OrderCreationStep = OrderCreationStep.NOT_STARTED
    current_question: OrderQuestion | None = None
    pickup_info: StopInfo | None = None
    drop_offs: list[StopInfo] = Field(default_factory=list)
    vehicle_type: VehicleType | None = None
    capabilities: list[str] = Field(default_factory=list)
    scheduling: SchedulingInfo | None = None
    completed_fields: list[str] = Field(default_factory=list)
    missing_fields: list[str] = Field(default_factory=list)
    validation_errors: list[str] = Field(default_factory=list)
    submitted_order: DispatchOrder | None = None

    def advance_to(self, target: OrderCreationStep, session_id: str) -> None:
        """Move forward to the target step.

        Raises:
            InvalidStateTransitionError: If the move is not a forward step.
        """
        validate_step_transition(session_id, self.step, target)
        self.step = target

    def mark_completed(self, field_name: str) -> None:
        if field_name not in self.completed_fields:
            self.completed_fields.append(field_name)
        if field_name in self.missing_fields:
            self.missing_fields.remove(field_name)

    def reset(self) -> None:
        """Discard the collected order and return to not_started."""
        fresh = OrderCreationState()
        for name in type(self).model_fields:
            setattr(self, name, getattr(fresh, name))


# ============================================================================
# Conversation Context
# ============================================================================


class ConversationContext(BaseModel):
    """Per-session conversation state."""

    session_id: str = Field(default_factory=generate_session_id)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    customer_profile: CustomerProfile = Field(default_factory=CustomerProfile)
    delivery_history: list[DeliveryRequirement] = Field(default_factory=list)
    pricing_history: list[PricingComparison] = Field(default_factory=list)
    current_goal: str = ""
    preferences: CustomerPreferences = Field(default_factory=CustomerPreferences)
    order_creation: OrderCreationState = Field(default_factory=OrderCreationState)
    history: list[ConversationTurn] = Field(default_factory=list)

    def add_turn(self, role: Literal["user", "assistant"], content: str) -> None:
        """Append a turn, keeping only the most recent ones."""
        self.history.append(ConversationTurn(role=role, content=content))
        if len(self.history) > MAX_HISTORY_TURNS:
            del self.history[:-MAX_HISTORY_TURNS]

    def touch(self) -> None:
        self.updated_at = _utcnow()
