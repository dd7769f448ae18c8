"""Domain layer - pricing rules, booking schemas, conversation state.

- **Pricing**: the discount rule set and comparison engine
- **Booking**: estimate/order inputs and responses of the booking API
- **Conversation**: per-session context and the order being collected
- **State Machines**: forward-only order-creation steps
- **Exceptions**: domain-specific errors

Example usage:
    from dispatch_advisor.domain import PricingContext, PricingEngine, CustomerTier

    engine = PricingEngine()
    comparison = engine.compare_all(
        100.0,
        PricingContext(delivery_count=3, customer_tier=CustomerTier.SILVER),
    )
    print(comparison.best_option.name)  # Multi-Delivery Discount
"""

from dispatch_advisor.domain.booking import (
    AddressInput,
    DeliveryInfoInput,
    DeliveryScenario,
    DispatchOrder,
    DropOffInfoInput,
    Estimate,
    EstimateOption,
    LocationInput,
    PickupInfoInput,
    TagInput,
    VehicleType,
)
from dispatch_advisor.domain.conversation import (
    ConversationContext,
    ConversationTurn,
    CustomerPreferences,
    CustomerProfile,
    DeliveryRequirement,
    OrderCreationState,
    SchedulingInfo,
    StopInfo,
)
from dispatch_advisor.domain.exceptions import (
    DomainError,
    InvalidSessionDataError,
    InvalidStateTransitionError,
    NoEstimateOptionsError,
    SessionNotFoundError,
)
from dispatch_advisor.domain.pricing import (
    DEFAULT_PRICING_RULES,
    CustomerTier,
    PricingComparison,
    PricingContext,
    PricingEngine,
    PricingModel,
    PricingResult,
    PricingRule,
)
from dispatch_advisor.domain.state_machines import (
    PICKUP_QUESTIONS,
    OrderCreationStep,
    OrderQuestion,
    validate_step_transition,
)

__all__ = [
    # Booking
    "AddressInput",
    "DeliveryInfoInput",
    "DeliveryScenario",
    "DispatchOrder",
    "DropOffInfoInput",
    "Estimate",
    "EstimateOption",
    "LocationInput",
    "PickupInfoInput",
    "TagInput",
    "VehicleType",
    # Conversation
    "ConversationContext",
    "ConversationTurn",
    "CustomerPreferences",
    "CustomerProfile",
    "DeliveryRequirement",
    "OrderCreationState",
    "SchedulingInfo",
    "StopInfo",
    # Exceptions
    "DomainError",
    "InvalidSessionDataError",
    "InvalidStateTransitionError",
    "NoEstimateOptionsError",
    "SessionNotFoundError",
    # Pricing
    "DEFAULT_PRICING_RULES",
    "CustomerTier",
    "PricingComparison",
    "PricingContext",
    "PricingEngine",
    "PricingModel",
    "PricingResult",
    "PricingRule",
    # State machines
    "PICKUP_QUESTIONS",
    "OrderCreationStep",
    "OrderQuestion",
    "validate_step_transition",
]
