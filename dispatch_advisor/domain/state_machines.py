"""State machine for conversational order creation.

The order-creation flow collects a delivery order one field at a time.
Steps only move forward; leaving the completed state requires an
explicit reset of the order state.
"""

from enum import Enum

from dispatch_advisor.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Order Creation State Machine
# ============================================================================


class OrderCreationStep(str, Enum):
    """Order-creation steps.

    State diagram:
        NOT_STARTED
          │ "create order" or address-shaped message
          ▼
        PICKUP  (pickup_business → pickup_address → pickup_contact → pickup_phone)
          │
          ▼
        DELIVERIES  (one or more drop-offs, "done" to finish)
          │
          ▼
        VEHICLE
          │
          ▼
        ADD_ONS
          │
          ▼
        SCHEDULING
          │
          ▼
        REVIEW
          │ "yes" / "create" / "confirm"
          ▼
        COMPLETED
    """

    NOT_STARTED = "not_started"
    PICKUP = "pickup"
    DELIVERIES = "deliveries"
    VEHICLE = "vehicle"
    ADD_ONS = "add_ons"
    SCHEDULING = "scheduling"
    REVIEW = "review"
    COMPLETED = "completed"

    def can_transition_to(self, target: "OrderCreationStep") -> bool:
        """Check if transition to target step is valid.

        Args:
            target: Target step to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _ORDER_CREATION_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["OrderCreationStep"]:
        """Get list of valid target steps.

        Returns:
            List of steps that can be transitioned to.
        """
        return list(_ORDER_CREATION_TRANSITIONS.get(self, set()))

    def is_terminal(self) -> bool:
        """Check if this is a terminal (final) step.

        Returns:
            True if no further transitions are possible.
        """
        return len(_ORDER_CREATION_TRANSITIONS.get(self, set())) == 0

    def is_collecting(self) -> bool:
        """Check if the flow is gathering order details.

        Returns:
            True between the first and last step of an active order.
        """
        return self not in {OrderCreationStep.NOT_STARTED, OrderCreationStep.COMPLETED}

    @property
    def position(self) -> int:
        """Index of the step in the forward sequence."""
        return list(OrderCreationStep).index(self)


# Transitions defined outside the enum to avoid Enum restrictions
_ORDER_CREATION_TRANSITIONS: dict[OrderCreationStep, set[OrderCreationStep]] = {
    OrderCreationStep.NOT_STARTED: {OrderCreationStep.PICKUP},
    OrderCreationStep.PICKUP: {OrderCreationStep.DELIVERIES},
    OrderCreationStep.DELIVERIES: {OrderCreationStep.VEHICLE},
    OrderCreationStep.VEHICLE: {OrderCreationStep.ADD_ONS},
    OrderCreationStep.ADD_ONS: {OrderCreationStep.SCHEDULING},
    OrderCreationStep.SCHEDULING: {OrderCreationStep.REVIEW},
    OrderCreationStep.REVIEW: {OrderCreationStep.COMPLETED},
    OrderCreationStep.COMPLETED: set(),  # Terminal state
}


# ============================================================================
# Questions
# ============================================================================


class OrderQuestion(str, Enum):
    """Identifies the next field the flow asks the user for."""

    PICKUP_BUSINESS = "pickup_business"
    PICKUP_ADDRESS = "pickup_address"
    PICKUP_CONTACT = "pickup_contact"
    PICKUP_PHONE = "pickup_phone"
    DELIVERY_ADDRESS = "delivery_address"
    VEHICLE_TYPE = "vehicle_type"
    ADD_ONS = "add_ons"
    SCHEDULE = "schedule"
    CONFIRM_ORDER = "confirm_order"


# Order in which pickup details are requested
PICKUP_QUESTIONS: tuple[OrderQuestion, ...] = (
    OrderQuestion.PICKUP_BUSINESS,
    OrderQuestion.PICKUP_ADDRESS,
    OrderQuestion.PICKUP_CONTACT,
    OrderQuestion.PICKUP_PHONE,
)


def validate_step_transition(
    session_id: str,
    current: OrderCreationStep,
    target: OrderCreationStep,
) -> None:
    """Validate an order-creation step transition.

    Args:
        session_id: Session that owns the order state.
        current: Current step.
        target: Target step.

    Raises:
        InvalidStateTransitionError: If transition is not allowed.
    """
    if not current.can_transition_to(target):
        raise InvalidStateTransitionError(
            entity_type="OrderCreation",
            entity_id=session_id,
            current_state=current.value,
            target_state=target.value,
            allowed_transitions=[s.value for s in current.allowed_transitions()],
        )
