"""Conversational order creation.

Drives the OrderCreationState one user message at a time: pickup details,
drop-offs (each re-checked against the booking service's coverage),
vehicle, add-ons, schedule, and a final review before the order is
submitted.

Problems with the user's input are never raised. They are appended to
``validation_errors`` and the state stays where it was, so the engine can
explain the problem and the user can try again.
"""

import re

import structlog

from dispatch_advisor.conversation.extractor import IntentExtractor, ParsedAddressBlock
from dispatch_advisor.conversation.validation import (
    ValidationResult,
    validate_address,
    validate_phone,
)
from dispatch_advisor.domain.booking import DeliveryInfoInput, TagInput, VehicleType
from dispatch_advisor.domain.conversation import (
    ConversationContext,
    OrderCreationState,
    SchedulingInfo,
    StopInfo,
)
from dispatch_advisor.domain.state_machines import (
    PICKUP_QUESTIONS,
    OrderCreationStep,
    OrderQuestion,
)
from dispatch_advisor.infrastructure.dispatch_client import BookingClient, DispatchClientError

logger = structlog.get_logger()

# Error prefixes recognized by the engine's error messages
PICKUP_VALIDATION_FAILED = "Pickup address validation failed"
DELIVERY_VALIDATION_FAILED = "Delivery address validation failed"
SERVICE_AREA_FAILED = "Service area validation failed"
NO_DELIVERY_OPTIONS = "No delivery options available for this location"
ORDER_SUBMISSION_FAILED = "Order submission failed"

CONFIRM_PATTERN = re.compile(r"\b(yes|create|confirm)\b")
FINISH_PATTERN = re.compile(r"^(done|no|nope|that's all|that is all|finished|no more)\b")
NONE_PATTERN = re.compile(r"^(none|no|nope|nothing|no thanks)\b")
ASAP_PATTERN = re.compile(r"\b(asap|now|as soon as possible|immediately)\b")
DEFAULT_VEHICLE_PATTERN = re.compile(r"\b(any|default|whatever|doesn't matter)\b")
TIME_PATTERN = re.compile(
    r"\b\d{1,2}(?::\d{2})?\s*(?:am|pm)\b|\b\d{1,2}:\d{2}\b",
    re.IGNORECASE,
)
DATE_PATTERN = re.compile(r"\b\d{1,2}/\d{1,2}/\d{4}\b")

# Checked in order; multi-word phrases first
VEHICLE_KEYWORDS: tuple[tuple[str, VehicleType], ...] = (
    ("cargo van", VehicleType.CARGO_VAN),
    ("pickup truck", VehicleType.PICKUP_TRUCK),
    ("box truck", VehicleType.BOX_TRUCK),
    ("sprinter", VehicleType.SPRINTER_VAN),
    ("van", VehicleType.CARGO_VAN),
    ("truck", VehicleType.PICKUP_TRUCK),
    ("cargo", VehicleType.CARGO_VAN),
    ("pickup", VehicleType.PICKUP_TRUCK),
)

CAPABILITY_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("temperature", "temperature_control"),
    ("white glove", "white_glove_service"),
    ("fragile", "fragile_handling"),
    ("signature", "signature_required"),
    ("assistance", "unloading_assistance"),
)

QUESTION_PROMPTS = {
    OrderQuestion.PICKUP_BUSINESS: "What's the business name at the pickup location?",
    OrderQuestion.PICKUP_ADDRESS: "What's the pickup address? (street, city, state, zip)",
    OrderQuestion.PICKUP_CONTACT: "Who is the contact person at the pickup location?",
    OrderQuestion.PICKUP_PHONE: "What's the contact phone number for the pickup?",
    OrderQuestion.DELIVERY_ADDRESS: (
        "Where should we deliver? Send the drop-off as: "
        "business, contact, street, city, state, zip, phone."
    ),
    OrderQuestion.VEHICLE_TYPE: (
        "What type of vehicle do you need? "
        "(cargo van, sprinter van, pickup truck, box truck)"
    ),
    OrderQuestion.ADD_ONS: (
        "Do you need any special services? (temperature control, white glove, "
        "fragile handling, signature required, unloading assistance, or 'none')"
    ),
    OrderQuestion.SCHEDULE: (
        "When should we pick up and deliver? "
        "(e.g. '9am and 2pm on 6/15/2025', or 'asap')"
    ),
    OrderQuestion.CONFIRM_ORDER: "Should I create this order for you?",
}


def is_order_request(text: str) -> bool:
    """Check for an explicit request to create an order."""
    lowered = text.lower()
    return "create" in lowered and "order" in lowered


def prompt_for(question: OrderQuestion | None) -> str:
    if question is None:
        return ""
    return QUESTION_PROMPTS[question]


def order_summary(state: OrderCreationState) -> str:
    """Render the collected order for review."""
    lines = ["**Order Summary**", ""]

    pickup = state.pickup_info
    if pickup is not None:
        lines.append("**Pickup Location:**")
        lines.append(f"- Business: {pickup.business_name or '-'}")
        lines.append(f"- Contact: {pickup.contact_name or '-'} ({pickup.contact_phone or '-'})")
        if pickup.address is not None:
            lines.append(f"- Address: {pickup.address.one_line()}")

    if state.drop_offs:
        lines.append("")
        lines.append("**Delivery Locations:**")
        for index, drop_off in enumerate(state.drop_offs, start=1):
            lines.append(f"{index}. {drop_off.business_name or 'Delivery stop'}")
            if drop_off.contact_name or drop_off.contact_phone:
                lines.append(
                    f"   Contact: {drop_off.contact_name or '-'} ({drop_off.contact_phone or '-'})"
                )
            if drop_off.address is not None:
                lines.append(f"   Address: {drop_off.address.one_line()}")

    if state.vehicle_type is not None:
        lines.append("")
        lines.append(f"**Vehicle Type:** {state.vehicle_type.value}")

    if state.capabilities:
        lines.append("")
        lines.append(f"**Special Services:** {', '.join(state.capabilities)}")

    if state.scheduling is not None:
        schedule = state.scheduling
        lines.append("")
        lines.append("**Schedule:**")
        if schedule.asap:
            lines.append("- As soon as possible")
        else:
            lines.append(f"- Pickup: {schedule.pickup_date or ''} {schedule.pickup_time or ''}".rstrip())
            lines.append(
                f"- Delivery: {schedule.delivery_date or ''} {schedule.delivery_time or ''}".rstrip()
            )

    return "\n".join(lines)


def _validate_stop(address_result: ValidationResult, phone: str | None) -> ValidationResult:
    result = ValidationResult()
    result.merge(address_result)
    result.merge(validate_phone(phone))
    return result


class OrderCreationFlow:
    """Slot-filling state machine for conversational order creation."""

    def __init__(
        self,
        booking_client: BookingClient,
        extractor: IntentExtractor,
        organization_druid: str | None = None,
    ) -> None:
        """Initialize the flow.

        Args:
            booking_client: Used for service-area checks and order submission.
            extractor: Parses addresses out of messages.
            organization_druid: Organization attached to submitted orders.
        """
        self.booking = booking_client
        self.extractor = extractor
        self.organization_druid = organization_druid

    async def handle(self, text: str, context: ConversationContext) -> str | None:
        """Advance order creation with one user message.

        Args:
            text: Raw user message.
            context: Session context; its order state is updated in place.

        Returns:
            The next prompt for order turns, or None when the message is not
            part of an order (or produced validation errors instead).
        """
        state = context.order_creation

        if not state.in_progress:
            return await self._maybe_start(text, context)

        step = state.step
        if step == OrderCreationStep.PICKUP:
            return self._handle_pickup(text, context)
        if step == OrderCreationStep.DELIVERIES:
            return await self._handle_deliveries(text, context)
        if step == OrderCreationStep.VEHICLE:
            return self._handle_vehicle(text, context)
        if step == OrderCreationStep.ADD_ONS:
            return self._handle_add_ons(text, context)
        if step == OrderCreationStep.SCHEDULING:
            return self._handle_scheduling(text, context)
        if step == OrderCreationStep.REVIEW:
            return await self._handle_review(text, context)
        return None

    # =========================================================================
    # Start
    # =========================================================================

    async def _maybe_start(self, text: str, context: ConversationContext) -> str | None:
        state = context.order_creation

        if is_order_request(text):
            if state.step == OrderCreationStep.COMPLETED:
                state.reset()
            self._start(context)
            return (
                "I'll help you create a delivery order. "
                + prompt_for(state.current_question)
                + " You can also send everything at once: "
                "business, contact, street, city, state, zip, phone."
            )

        if state.step != OrderCreationStep.NOT_STARTED:
            return None

        block = self.extractor.extract_address_block(text)
        if block is None:
            return None

        result = _validate_stop(validate_address(block.address), block.contact_phone)
        if not result.valid:
            state.validation_errors.append(f"{PICKUP_VALIDATION_FAILED}: {result.message}")
            return None

        self._start(context)
        self._apply_pickup_block(block, state)
        logger.info("Order creation started from address", session_id=context.session_id)
        return "Got it, I'll use that as the pickup location. " + self._after_pickup_answer(context)

    def _start(self, context: ConversationContext) -> None:
        state = context.order_creation
        state.in_progress = True
        state.advance_to(OrderCreationStep.PICKUP, context.session_id)
        state.current_question = OrderQuestion.PICKUP_BUSINESS
        state.missing_fields = [question.value for question in PICKUP_QUESTIONS]
        logger.info("Order creation started", session_id=context.session_id)

    # =========================================================================
    # Pickup
    # =========================================================================

    def _handle_pickup(self, text: str, context: ConversationContext) -> str | None:
        state = context.order_creation
        answer = text.strip()
        if not answer:
            return prompt_for(state.current_question)

        block = self.extractor.extract_address_block(text)
        if block is not None:
            result = _validate_stop(validate_address(block.address), block.contact_phone)
            if not result.valid:
                state.validation_errors.append(f"{PICKUP_VALIDATION_FAILED}: {result.message}")
                return None
            self._apply_pickup_block(block, state)
            return self._after_pickup_answer(context)

        pickup = state.pickup_info or StopInfo()
        question = state.current_question

        if question == OrderQuestion.PICKUP_BUSINESS:
            pickup.business_name = answer
        elif question == OrderQuestion.PICKUP_ADDRESS:
            address = self.extractor.parse_address(answer)
            result = validate_address(address)
            if not result.valid:
                state.validation_errors.append(f"{PICKUP_VALIDATION_FAILED}: {result.message}")
                return None
            pickup.address = address
        elif question == OrderQuestion.PICKUP_CONTACT:
            pickup.contact_name = answer
        elif question == OrderQuestion.PICKUP_PHONE:
            result = validate_phone(answer)
            if not result.valid:
                state.validation_errors.append(f"{PICKUP_VALIDATION_FAILED}: {result.message}")
                return None
            pickup.contact_phone = answer

        state.pickup_info = pickup
        if question is not None:
            state.mark_completed(question.value)
        return self._after_pickup_answer(context)

    @staticmethod
    def _apply_pickup_block(block: ParsedAddressBlock, state: OrderCreationState) -> None:
        pickup = state.pickup_info or StopInfo()
        pickup.address = block.address
        state.mark_completed(OrderQuestion.PICKUP_ADDRESS.value)

        if block.business_name:
            pickup.business_name = block.business_name
            state.mark_completed(OrderQuestion.PICKUP_BUSINESS.value)
        if block.contact_name:
            pickup.contact_name = block.contact_name
            state.mark_completed(OrderQuestion.PICKUP_CONTACT.value)
        if block.contact_phone:
            pickup.contact_phone = block.contact_phone
            state.mark_completed(OrderQuestion.PICKUP_PHONE.value)

        state.pickup_info = pickup

    def _after_pickup_answer(self, context: ConversationContext) -> str:
        state = context.order_creation
        for question in PICKUP_QUESTIONS:
            if question.value not in state.completed_fields:
                state.current_question = question
                return prompt_for(question)

        state.advance_to(OrderCreationStep.DELIVERIES, context.session_id)
        state.current_question = OrderQuestion.DELIVERY_ADDRESS
        return "Pickup details are set. " + prompt_for(state.current_question)

    # =========================================================================
    # Deliveries
    # =========================================================================

    async def _handle_deliveries(self, text: str, context: ConversationContext) -> str | None:
        state = context.order_creation
        lowered = text.strip().lower()

        if FINISH_PATTERN.match(lowered):
            if not state.drop_offs:
                return "I need at least one delivery address. " + prompt_for(
                    OrderQuestion.DELIVERY_ADDRESS
                )
            state.advance_to(OrderCreationStep.VEHICLE, context.session_id)
            state.current_question = OrderQuestion.VEHICLE_TYPE
            return prompt_for(state.current_question)

        drop_off = self._parse_drop_off(text)
        if drop_off is None:
            return prompt_for(OrderQuestion.DELIVERY_ADDRESS) + " Say 'done' when all stops are added."

        result = _validate_stop(validate_address(drop_off.address), drop_off.contact_phone)
        if not result.valid:
            state.validation_errors.append(f"{DELIVERY_VALIDATION_FAILED}: {result.message}")
            return None

        state.drop_offs.append(drop_off)
        field_name = f"delivery_{len(state.drop_offs)}"
        state.mark_completed(field_name)

        accepted = await self._check_service_area(context)
        if not accepted:
            state.drop_offs.pop()
            state.completed_fields.remove(field_name)
            return None

        return (
            f"Added delivery stop {len(state.drop_offs)}. "
            "Send another drop-off, or say 'done' to continue."
        )

    def _parse_drop_off(self, text: str) -> StopInfo | None:
        block = self.extractor.extract_address_block(text)
        if block is not None:
            return StopInfo(
                business_name=block.business_name or None,
                contact_name=block.contact_name or None,
                contact_phone=block.contact_phone or None,
                address=block.address,
            )

        if "," in text and any(ch.isdigit() for ch in text):
            address = self.extractor.parse_address(text)
            if address is not None:
                return StopInfo(address=address)
        return None

    async def _check_service_area(self, context: ConversationContext) -> bool:
        """Re-check coverage for the pickup and all drop-offs.

        Returns:
            False when the booking service has no options for the route;
            True otherwise, including when the check itself failed.
        """
        state = context.order_creation
        if state.pickup_info is None:
            return True

        try:
            estimate = await self.booking.create_estimate(
                pickup=state.pickup_info.to_pickup_input(),
                drop_offs=[drop_off.to_drop_off_input() for drop_off in state.drop_offs],
                vehicle_type=VehicleType.CARGO_VAN,
            )
        except DispatchClientError as e:
            logger.warning(
                "Service area check failed",
                session_id=context.session_id,
                error=e.message,
            )
            state.validation_errors.append(f"{SERVICE_AREA_FAILED}: {e.message}")
            return True

        if not estimate.available_order_options:
            logger.info("No delivery options for route", session_id=context.session_id)
            state.validation_errors.append(NO_DELIVERY_OPTIONS)
            return False
        return True

    # =========================================================================
    # Vehicle, add-ons and schedule
    # =========================================================================

    def _handle_vehicle(self, text: str, context: ConversationContext) -> str:
        state = context.order_creation
        lowered = text.lower()

        vehicle = None
        for keyword, vehicle_type in VEHICLE_KEYWORDS:
            if keyword in lowered:
                vehicle = vehicle_type
                break
        if vehicle is None and DEFAULT_VEHICLE_PATTERN.search(lowered):
            vehicle = VehicleType.CARGO_VAN
        if vehicle is None:
            return prompt_for(OrderQuestion.VEHICLE_TYPE)

        state.vehicle_type = vehicle
        state.mark_completed(OrderQuestion.VEHICLE_TYPE.value)
        state.advance_to(OrderCreationStep.ADD_ONS, context.session_id)
        state.current_question = OrderQuestion.ADD_ONS
        return prompt_for(state.current_question)

    def _handle_add_ons(self, text: str, context: ConversationContext) -> str:
        state = context.order_creation
        lowered = text.strip().lower()

        capabilities = [name for keyword, name in CAPABILITY_KEYWORDS if keyword in lowered]
        if not capabilities and not NONE_PATTERN.match(lowered):
            return prompt_for(OrderQuestion.ADD_ONS)

        state.capabilities = capabilities
        state.mark_completed(OrderQuestion.ADD_ONS.value)
        state.advance_to(OrderCreationStep.SCHEDULING, context.session_id)
        state.current_question = OrderQuestion.SCHEDULE
        return prompt_for(state.current_question)

    def _handle_scheduling(self, text: str, context: ConversationContext) -> str:
        state = context.order_creation
        lowered = text.lower()

        if ASAP_PATTERN.search(lowered):
            scheduling = SchedulingInfo(asap=True)
        else:
            times = TIME_PATTERN.findall(text)
            dates = DATE_PATTERN.findall(text)
            if not times and not dates:
                return prompt_for(OrderQuestion.SCHEDULE)
            scheduling = SchedulingInfo(
                pickup_time=times[0] if times else None,
                delivery_time=times[1] if len(times) > 1 else None,
                pickup_date=dates[0] if dates else None,
                delivery_date=dates[1] if len(dates) > 1 else (dates[0] if dates else None),
            )

        state.scheduling = scheduling
        state.mark_completed(OrderQuestion.SCHEDULE.value)
        state.advance_to(OrderCreationStep.REVIEW, context.session_id)
        state.current_question = OrderQuestion.CONFIRM_ORDER
        return order_summary(state) + "\n\n" + prompt_for(state.current_question)

    # =========================================================================
    # Review and submission
    # =========================================================================

    async def _handle_review(self, text: str, context: ConversationContext) -> str | None:
        state = context.order_creation
        if not CONFIRM_PATTERN.search(text.lower()):
            return order_summary(state) + "\n\n" + prompt_for(OrderQuestion.CONFIRM_ORDER)

        pickup = state.pickup_info or StopInfo()
        try:
            order = await self.booking.create_order(
                delivery_info=DeliveryInfoInput(
                    service_type="delivery",
                    organization_druid=self.organization_druid,
                ),
                pickup=pickup.to_pickup_input(),
                drop_offs=[drop_off.to_drop_off_input() for drop_off in state.drop_offs],
                tags=self._order_tags(state),
            )
        except DispatchClientError as e:
            logger.error("Order submission failed", session_id=context.session_id, error=e.message)
            state.validation_errors.append(f"{ORDER_SUBMISSION_FAILED}: {e.message}")
            return None

        state.submitted_order = order
        state.advance_to(OrderCreationStep.COMPLETED, context.session_id)
        state.in_progress = False
        state.current_question = None
        logger.info("Order submitted", session_id=context.session_id, order_id=order.id)

        return (
            "Order created successfully!\n\n"
            f"Order ID: {order.id}\n"
            f"Status: {order.status}\n"
            f"Total Cost: ${order.total_cost:.2f}\n"
            f"Tracking Number: {order.tracking_number or 'pending'}"
        )

    @staticmethod
    def _order_tags(state: OrderCreationState) -> list[TagInput]:
        tags = []
        if state.vehicle_type is not None:
            tags.append(TagInput(name="vehicle_type", value=state.vehicle_type.value))
        if state.capabilities:
            tags.append(TagInput(name="capabilities", value=",".join(state.capabilities)))
        if state.scheduling is not None:
            schedule = state.scheduling
            if schedule.asap:
                tags.append(TagInput(name="schedule", value="asap"))
            else:
                tags.append(
                    TagInput(
                        name="schedule",
                        value=(
                            f"pickup {schedule.pickup_date or ''} {schedule.pickup_time or ''}; "
                            f"delivery {schedule.delivery_date or ''} {schedule.delivery_time or ''}"
                        ),
                    )
                )
        return tags
