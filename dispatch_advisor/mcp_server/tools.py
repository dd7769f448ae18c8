"""MCP tools for the delivery pricing advisor.

Defines the 5 MCP tools:
1. create_estimate - Price a delivery with the booking API
2. create_order - Create a delivery order
3. compare_pricing_models - Apply every discount rule to an estimate
4. select_delivery_option - Pick the fastest or cheapest estimate option
5. conversational_pricing_advisor - Chat with the pricing advisor
"""

from typing import Any

import structlog

from dispatch_advisor.conversation.context import SessionStore
from dispatch_advisor.conversation.engine import ConversationEngine
from dispatch_advisor.domain.booking import (
    DeliveryInfoInput,
    DeliveryScenario,
    DropOffInfoInput,
    Estimate,
    EstimateOption,
    PickupInfoInput,
    TagInput,
    VehicleType,
)
from dispatch_advisor.domain.conversation import ConversationContext, CustomerProfile
from dispatch_advisor.domain.pricing import CustomerTier, PricingContext, PricingEngine
from dispatch_advisor.infrastructure.dispatch_client import BookingClient, DispatchClientError

logger = structlog.get_logger()


class MCPTools:
    """MCP tools for the pricing advisor.

    Each method returns a JSON-compatible dict with a ``success`` flag,
    suitable for AI agent consumption.
    """

    def __init__(
        self,
        booking_client: BookingClient,
        engine: ConversationEngine,
        pricing_engine: PricingEngine | None = None,
        sessions: SessionStore | None = None,
    ) -> None:
        """Initialize MCP tools.

        Args:
            booking_client: Booking API client.
            engine: Conversation engine for the advisor tool.
            pricing_engine: Pricing engine; defaults to the engine's own.
            sessions: Session store for advisor conversations.
        """
        self.booking = booking_client
        self.engine = engine
        self.pricing = pricing_engine or engine.pricing_engine
        self.sessions = sessions or SessionStore()

    # =========================================================================
    # Tool 1: create_estimate
    # =========================================================================

    async def create_estimate(
        self,
        pickup_info: PickupInfoInput,
        drop_offs: list[DropOffInfoInput],
        vehicle_type: VehicleType,
        add_ons: list[str] | None = None,
        dedicated_vehicle: bool | None = None,
        organization_druid: str | None = None,
    ) -> dict[str, Any]:
        """Request priced delivery options.

        Options are ordered fastest first. Pass the result to
        select_delivery_option or compare_pricing_models.

        Returns:
            Estimate with its available order options.
        """
        logger.info(
            "Creating estimate",
            vehicle_type=vehicle_type.value,
            drop_off_count=len(drop_offs),
        )

        try:
            estimate = await self.booking.create_estimate(
                pickup=pickup_info,
                drop_offs=drop_offs,
                vehicle_type=vehicle_type,
                add_ons=add_ons,
                dedicated_vehicle=dedicated_vehicle,
                organization_druid=organization_druid,
            )
        except DispatchClientError as e:
            return {
                "success": False,
                "error": f"Failed to create estimate: {e.message}",
            }

        options = estimate.available_order_options
        if not options:
            return {
                "success": False,
                "error": "No delivery options available for this location",
            }

        return {
            "success": True,
            "estimate": estimate.model_dump(mode="json", by_alias=True),
            "option_count": len(options),
            "message": (
                f"Found {len(options)} delivery option(s). Use select_delivery_option "
                "to choose one, or compare_pricing_models to see discounts."
            ),
        }

    # =========================================================================
    # Tool 2: create_order
    # =========================================================================

    async def create_order(
        self,
        delivery_info: DeliveryInfoInput,
        pickup_info: PickupInfoInput,
        drop_offs: list[DropOffInfoInput],
        tags: list[TagInput] | None = None,
    ) -> dict[str, Any]:
        """Create a delivery order.

        Returns:
            Order ID, status, cost and tracking number.
        """
        logger.info("Creating order", drop_off_count=len(drop_offs))

        try:
            order = await self.booking.create_order(
                delivery_info=delivery_info,
                pickup=pickup_info,
                drop_offs=drop_offs,
                tags=tags,
            )
        except DispatchClientError as e:
            return {
                "success": False,
                "error": f"Failed to create order: {e.message}",
            }

        return {
            "success": True,
            "order": order.model_dump(mode="json"),
            "message": f"Order {order.id} created with status '{order.status}'.",
        }

    # =========================================================================
    # Tool 3: compare_pricing_models
    # =========================================================================

    async def compare_pricing_models(
        self,
        original_estimate: EstimateOption,
        delivery_count: int = 1,
        customer_tier: CustomerTier = CustomerTier.BRONZE,
        order_frequency: int = 1,
        total_order_value: float | None = None,
        is_bulk_order: bool = False,
    ) -> dict[str, Any]:
        """Apply every pricing model to an estimate option.

        Returns:
            All pricing results and the best eligible option.
        """
        context = PricingContext(
            delivery_count=delivery_count,
            customer_tier=customer_tier,
            order_frequency=order_frequency,
            total_order_value=(
                original_estimate.estimated_order_cost
                if total_order_value is None
                else total_order_value
            ),
            is_bulk_order=is_bulk_order,
        )
        comparison = self.pricing.compare_all(
            original_estimate.estimated_order_cost,
            context,
            estimate=original_estimate,
        )

        best = comparison.best_option
        logger.info(
            "Pricing compared",
            original_cost=comparison.original_cost,
            best_model=best.model.value if best else None,
        )
        return {
            "success": True,
            **comparison.to_dict(),
        }

    # =========================================================================
    # Tool 4: select_delivery_option
    # =========================================================================

    async def select_delivery_option(
        self,
        estimate_response: dict[str, Any],
        delivery_scenario: DeliveryScenario,
    ) -> dict[str, Any]:
        """Pick an option from an estimate.

        Options are ordered fastest (most expensive) to slowest (cheapest).

        Returns:
            The selected option, the scenario, and all options.
        """
        estimate = Estimate.from_graphql(estimate_response)
        options = estimate.available_order_options
        if not options:
            return {
                "success": False,
                "error": "No delivery options available",
            }

        if delivery_scenario.prefers_speed():
            selected = options[0]
            description = "Fastest delivery (most expensive)"
        else:
            selected = options[-1]
            description = "Cheapest delivery (slowest)"

        return {
            "success": True,
            "selected_option": selected.model_dump(mode="json", by_alias=True),
            "scenario": delivery_scenario.value,
            "description": description,
            "total_options": len(options),
            "all_options": [option.model_dump(mode="json", by_alias=True) for option in options],
        }

    # =========================================================================
    # Tool 5: conversational_pricing_advisor
    # =========================================================================

    async def conversational_pricing_advisor(
        self,
        user_message: str,
        session_id: str | None = None,
        conversation_context: ConversationContext | None = None,
        customer_profile: CustomerProfile | None = None,
    ) -> dict[str, Any]:
        """Process a message with the conversational advisor.

        The context is looked up by session ID, or taken from the
        conversation_context argument; a new session starts otherwise.

        Returns:
            Reply, recommendations, follow-up questions and session state.
        """
        context = conversation_context
        if context is None and session_id:
            context = self.sessions.get(session_id)
        if customer_profile is not None:
            if context is None:
                context = ConversationContext()
            context.customer_profile = customer_profile

        lock_id = context.session_id if context is not None else None
        if lock_id is None:
            response = await self.engine.process_message(user_message, context)
        else:
            async with self.sessions.lock(lock_id):
                response = await self.engine.process_message(user_message, context)
        self.sessions.save(response.context)

        state = response.context.order_creation
        return {
            "success": True,
            "session_id": response.context.session_id,
            "message": response.message,
            "recommendations": [rec.to_dict() for rec in response.recommendations],
            "next_questions": response.next_questions,
            "order_step": state.step.value,
            "order_in_progress": state.in_progress,
            "submitted_order": (
                state.submitted_order.model_dump(mode="json") if state.submitted_order else None
            ),
            "ai_available": self.engine.is_ai_available(),
            "conversation_context": response.context.model_dump(mode="json"),
        }
