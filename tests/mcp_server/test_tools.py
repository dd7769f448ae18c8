"""Tests for the MCP tool implementations."""

from unittest.mock import MagicMock

import pytest

from dispatch_advisor.conversation.context import SessionStore
from dispatch_advisor.conversation.engine import ConversationEngine
from dispatch_advisor.domain.booking import (
    DeliveryInfoInput,
    DeliveryScenario,
    Estimate,
    EstimateOption,
    VehicleType,
)
from dispatch_advisor.domain.conversation import CustomerProfile
from dispatch_advisor.domain.pricing import CustomerTier
from dispatch_advisor.infrastructure.dispatch_client import DispatchClientError
from dispatch_advisor.mcp_server.tools import MCPTools

ESTIMATE_ENVELOPE = {
    "data": {
        "createEstimate": {
            "estimate": {
                "availableOrderOptions": [
                    {"serviceType": "rush", "estimatedOrderCost": 90.0, "vehicleType": "cargo_van"},
                    {"serviceType": "same_day", "estimatedOrderCost": 60.0, "vehicleType": "cargo_van"},
                    {"serviceType": "economy", "estimatedOrderCost": 40.0, "vehicleType": "cargo_van"},
                ]
            }
        }
    }
}


@pytest.fixture
def tools(mock_booking_client: MagicMock, engine: ConversationEngine) -> MCPTools:
    return MCPTools(booking_client=mock_booking_client, engine=engine)


class TestCreateEstimateTool:
    """Tests for create_estimate."""

    @pytest.mark.asyncio
    async def test_success(self, tools: MCPTools, pickup_input, drop_off_input) -> None:
        result = await tools.create_estimate(
            pickup_info=pickup_input,
            drop_offs=[drop_off_input],
            vehicle_type=VehicleType.CARGO_VAN,
        )

        assert result["success"] is True
        assert result["option_count"] == 2
        options = result["estimate"]["availableOrderOptions"]
        assert options[0]["estimatedOrderCost"] == 80.0

    @pytest.mark.asyncio
    async def test_no_options(
        self, tools: MCPTools, mock_booking_client: MagicMock, pickup_input, drop_off_input
    ) -> None:
        mock_booking_client.create_estimate.return_value = Estimate()

        result = await tools.create_estimate(pickup_input, [drop_off_input], VehicleType.CARGO_VAN)

        assert result["success"] is False
        assert "No delivery options" in result["error"]

    @pytest.mark.asyncio
    async def test_client_error(
        self, tools: MCPTools, mock_booking_client: MagicMock, pickup_input, drop_off_input
    ) -> None:
        mock_booking_client.create_estimate.side_effect = DispatchClientError("boom", 500)

        result = await tools.create_estimate(pickup_input, [drop_off_input], VehicleType.CARGO_VAN)

        assert result == {"success": False, "error": "Failed to create estimate: boom"}


class TestCreateOrderTool:
    """Tests for create_order."""

    @pytest.mark.asyncio
    async def test_success(self, tools: MCPTools, pickup_input, drop_off_input) -> None:
        result = await tools.create_order(DeliveryInfoInput(), pickup_input, [drop_off_input])

        assert result["success"] is True
        assert result["order"]["id"] == "ORD-100"
        assert result["order"]["tracking_number"] == "TRK-100"
        assert "ORD-100" in result["message"]

    @pytest.mark.asyncio
    async def test_client_error(
        self, tools: MCPTools, mock_booking_client: MagicMock, pickup_input, drop_off_input
    ) -> None:
        mock_booking_client.create_order.side_effect = DispatchClientError("rejected")

        result = await tools.create_order(DeliveryInfoInput(), pickup_input, [drop_off_input])

        assert result["success"] is False
        assert "rejected" in result["error"]


class TestComparePricingModelsTool:
    """Tests for compare_pricing_models."""

    @pytest.mark.asyncio
    async def test_multi_delivery_wins(self, tools: MCPTools) -> None:
        result = await tools.compare_pricing_models(
            original_estimate=EstimateOption(estimated_order_cost=100.0),
            delivery_count=3,
            customer_tier=CustomerTier.SILVER,
        )

        assert result["success"] is True
        assert result["original_cost"] == 100.0
        assert len(result["pricing_models"]) == 5
        assert result["best_option"]["model"] == "multi_delivery"
        assert result["best_option"]["adjusted_cost"] == pytest.approx(83.3)
        assert result["savings"] == pytest.approx(16.7)
        assert result["original_estimate"]["estimated_order_cost"] == 100.0

    @pytest.mark.asyncio
    async def test_single_delivery(self, tools: MCPTools) -> None:
        result = await tools.compare_pricing_models(
            original_estimate=EstimateOption(estimated_order_cost=50.0),
        )

        assert result["best_option"]["model"] == "standard"
        assert result["savings"] == 0.0


class TestSelectDeliveryOptionTool:
    """Tests for select_delivery_option."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "scenario,expected_cost",
        [
            (DeliveryScenario.FASTEST, 90.0),
            (DeliveryScenario.URGENT, 90.0),
            (DeliveryScenario.CHEAPEST, 40.0),
            (DeliveryScenario.SOMETIME_TODAY, 40.0),
        ],
    )
    async def test_scenarios(self, tools: MCPTools, scenario, expected_cost) -> None:
        result = await tools.select_delivery_option(ESTIMATE_ENVELOPE, scenario)

        assert result["success"] is True
        assert result["selected_option"]["estimatedOrderCost"] == expected_cost
        assert result["scenario"] == scenario.value
        assert result["total_options"] == 3

    @pytest.mark.asyncio
    async def test_empty_estimate(self, tools: MCPTools) -> None:
        result = await tools.select_delivery_option({}, DeliveryScenario.FASTEST)

        assert result["success"] is False


class TestConversationalAdvisorTool:
    """Tests for conversational_pricing_advisor."""

    @pytest.mark.asyncio
    async def test_new_session_is_stored(self, tools: MCPTools) -> None:
        result = await tools.conversational_pricing_advisor("I need 3 deliveries")

        assert result["success"] is True
        assert result["ai_available"] is False
        assert tools.sessions.get(result["session_id"]) is not None
        multi = next(rec for rec in result["recommendations"] if rec["model"] == "multi_delivery")
        assert multi["eligible"] is True

    @pytest.mark.asyncio
    async def test_session_continues(self, tools: MCPTools) -> None:
        first = await tools.conversational_pricing_advisor("I'm a gold tier customer")
        second = await tools.conversational_pricing_advisor(
            "compare pricing", session_id=first["session_id"]
        )

        assert second["session_id"] == first["session_id"]
        assert len(second["conversation_context"]["history"]) == 4
        loyalty = next(rec for rec in second["recommendations"] if rec["model"] == "loyalty_discount")
        assert loyalty["eligible"] is True

    @pytest.mark.asyncio
    async def test_customer_profile_applied(self, tools: MCPTools) -> None:
        result = await tools.conversational_pricing_advisor(
            "compare pricing",
            customer_profile=CustomerProfile(tier=CustomerTier.GOLD, order_frequency=4),
        )

        context = result["conversation_context"]
        assert context["customer_profile"]["tier"] == "gold"
        assert context["customer_profile"]["order_frequency"] == 4

    @pytest.mark.asyncio
    async def test_order_step_reported(self, tools: MCPTools) -> None:
        result = await tools.conversational_pricing_advisor("create order")

        assert result["order_in_progress"] is True
        assert result["order_step"] == "pickup"
        assert result["submitted_order"] is None

    def test_default_session_store(self, mock_booking_client, engine) -> None:
        tools = MCPTools(booking_client=mock_booking_client, engine=engine)
        assert isinstance(tools.sessions, SessionStore)
        assert tools.pricing is engine.pricing_engine
