"""Dispatch Advisor MCP Server.

Exposes the pricing advisor as MCP tools for AI agent interaction.

MCP Tools:
1. create_estimate - Price a delivery with the booking API
2. create_order - Create a delivery order
3. compare_pricing_models - Apply every discount rule to an estimate
4. select_delivery_option - Pick the fastest or cheapest estimate option
5. conversational_pricing_advisor - Chat with the pricing advisor
"""

import asyncio
import json
from typing import Any

import structlog
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    TextContent,
    Tool,
)
from pydantic import ValidationError

from dispatch_advisor.conversation.engine import ConversationEngine
from dispatch_advisor.infrastructure.ai_client import GeminiConversationClient
from dispatch_advisor.infrastructure.config import Settings, settings
from dispatch_advisor.infrastructure.dispatch_client import create_booking_client
from dispatch_advisor.infrastructure.logging_config import configure_logging
from dispatch_advisor.mcp_server.schemas import (
    ComparePricingModelsInput,
    ConversationalPricingAdvisorInput,
    CreateEstimateInput,
    CreateOrderInput,
    SelectDeliveryOptionInput,
)
from dispatch_advisor.mcp_server.tools import MCPTools

logger = structlog.get_logger()

TOOL_DEFINITIONS: tuple[Tool, ...] = (
    Tool(
        name="create_estimate",
        description=(
            "Get delivery cost estimates for a pickup and one or more drop-offs. "
            "Returns the available delivery options, ordered fastest first."
        ),
        inputSchema=CreateEstimateInput.model_json_schema(),
    ),
    Tool(
        name="create_order",
        description=(
            "Create a delivery order. Returns the order ID, status, "
            "total cost and tracking number."
        ),
        inputSchema=CreateOrderInput.model_json_schema(),
    ),
    Tool(
        name="compare_pricing_models",
        description=(
            "Compare every pricing model (standard, multi-delivery, volume, "
            "loyalty, bulk) for an estimate option and a customer context. "
            "Returns each model's adjusted cost and the best eligible option."
        ),
        inputSchema=ComparePricingModelsInput.model_json_schema(),
    ),
    Tool(
        name="select_delivery_option",
        description=(
            "Select a delivery option from an estimate for a delivery scenario: "
            "fastest/asap/urgent or cheapest/economy/sometime_today."
        ),
        inputSchema=SelectDeliveryOptionInput.model_json_schema(),
    ),
    Tool(
        name="conversational_pricing_advisor",
        description=(
            "Chat with the pricing advisor. Understands delivery needs and "
            "customer tier, recommends pricing models, and walks the customer "
            "through creating an order. Pass session_id to continue a conversation."
        ),
        inputSchema=ConversationalPricingAdvisorInput.model_json_schema(),
    ),
)


def build_tools(app_settings: Settings) -> MCPTools:
    """Wire the booking client, AI client and engine into MCPTools."""
    booking_client = create_booking_client(app_settings)
    ai_client = GeminiConversationClient(
        api_key=app_settings.gemini_api_key,
        model_name=app_settings.ai_model,
        max_output_tokens=app_settings.ai_max_output_tokens,
        timeout=app_settings.request_timeout,
    )
    engine = ConversationEngine(
        booking_client=booking_client,
        ai_client=ai_client,
        organization_druid=app_settings.dispatch_organization_id or None,
    )
    return MCPTools(booking_client=booking_client, engine=engine)


def _text_result(payload: dict[str, Any]) -> list[TextContent]:
    return [
        TextContent(
            type="text",
            text=json.dumps(payload, indent=2, default=str),
        )
    ]


async def execute_tool(
    tools: MCPTools,
    name: str,
    arguments: dict[str, Any] | None,
) -> dict[str, Any]:
    """Validate the arguments of a tool call and run the tool.

    Invalid arguments and unexpected failures are returned as error
    results instead of being raised.

    Args:
        tools: Tool implementations.
        name: Tool name.
        arguments: Raw tool arguments.

    Returns:
        Tool result with a ``success`` flag.
    """
    logger.info("Tool called", tool=name, arguments=list(arguments or {}))

    try:
        arguments = arguments or {}
        if name == "create_estimate":
            input_data = CreateEstimateInput(**arguments)
            result = await tools.create_estimate(
                pickup_info=input_data.pickup_info,
                drop_offs=input_data.drop_offs,
                vehicle_type=input_data.vehicle_type,
                add_ons=input_data.add_ons,
                dedicated_vehicle=input_data.dedicated_vehicle,
                organization_druid=input_data.organization_druid,
            )
        elif name == "create_order":
            input_data = CreateOrderInput(**arguments)
            result = await tools.create_order(
                delivery_info=input_data.delivery_info,
                pickup_info=input_data.pickup_info,
                drop_offs=input_data.drop_offs,
                tags=input_data.tags,
            )
        elif name == "compare_pricing_models":
            input_data = ComparePricingModelsInput(**arguments)
            result = await tools.compare_pricing_models(
                original_estimate=input_data.original_estimate,
                delivery_count=input_data.delivery_count,
                customer_tier=input_data.customer_tier,
                order_frequency=input_data.order_frequency,
                total_order_value=input_data.total_order_value,
                is_bulk_order=input_data.is_bulk_order,
            )
        elif name == "select_delivery_option":
            input_data = SelectDeliveryOptionInput(**arguments)
            result = await tools.select_delivery_option(
                estimate_response=input_data.estimate_response,
                delivery_scenario=input_data.delivery_scenario,
            )
        elif name == "conversational_pricing_advisor":
            input_data = ConversationalPricingAdvisorInput(**arguments)
            result = await tools.conversational_pricing_advisor(
                user_message=input_data.user_message,
                session_id=input_data.session_id,
                conversation_context=input_data.conversation_context,
                customer_profile=input_data.customer_profile,
            )
        else:
            result = {
                "success": False,
                "error": f"Unknown tool: {name}",
            }

        logger.info("Tool completed", tool=name, success=result.get("success"))
        return result

    except ValidationError as e:
        logger.info("Tool arguments rejected", tool=name, error_count=e.error_count())
        return {
            "success": False,
            "error": f"Invalid arguments for {name}",
            "details": [
                {
                    "field": ".".join(str(part) for part in error["loc"]),
                    "message": error["msg"],
                }
                for error in e.errors()
            ],
        }

    except Exception as e:
        logger.exception("Tool execution failed", tool=name)
        return {
            "success": False,
            "error": f"Tool execution failed: {str(e)}",
        }


# ============================================================================
# MCP Server Implementation
# ============================================================================


def create_mcp_server(tools: MCPTools | None = None) -> Server:
    """Create and configure the MCP server with all tools.

    Args:
        tools: Tool implementations; built from settings on first use if omitted.
    """
    server = Server("dispatch-advisor-mcp")

    _tools_instance = tools

    def get_tools() -> MCPTools:
        """Get or create the MCPTools instance."""
        nonlocal _tools_instance
        if _tools_instance is None:
            _tools_instance = build_tools(settings)
        return _tools_instance

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List all available MCP tools."""
        return list(TOOL_DEFINITIONS)

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> list[TextContent]:
        """Handle tool invocation."""
        return _text_result(await execute_tool(get_tools(), name, arguments))

    return server


async def run_server() -> None:
    """Run the MCP server using stdio transport."""
    configure_logging(settings.log_level)
    logger.info(
        "Starting Dispatch Advisor MCP Server",
        dispatch_endpoint=settings.dispatch_graphql_endpoint,
        mock_dispatch=settings.use_mock_dispatch,
    )

    tools = build_tools(settings)
    server = create_mcp_server(tools)

    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
    finally:
        await tools.booking.close()


def main() -> None:
    """Run the MCP server.

    Entry point for the MCP server. Uses stdio transport for
    communication with AI agents.
    """
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
