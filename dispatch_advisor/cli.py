"""Dispatch Advisor command-line demo.

Usage:
    dispatch-advisor estimate
    dispatch-advisor order
    dispatch-advisor pricing --delivery-count 3 --tier gold --frequency 5
    dispatch-advisor chat
    dispatch-advisor interactive
    dispatch-advisor status
"""

import argparse
import asyncio
import itertools
import json
import re
import sys
from contextlib import suppress

from dispatch_advisor.conversation.engine import ConversationEngine, ConversationResponse
from dispatch_advisor.domain.booking import (
    AddressInput,
    DeliveryInfoInput,
    DropOffInfoInput,
    LocationInput,
    PickupInfoInput,
    VehicleType,
)
from dispatch_advisor.domain.conversation import ConversationContext
from dispatch_advisor.domain.pricing import CustomerTier, PricingContext, PricingEngine
from dispatch_advisor.infrastructure.ai_client import GeminiConversationClient
from dispatch_advisor.infrastructure.config import Settings, settings
from dispatch_advisor.infrastructure.dispatch_client import (
    BookingClient,
    DispatchClientError,
    create_booking_client,
)
from dispatch_advisor.infrastructure.logging_config import configure_logging

THINKING_FRAMES = ("|", "/", "-", "\\")
THINKING_INTERVAL_SECONDS = 0.3

EXIT_WORDS = {"quit", "exit"}

CHAT_HELP = """
Example messages:
  I need 3 deliveries to different locations
  What's the best pricing for a gold customer?
  Compare pricing models for a bulk order of 10 deliveries
  I'm a bronze tier customer with 5 orders per month
  create order

Type 'quit' to exit.
"""


# ============================================================================
# Sample Data
# ============================================================================


def sample_pickup() -> PickupInfoInput:
    return PickupInfoInput(
        business_name="Demo Business",
        contact_name="Demo Contact",
        contact_phone_number="415-555-0100",
        location=LocationInput(
            address=AddressInput(
                street="123 Market St",
                city="San Francisco",
                state="CA",
                zip_code="94105",
            )
        ),
    )


def sample_drop_offs(count: int = 1) -> list[DropOffInfoInput]:
    addresses = [
        AddressInput(street="456 Oak Ave", city="Oakland", state="CA", zip_code="94610"),
        AddressInput(street="789 Pine St", city="Berkeley", state="CA", zip_code="94710"),
    ]
    return [
        DropOffInfoInput(
            business_name=f"Customer Location {index + 1}",
            location=LocationInput(address=addresses[index % len(addresses)]),
        )
        for index in range(count)
    ]


# ============================================================================
# Output Helpers
# ============================================================================


def strip_markdown(text: str) -> str:
    """Remove bold, italic, code and heading markers for terminal output."""
    text = text.replace("**", "").replace("`", "")
    text = re.sub(r"(?<!\w)\*(?!\s)|(?<!\s)\*(?!\w)", "", text)
    return "\n".join(line.lstrip("#").strip() for line in text.split("\n"))


def print_response(response: ConversationResponse) -> None:
    print(f"Advisor: {strip_markdown(response.message)}")

    if response.recommendations:
        print("\nPricing Recommendations:")
        for rec in response.recommendations:
            if rec.eligible:
                print(f"  + {rec.name}: ${rec.savings:.2f} savings ({rec.savings_percent:.1f}%)")
            else:
                print(f"  - {rec.name}: {rec.reason}")

    if response.next_questions:
        print("\nNext Steps:")
        for index, question in enumerate(response.next_questions, start=1):
            print(f"  {index}. {question}")
    print()


async def show_thinking(stream=sys.stdout) -> None:
    """Animate a thinking indicator until cancelled."""
    try:
        for frame in itertools.cycle(THINKING_FRAMES):
            stream.write(f"\rThinking {frame}")
            stream.flush()
            await asyncio.sleep(THINKING_INTERVAL_SECONDS)
    finally:
        stream.write("\r\033[K")
        stream.flush()


async def with_thinking(coro):
    """Await a coroutine while the thinking indicator runs."""
    indicator = asyncio.create_task(show_thinking())
    try:
        return await coro
    finally:
        indicator.cancel()
        with suppress(asyncio.CancelledError):
            await indicator


def build_engine(app_settings: Settings, booking_client: BookingClient) -> ConversationEngine:
    return ConversationEngine(
        booking_client=booking_client,
        ai_client=GeminiConversationClient(
            api_key=app_settings.gemini_api_key,
            model_name=app_settings.ai_model,
            max_output_tokens=app_settings.ai_max_output_tokens,
            timeout=app_settings.request_timeout,
        ),
        organization_druid=app_settings.dispatch_organization_id or None,
    )


# ============================================================================
# Commands
# ============================================================================


async def run_estimate(client: BookingClient) -> int:
    print("Creating Cost Estimate...")
    try:
        estimate = await with_thinking(
            client.create_estimate(
                pickup=sample_pickup(),
                drop_offs=sample_drop_offs(),
                vehicle_type=VehicleType.CARGO_VAN,
            )
        )
    except DispatchClientError as e:
        print(f"Failed to create estimate: {e.message}")
        return 1

    if not estimate.available_order_options:
        print("No delivery options available")
        return 1

    option = estimate.available_order_options[0]
    print(f"Estimated Cost: ${option.estimated_order_cost:.2f}")
    print(f"Vehicle Type: {option.vehicle_type}")
    print(f"Estimated Delivery: {option.estimated_delivery_time_utc}")
    print(f"Service Type: {option.service_type}")
    print("\nFull Response:")
    print(json.dumps(estimate.model_dump(mode="json", by_alias=True), indent=2))
    return 0


async def run_order(client: BookingClient, organization_druid: str | None) -> int:
    print("Creating Delivery Order...")
    try:
        order = await with_thinking(
            client.create_order(
                delivery_info=DeliveryInfoInput(organization_druid=organization_druid),
                pickup=sample_pickup(),
                drop_offs=sample_drop_offs(),
            )
        )
    except DispatchClientError as e:
        print(f"Failed to create order: {e.message}")
        return 1

    print(f"Order ID: {order.id}")
    print(f"Status: {order.status}")
    print(f"Total Cost: ${order.total_cost:.2f}")
    print(f"Tracking Number: {order.tracking_number}")
    return 0


async def run_pricing(client: BookingClient, args: argparse.Namespace) -> int:
    print("Pricing Model Comparison")
    try:
        estimate = await with_thinking(
            client.create_estimate(
                pickup=sample_pickup(),
                drop_offs=sample_drop_offs(args.delivery_count),
                vehicle_type=VehicleType.CARGO_VAN,
            )
        )
    except DispatchClientError as e:
        print(f"Failed to create estimate: {e.message}")
        return 1

    if not estimate.available_order_options:
        print("No delivery options available")
        return 1

    option = estimate.available_order_options[0]
    context = PricingContext(
        delivery_count=args.delivery_count,
        customer_tier=CustomerTier(args.tier),
        order_frequency=args.frequency,
        total_order_value=option.estimated_order_cost,
        is_bulk_order=args.bulk,
    )
    comparison = PricingEngine().compare_all(option.estimated_order_cost, context, estimate=option)

    print(f"Base estimate: ${comparison.original_cost:.2f}\n")
    for result in comparison.pricing_models:
        if result.eligible:
            print(
                f"  + {result.name}: ${result.adjusted_cost:.2f} "
                f"(save ${result.savings:.2f}, {result.discount_percent:.1f}%)"
            )
        else:
            print(f"  - {result.name}: {result.reason}")

    if comparison.best_option is not None:
        print(
            f"\nBest option: {comparison.best_option.name} at "
            f"${comparison.best_option.adjusted_cost:.2f} "
            f"(save ${comparison.savings:.2f}, {comparison.savings_percentage:.1f}%)"
        )
    return 0


async def run_chat(engine: ConversationEngine) -> int:
    print("Conversational Pricing Advisor")
    print("Type 'quit' to exit, 'help' for examples.\n")

    context: ConversationContext | None = None
    while True:
        try:
            text = (await asyncio.to_thread(input, "You: ")).strip()
        except EOFError:
            break

        if text.lower() in EXIT_WORDS:
            print("Goodbye!")
            break
        if text.lower() == "help":
            print(CHAT_HELP)
            continue
        if not text:
            continue

        response = await with_thinking(engine.process_message(text, context))
        context = response.context
        print_response(response)
    return 0


def show_status(app_settings: Settings, engine: ConversationEngine) -> int:
    print("Connection Status")
    print(f"Authentication: {'IDP' if app_settings.use_idp_auth else 'Static Token'}")
    print(f"Organization ID: {app_settings.dispatch_organization_id or '-'}")
    print(f"GraphQL Endpoint: {app_settings.dispatch_graphql_endpoint}")
    print(f"Booking Client: {'mock' if app_settings.use_mock_dispatch else 'live'}")
    info = engine.engine_info()
    print(f"AI Replies: {'enabled' if info['ai_available'] else 'disabled (template fallback)'}")
    print(f"Engine Features: {', '.join(info['features'])}")
    return 0


async def run_interactive(
    app_settings: Settings,
    client: BookingClient,
    engine: ConversationEngine,
) -> int:
    print("Interactive mode. Commands: estimate, order, pricing, chat, status, help, quit")
    while True:
        try:
            command = (await asyncio.to_thread(input, "dispatch> ")).strip().lower()
        except EOFError:
            return 0

        if command in EXIT_WORDS:
            return 0
        if command == "help":
            print("Commands: estimate, order, pricing, chat, status, quit")
        elif command == "estimate":
            await run_estimate(client)
        elif command == "order":
            await run_order(client, app_settings.dispatch_organization_id or None)
        elif command == "pricing":
            await run_pricing(client, build_parser().parse_args(["pricing"]))
        elif command == "chat":
            await run_chat(engine)
        elif command == "status":
            show_status(app_settings, engine)
        elif command:
            print(f"Unknown command: {command}")


# ============================================================================
# Entry Point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dispatch-advisor",
        description="Delivery pricing advisor demo tool",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("estimate", help="Create a cost estimate")
    subparsers.add_parser("order", help="Create a delivery order")

    pricing = subparsers.add_parser("pricing", help="Compare pricing models")
    pricing.add_argument("--delivery-count", type=int, default=2, choices=range(1, 101), metavar="N")
    pricing.add_argument("--tier", choices=[tier.value for tier in CustomerTier], default="bronze")
    pricing.add_argument("--frequency", type=int, default=1, help="Orders per month")
    pricing.add_argument("--bulk", action="store_true", help="Flag the order as a bulk order")

    subparsers.add_parser("chat", help="Conversational pricing advisor")
    subparsers.add_parser("interactive", help="Interactive mode")
    subparsers.add_parser("status", help="Show connection status")
    return parser


async def run(args: argparse.Namespace, app_settings: Settings) -> int:
    client = create_booking_client(app_settings)
    engine = build_engine(app_settings, client)
    try:
        if args.command == "estimate":
            return await run_estimate(client)
        if args.command == "order":
            return await run_order(client, app_settings.dispatch_organization_id or None)
        if args.command == "pricing":
            return await run_pricing(client, args)
        if args.command == "chat":
            return await run_chat(engine)
        if args.command == "interactive":
            return await run_interactive(app_settings, client, engine)
        return show_status(app_settings, engine)
    finally:
        await client.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level)
    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        print("\nGoodbye!")
        return 130


if __name__ == "__main__":
    sys.exit(main())
