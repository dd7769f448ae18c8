"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from dispatch_advisor.conversation.engine import ConversationEngine
from dispatch_advisor.conversation.extractor import IntentExtractor
from dispatch_advisor.domain.booking import (
    AddressInput,
    DispatchOrder,
    DropOffInfoInput,
    Estimate,
    EstimateOption,
    LocationInput,
    PickupInfoInput,
)
from dispatch_advisor.infrastructure.ai_client import GeminiConversationClient
from dispatch_advisor.infrastructure.dispatch_client import BookingClient

PICKUP_BLOCK = "Acme Bakery, Jane Doe, 123 Main St, San Francisco, CA 94105, 415-555-0100"
DROP_OFF_BLOCK = "Blue Cafe, Sam Lee, 456 Oak Ave, Oakland, CA 94610, 510-555-0101"


@pytest.fixture
def estimate() -> Estimate:
    """Estimate with a fast and a slow option."""
    return Estimate(
        available_order_options=[
            EstimateOption(
                service_type="rush",
                estimated_delivery_time_utc="2025-06-15T12:00:00Z",
                estimated_order_cost=80.0,
                vehicle_type="cargo_van",
            ),
            EstimateOption(
                service_type="standard",
                estimated_delivery_time_utc="2025-06-15T18:00:00Z",
                estimated_order_cost=45.0,
                vehicle_type="cargo_van",
            ),
        ]
    )


@pytest.fixture
def dispatch_order() -> DispatchOrder:
    return DispatchOrder(
        id="ORD-100",
        status="pending",
        total_cost=45.99,
        tracking_number="TRK-100",
    )


@pytest.fixture
def mock_booking_client(estimate: Estimate, dispatch_order: DispatchOrder) -> MagicMock:
    """Create a mock booking client that accepts every request."""
    client = MagicMock(spec=BookingClient)

    client.create_estimate = AsyncMock(return_value=estimate)
    client.create_order = AsyncMock(return_value=dispatch_order)
    client.close = AsyncMock()

    return client


@pytest.fixture
def mock_ai_client() -> MagicMock:
    """Create a mock AI client with credentials configured."""
    client = MagicMock(spec=GeminiConversationClient)
    client.is_available = True
    client.model_name = "gemini-test"
    client.generate_reply = AsyncMock(return_value="Here is what I suggest.")
    return client


@pytest.fixture
def extractor() -> IntentExtractor:
    return IntentExtractor()


@pytest.fixture
def engine(mock_booking_client: MagicMock) -> ConversationEngine:
    """Conversation engine without AI, backed by the mock booking client."""
    return ConversationEngine(booking_client=mock_booking_client)


@pytest.fixture
def pickup_block() -> str:
    return PICKUP_BLOCK


@pytest.fixture
def drop_off_block() -> str:
    return DROP_OFF_BLOCK


@pytest.fixture
def pickup_input() -> PickupInfoInput:
    return PickupInfoInput(
        business_name="Acme Bakery",
        contact_name="Jane Doe",
        contact_phone_number="415-555-0100",
        location=LocationInput(
            address=AddressInput(
                street="123 Main St",
                city="San Francisco",
                state="CA",
                zip_code="94105",
            )
        ),
    )


@pytest.fixture
def drop_off_input() -> DropOffInfoInput:
    return DropOffInfoInput(
        business_name="Blue Cafe",
        location=LocationInput(
            address=AddressInput(
                street="456 Oak Ave",
                city="Oakland",
                state="CA",
                zip_code="94610",
            )
        ),
    )
