"""Booking API client.

GraphQL client for the delivery-booking API (estimates and orders), plus a
mock client with canned responses used when no credentials are configured.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog

from dispatch_advisor.domain.booking import (
    DeliveryInfoInput,
    DispatchOrder,
    DropOffInfoInput,
    Estimate,
    EstimateOption,
    PickupInfoInput,
    TagInput,
    VehicleType,
)
from dispatch_advisor.infrastructure.config import Settings
from dispatch_advisor.infrastructure.idp_auth import AuthenticationError, IdpTokenProvider

logger = structlog.get_logger()


CREATE_ESTIMATE_MUTATION = """
mutation CreateEstimate($input: CreateEstimateInput!) {
  createEstimate(input: $input) {
    estimate {
      availableOrderOptions {
        serviceType
        estimatedDeliveryTimeUtc
        estimatedOrderCost
        vehicleType
        estimateInfo {
          serviceType
          vehicleType
          tollAmount
          estimatedOrderCost
          dedicatedVehicleRequested
          dedicatedVehicleFee
        }
        addOns
      }
    }
  }
}
"""

CREATE_ORDER_MUTATION = """
mutation CreateOrder($input: CreateOrderInput!) {
  createOrder(input: $input) {
    order {
      id
      status
      scheduledAt
      totalCost
      trackingNumber
      estimatedArrival
    }
  }
}
"""


class DispatchClientError(Exception):
    """Error from a booking API call."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


# ============================================================================
# Client Interface
# ============================================================================


class BookingClient(ABC):
    """Estimate and order operations of the booking service."""

    @abstractmethod
    async def create_estimate(
        self,
        pickup: PickupInfoInput,
        drop_offs: list[DropOffInfoInput],
        vehicle_type: VehicleType,
        add_ons: list[str] | None = None,
        dedicated_vehicle: bool | None = None,
        organization_druid: str | None = None,
    ) -> Estimate:
        """Request priced delivery options.

        An estimate with no options is returned as-is; callers treat it as
        "no service to this location".

        Raises:
            DispatchClientError: On transport, HTTP or GraphQL errors.
        """

    @abstractmethod
    async def create_order(
        self,
        delivery_info: DeliveryInfoInput,
        pickup: PickupInfoInput,
        drop_offs: list[DropOffInfoInput],
        tags: list[TagInput] | None = None,
    ) -> DispatchOrder:
        """Create an order.

        Raises:
            DispatchClientError: On transport, HTTP or GraphQL errors.
        """

    async def close(self) -> None:
        """Release network resources."""

    @property
    def is_mock(self) -> bool:
        return False


def _estimate_input(
    pickup: PickupInfoInput,
    drop_offs: list[DropOffInfoInput],
    vehicle_type: VehicleType,
    add_ons: list[str] | None,
    dedicated_vehicle: bool | None,
    organization_druid: str | None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "pickup_info": pickup.model_dump(exclude_none=True),
        "drop_offs": [drop_off.model_dump(exclude_none=True) for drop_off in drop_offs],
        "vehicle_type": VehicleType(vehicle_type).value,
    }
    if add_ons:
        payload["add_ons"] = add_ons
    if dedicated_vehicle is not None:
        payload["dedicated_vehicle"] = dedicated_vehicle
    if organization_druid:
        payload["organization_druid"] = organization_druid
    return payload


# ============================================================================
# GraphQL Client
# ============================================================================


class DispatchClient(BookingClient):
    """GraphQL client for the booking API.

    Authenticates with a static bearer token, or with IDP
    client-credentials tokens when a token provider is given.
    """

    def __init__(
        self,
        endpoint: str,
        auth_token: str = "",
        token_provider: IdpTokenProvider | None = None,
        organization_id: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint: GraphQL endpoint URL.
            auth_token: Static bearer token.
            token_provider: Optional IDP token provider (takes precedence).
            organization_id: Default organization druid for estimates.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.endpoint = endpoint
        self.auth_token = auth_token
        self.token_provider = token_provider
        self.organization_id = organization_id
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _auth_header(self) -> dict[str, str]:
        if self.token_provider is not None:
            try:
                token = await self.token_provider.get_token()
            except AuthenticationError as e:
                raise DispatchClientError(
                    f"Failed to get auth token: {e.message}", e.status_code
                ) from e
        else:
            token = self.auth_token
        return {"Authorization": f"Bearer {token}"}

    async def _execute(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Execute a GraphQL operation.

        Args:
            query: GraphQL document.
            variables: Operation variables.

        Returns:
            The ``data`` object of the response.

        Raises:
            DispatchClientError: On transport, HTTP or GraphQL errors.
        """
        client = await self._get_client()
        headers = await self._auth_header()

        try:
            logger.debug("Making GraphQL request", endpoint=self.endpoint)
            response = await client.post(
                self.endpoint,
                json={"query": query, "variables": variables},
                headers=headers,
            )
        except httpx.TimeoutException as e:
            logger.error("Booking API request timed out", endpoint=self.endpoint)
            raise DispatchClientError(f"Request timed out: {e}") from e
        except httpx.RequestError as e:
            logger.error("Booking API request failed", endpoint=self.endpoint, error=str(e))
            raise DispatchClientError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            raise DispatchClientError(
                f"Booking API returned status {response.status_code}: {response.text}",
                response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise DispatchClientError(f"Failed to parse response: {e}") from e
        if not isinstance(body, dict):
            raise DispatchClientError("Unexpected GraphQL response shape")

        errors = body.get("errors")
        if errors:
            messages = "; ".join(str(error.get("message", error)) for error in errors)
            raise DispatchClientError(f"GraphQL error: {messages}")

        return body.get("data") or {}

    async def create_estimate(
        self,
        pickup: PickupInfoInput,
        drop_offs: list[DropOffInfoInput],
        vehicle_type: VehicleType,
        add_ons: list[str] | None = None,
        dedicated_vehicle: bool | None = None,
        organization_druid: str | None = None,
    ) -> Estimate:
        payload = _estimate_input(
            pickup,
            drop_offs,
            vehicle_type,
            add_ons,
            dedicated_vehicle,
            organization_druid or self.organization_id or None,
        )
        logger.info(
            "Creating estimate",
            vehicle_type=payload["vehicle_type"],
            drop_off_count=len(drop_offs),
        )

        data = await self._execute(CREATE_ESTIMATE_MUTATION, {"input": payload})
        estimate = Estimate.from_graphql(data)

        logger.info("Estimate created", option_count=len(estimate.available_order_options))
        return estimate

    async def create_order(
        self,
        delivery_info: DeliveryInfoInput,
        pickup: PickupInfoInput,
        drop_offs: list[DropOffInfoInput],
        tags: list[TagInput] | None = None,
    ) -> DispatchOrder:
        payload: dict[str, Any] = {
            "delivery_info": delivery_info.model_dump(exclude_none=True),
            "pickup_info": pickup.model_dump(exclude_none=True),
            "drop_offs": [drop_off.model_dump(exclude_none=True) for drop_off in drop_offs],
        }
        if tags:
            payload["tags"] = [tag.model_dump() for tag in tags]

        logger.info("Creating order", drop_off_count=len(drop_offs))
        data = await self._execute(CREATE_ORDER_MUTATION, {"input": payload})

        order_data = (data.get("createOrder") or {}).get("order")
        if not order_data:
            raise DispatchClientError("Booking API returned no order")

        order = DispatchOrder.model_validate(order_data)
        logger.info("Order created", order_id=order.id, status=order.status)
        return order


# ============================================================================
# Mock Client
# ============================================================================


class MockDispatchClient(BookingClient):
    """Booking client with canned responses for demos and local runs."""

    MOCK_COST = 45.99

    def __init__(self, latency: float = 0.5) -> None:
        """Initialize the mock client.

        Args:
            latency: Simulated API delay in seconds.
        """
        self.latency = latency

    @property
    def is_mock(self) -> bool:
        return True

    async def _simulate_latency(self) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency)

    async def create_estimate(
        self,
        pickup: PickupInfoInput,
        drop_offs: list[DropOffInfoInput],
        vehicle_type: VehicleType,
        add_ons: list[str] | None = None,
        dedicated_vehicle: bool | None = None,
        organization_druid: str | None = None,
    ) -> Estimate:
        await self._simulate_latency()
        now = datetime.now(timezone.utc)
        vehicle = VehicleType(vehicle_type).value

        option = EstimateOption(
            service_type="delivery",
            estimated_delivery_time_utc=(now + timedelta(hours=2)).isoformat(),
            estimated_order_cost=self.MOCK_COST,
            vehicle_type=vehicle,
            add_ons=add_ons or [],
            estimate_info={
                "serviceType": "delivery",
                "vehicleType": vehicle,
                "tollAmount": "5.50",
                "estimatedOrderCost": f"{self.MOCK_COST:.2f}",
                "dedicatedVehicleRequested": bool(dedicated_vehicle),
                "dedicatedVehicleFee": "0.00",
            },
        )
        logger.info("Mock estimate created", vehicle_type=vehicle, drop_off_count=len(drop_offs))
        return Estimate(available_order_options=[option])

    async def create_order(
        self,
        delivery_info: DeliveryInfoInput,
        pickup: PickupInfoInput,
        drop_offs: list[DropOffInfoInput],
        tags: list[TagInput] | None = None,
    ) -> DispatchOrder:
        await self._simulate_latency()
        now = datetime.now(timezone.utc)
        stamp = int(time.time())

        order = DispatchOrder(
            id=f"ORD-{stamp}",
            status="pending",
            scheduled_at=(now + timedelta(hours=1)).isoformat(),
            total_cost=self.MOCK_COST,
            tracking_number=f"TRK-{stamp}",
            estimated_arrival=(now + timedelta(hours=3)).isoformat(),
        )
        logger.info("Mock order created", order_id=order.id)
        return order


def create_booking_client(settings: Settings) -> BookingClient:
    """Create the booking client for the configured credentials.

    Args:
        settings: Application settings.

    Returns:
        MockDispatchClient without credentials, DispatchClient otherwise.
    """
    if settings.use_mock_dispatch:
        logger.info("Using mock booking client")
        return MockDispatchClient(latency=settings.mock_latency_seconds)

    token_provider = None
    if settings.use_idp_auth:
        token_provider = IdpTokenProvider(
            token_endpoint=settings.idp_token_endpoint,
            client_id=settings.idp_client_id,
            client_secret=settings.idp_client_secret,
            scope=settings.idp_scope,
            timeout=settings.request_timeout,
        )

    return DispatchClient(
        endpoint=settings.dispatch_graphql_endpoint,
        auth_token=settings.dispatch_auth_token,
        token_provider=token_provider,
        organization_id=settings.dispatch_organization_id,
        timeout=settings.request_timeout,
    )
