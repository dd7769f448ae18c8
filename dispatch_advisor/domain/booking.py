"""Booking schemas for the delivery-booking API.

Pydantic models for the estimate/order inputs sent to the GraphQL API and
for the responses it returns. Inputs serialize with snake_case keys;
responses accept both the camelCase GraphQL keys and the field names.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Enumerations
# ============================================================================


class VehicleType(str, Enum):
    """Vehicle types accepted by the booking API."""

    PICKUP_TRUCK = "pickup_truck"
    CARGO_VAN = "cargo_van"
    SPRINTER_VAN = "sprinter_van"
    BOX_TRUCK = "box_truck"


class DeliveryScenario(str, Enum):
    """How to choose among the options of an estimate."""

    FASTEST = "fastest"
    ASAP = "asap"
    URGENT = "urgent"
    CHEAPEST = "cheapest"
    ECONOMY = "economy"
    SOMETIME_TODAY = "sometime_today"

    def prefers_speed(self) -> bool:
        """Check if the scenario selects the fastest option.

        Returns:
            True for fastest/asap/urgent, False for the economy scenarios.
        """
        return self in {
            DeliveryScenario.FASTEST,
            DeliveryScenario.ASAP,
            DeliveryScenario.URGENT,
        }


# ============================================================================
# Input Schemas
# ============================================================================


class AddressInput(BaseModel):
    """Street address. Fields default to empty so validation can report them."""

    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = "US"

    def one_line(self) -> str:
        """Format as a single line, e.g. '1 Main St, Austin, TX 78701'."""
        return f"{self.street}, {self.city}, {self.state} {self.zip_code}".strip()


class GeoCoordinatesInput(BaseModel):
    """Latitude/longitude pair."""

    latitude: float
    longitude: float


class LocationInput(BaseModel):
    """A location given by address or coordinates."""

    address: AddressInput | None = None
    geo_coordinates: GeoCoordinatesInput | None = None


class PickupInfoInput(BaseModel):
    """Pickup stop for an estimate or order."""

    business_name: str = Field(..., description="Business at the pickup location")
    contact_name: str | None = None
    contact_phone_number: str | None = None
    location: LocationInput
    pickup_notes: str | None = None
    pickup_date_time_utc: str | None = None


class DropOffInfoInput(BaseModel):
    """Drop-off stop for an estimate or order."""

    business_name: str = Field(..., description="Business at the drop-off location")
    contact_name: str | None = None
    contact_phone_number: str | None = None
    location: LocationInput
    drop_off_notes: str | None = None
    estimated_weight: int | None = None


class DeliveryInfoInput(BaseModel):
    """Service selection for an order."""

    service_type: str = Field(default="delivery", description="Service type from the estimate")
    organization_druid: str | None = None


class TagInput(BaseModel):
    """Free-form name/value tag attached to an order."""

    name: str
    value: str


# ============================================================================
# Response Schemas
# ============================================================================


class EstimateOption(BaseModel):
    """One priced delivery option returned by the booking API."""

    model_config = ConfigDict(populate_by_name=True)

    service_type: str = Field(default="", alias="serviceType")
    estimated_delivery_time_utc: str = Field(default="", alias="estimatedDeliveryTimeUtc")
    estimated_order_cost: float = Field(default=0.0, alias="estimatedOrderCost")
    vehicle_type: str = Field(default="", alias="vehicleType")
    add_ons: list[str] | None = Field(default=None, alias="addOns")
    estimate_info: dict[str, Any] | None = Field(default=None, alias="estimateInfo")


class Estimate(BaseModel):
    """Estimate with the available delivery options, fastest first."""

    model_config = ConfigDict(populate_by_name=True)

    available_order_options: list[EstimateOption] = Field(
        default_factory=list,
        alias="availableOrderOptions",
    )

    @classmethod
    def from_graphql(cls, payload: dict[str, Any]) -> "Estimate":
        """Build an estimate from a GraphQL response or a bare estimate dict.

        Accepts the full ``{"data": {"createEstimate": {"estimate": ...}}}``
        envelope as well as any of its inner levels.

        Args:
            payload: Decoded JSON payload.

        Returns:
            Parsed Estimate.
        """
        for key in ("data", "createEstimate", "estimate"):
            if isinstance(payload, dict) and key in payload:
                payload = payload[key] or {}
        return cls.model_validate(payload)


class DispatchOrder(BaseModel):
    """Order created by the booking API."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: str = "pending"
    scheduled_at: str | None = Field(default=None, alias="scheduledAt")
    total_cost: float = Field(default=0.0, alias="totalCost")
    tracking_number: str | None = Field(default=None, alias="trackingNumber")
    estimated_arrival: str | None = Field(default=None, alias="estimatedArrival")
