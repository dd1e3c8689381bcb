"""Carrier-agnostic domain models.

Every adapter maps its carrier's payloads to and from these shapes, so a
caller can work with parcels, tracking and pickup points without knowing
which carrier produced them.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ServiceLevel(str, Enum):
    """Canonical service levels. Adapters map these to carrier service codes."""

    STANDARD = "standard"
    EXPRESS = "express"
    ECONOMY = "economy"
    OVERNIGHT = "overnight"


class TrackingStatus(str, Enum):
    """Normalized tracking statuses."""

    PENDING = "PENDING"
    IN_TRANSIT = "IN_TRANSIT"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    EXCEPTION = "EXCEPTION"
    RETURNED = "RETURNED"
    CANCELLED = "CANCELLED"


class Address(BaseModel):
    """Postal address for a sender or recipient."""

    name: str = Field(..., min_length=1, description="Person or business name")
    street: str = Field(..., description="Street and house number")
    city: str = Field(..., description="City")
    postal_code: str = Field(..., description="Postal code")
    country: str = Field(..., min_length=2, max_length=2, description="ISO 3166-1 alpha-2 code")
    phone: str | None = None
    email: str | None = None
    company: str | None = None
    province: str | None = None
    is_po_box: bool = False


class Contact(BaseModel):
    """Contact person for pickups and notifications."""

    name: str
    phone: str | None = None
    email: str | None = None
    company: str | None = None


class Dimensions(BaseModel):
    """Package dimensions in centimeters."""

    length_cm: float = Field(..., gt=0)
    width_cm: float = Field(..., gt=0)
    height_cm: float = Field(..., gt=0)


class Parcel(BaseModel):
    """A single physical parcel to be shipped.

    Attributes:
        id: Caller's internal id. Used as the fallback shipment id when the
            carrier has no shipment concept.
        weight_grams: Gross weight in grams.
        shipment_id: Carrier shipment id, set once a shipment exists.
    """

    id: str = Field(..., min_length=1, description="Internal parcel id")
    sender: Address
    recipient: Address
    weight_grams: int = Field(..., gt=0, description="Weight in grams")
    dimensions: Dimensions | None = None
    service: ServiceLevel = ServiceLevel.STANDARD
    reference: str | None = None
    shipment_id: str | None = None
    carrier_ids: dict[str, str] = Field(
        default_factory=dict,
        description="Carrier-assigned ids keyed by adapter id",
    )
    metadata: dict[str, Any] = Field(default_factory=dict)


class TrackingEvent(BaseModel):
    """One normalized tracking event."""

    timestamp: datetime
    status: TrackingStatus
    description: str = ""
    carrier_status_code: str | None = None
    location: str | None = None
    raw: Any = None


class TrackingUpdate(BaseModel):
    """Tracking history for one tracking number, oldest event first."""

    tracking_number: str
    status: TrackingStatus
    events: list[TrackingEvent] = Field(default_factory=list)
    last_update: datetime | None = None
    raw_carrier_response: Any = None


class PickupPoint(BaseModel):
    """Locker, parcel shop or post office where parcels can be dropped off or collected."""

    id: str
    provider_id: str | None = None
    name: str | None = None
    country: str | None = None
    postal_code: str | None = None
    city: str | None = None
    street: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    opening_hours: str | dict[str, Any] | None = None
    dropoff_allowed: bool | None = None
    pickup_allowed: bool | None = None
    is_outdoor: bool | None = None
    payment_options: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    raw: Any = None


class PickupPointsResponse(BaseModel):
    """Result of fetch_pickup_points."""

    points: list[PickupPoint] = Field(default_factory=list)
    total_count: int | None = None
    updated_at: datetime | None = None
    raw_carrier_response: Any = None


class Rate(BaseModel):
    """One priced service option."""

    model_config = ConfigDict(frozen=True)

    service: str
    carrier: str
    price: float = Field(..., ge=0)
    currency: str = Field(..., min_length=3, max_length=3)
    estimated_days: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class RatesResponse(BaseModel):
    """Result of get_rates."""

    rates: list[Rate] = Field(default_factory=list)
    expires_at: datetime | None = None
    raw: Any = None
