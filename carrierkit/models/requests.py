"""Request models for adapter operations.

Adapters are constructed without credentials; every request carries the
credentials for its own call. Credentials are excluded from repr so they
never end up in a log line by accident.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from carrierkit.models.canonical import Contact, Parcel


def _credentials_field(required: bool = True) -> Any:
    if required:
        return Field(..., repr=False, description="Carrier credentials for this call")
    return Field(default_factory=dict, repr=False, description="Carrier credentials for this call")


class RequestOptions(BaseModel):
    """Per-request options. Carrier-specific keys are allowed."""

    model_config = ConfigDict(extra="allow")

    use_test_api: bool = Field(False, description="Route the call to the carrier's test endpoint")


class CreateParcelRequest(BaseModel):
    """Register one parcel with the carrier."""

    parcel: Parcel
    credentials: dict[str, Any] = _credentials_field()
    options: RequestOptions = Field(default_factory=RequestOptions)


class CreateParcelsRequest(BaseModel):
    """Register many parcels in one carrier call.

    ``shipment_date`` and ``sender`` apply to every parcel in the batch for
    carriers that take them at batch level.
    """

    parcels: list[Parcel]
    credentials: dict[str, Any] = _credentials_field()
    options: RequestOptions = Field(default_factory=RequestOptions)
    shipment_date: datetime | None = None
    sender: Contact | None = None

    @classmethod
    def single(cls, request: CreateParcelRequest) -> "CreateParcelsRequest":
        """One-element batch equivalent of a single parcel request."""
        return cls(
            parcels=[request.parcel],
            credentials=request.credentials,
            options=request.options,
        )


class CreateLabelRequest(BaseModel):
    """Generate a label for one carrier-registered parcel."""

    parcel_carrier_id: str = Field(..., min_length=1)
    credentials: dict[str, Any] = _credentials_field()
    options: RequestOptions = Field(default_factory=RequestOptions)
    label_format: str = Field("PDF", description="PDF, PNG or ZPL")
    size: str | None = Field(None, description="Carrier-specific label size, e.g. A6")


class CreateLabelsRequest(BaseModel):
    """Generate labels for many carrier-registered parcels in one call."""

    parcel_carrier_ids: list[str]
    credentials: dict[str, Any] = _credentials_field()
    options: RequestOptions = Field(default_factory=RequestOptions)
    label_format: str = "PDF"
    size: str | None = None

    @classmethod
    def single(cls, request: CreateLabelRequest) -> "CreateLabelsRequest":
        """One-element batch equivalent of a single label request."""
        return cls(
            parcel_carrier_ids=[request.parcel_carrier_id],
            credentials=request.credentials,
            options=request.options,
            label_format=request.label_format,
            size=request.size,
        )


class VoidLabelRequest(BaseModel):
    label_id: str = Field(..., min_length=1)
    credentials: dict[str, Any] = _credentials_field()
    options: RequestOptions = Field(default_factory=RequestOptions)


class TrackingRequest(BaseModel):
    tracking_number: str = Field(..., min_length=1)
    credentials: dict[str, Any] = _credentials_field(required=False)
    options: RequestOptions = Field(default_factory=RequestOptions)


class BoundingBox(BaseModel):
    north: float
    south: float
    east: float
    west: float

    @model_validator(mode="after")
    def north_of_south(self) -> "BoundingBox":
        """Reject boxes whose north edge is below the south edge."""
        if self.north < self.south:
            raise ValueError("north must be >= south")
        return self


class FetchPickupPointsRequest(BaseModel):
    """List pickup points, optionally filtered."""

    credentials: dict[str, Any] = _credentials_field(required=False)
    options: RequestOptions = Field(default_factory=RequestOptions)
    country: str | None = None
    bbox: BoundingBox | None = None
    updated_since: datetime | None = None


class RequestPickupRequest(BaseModel):
    """Ask the carrier to collect parcels from an address."""

    parcel_carrier_ids: list[str]
    contact: Contact
    pickup_date: datetime
    credentials: dict[str, Any] = _credentials_field()
    options: RequestOptions = Field(default_factory=RequestOptions)


class RatesRequest(BaseModel):
    parcels: list[Parcel]
    services: list[str] = Field(default_factory=list)
    credentials: dict[str, Any] = _credentials_field(required=False)
    options: RequestOptions = Field(default_factory=RequestOptions)


class CreateShipmentRequest(BaseModel):
    """Open a carrier-side shipment that parcels are attached to."""

    parcels: list[Parcel]
    credentials: dict[str, Any] = _credentials_field()
    options: RequestOptions = Field(default_factory=RequestOptions)
    reference: str | None = None


class CloseShipmentRequest(BaseModel):
    """Close a carrier-side shipment so labels can be produced."""

    shipment_carrier_id: str = Field(..., min_length=1)
    credentials: dict[str, Any] = _credentials_field()
    options: RequestOptions = Field(default_factory=RequestOptions)
