"""Canonical domain and request models shared by all adapters."""

from carrierkit.models.canonical import (
    Address,
    Contact,
    Dimensions,
    Parcel,
    PickupPoint,
    PickupPointsResponse,
    Rate,
    RatesResponse,
    ServiceLevel,
    TrackingEvent,
    TrackingStatus,
    TrackingUpdate,
)
from carrierkit.models.requests import (
    BoundingBox,
    CloseShipmentRequest,
    CreateLabelRequest,
    CreateLabelsRequest,
    CreateParcelRequest,
    CreateParcelsRequest,
    CreateShipmentRequest,
    FetchPickupPointsRequest,
    RatesRequest,
    RequestOptions,
    RequestPickupRequest,
    TrackingRequest,
    VoidLabelRequest,
)

__all__ = [
    # Canonical
    "Address",
    "Contact",
    "Dimensions",
    "Parcel",
    "ServiceLevel",
    "TrackingStatus",
    "TrackingEvent",
    "TrackingUpdate",
    "PickupPoint",
    "PickupPointsResponse",
    "Rate",
    "RatesResponse",
    # Requests
    "RequestOptions",
    "BoundingBox",
    "CreateParcelRequest",
    "CreateParcelsRequest",
    "CreateLabelRequest",
    "CreateLabelsRequest",
    "VoidLabelRequest",
    "TrackingRequest",
    "FetchPickupPointsRequest",
    "RequestPickupRequest",
    "RatesRequest",
    "CreateShipmentRequest",
    "CloseShipmentRequest",
]
