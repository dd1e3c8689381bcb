"""Persistence boundary for the flow orchestrator.

The orchestrator only writes through this Protocol. Storage itself belongs
to the host application.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Protocol, runtime_checkable

from carrierkit.services.carrier_types import BatchItem

ResourceType = Literal["shipment", "parcel", "label"]


class FlowEventType(str, Enum):
    """Events appended while a flow runs."""

    SHIPMENT_CREATED = "SHIPMENT_CREATED"
    PARCEL_CREATED = "PARCEL_CREATED"
    SHIPMENT_CLOSED = "SHIPMENT_CLOSED"
    LABEL_GENERATED = "LABEL_GENERATED"
    ERROR_OCCURRED = "ERROR_OCCURRED"


@dataclass(frozen=True)
class DomainEvent:
    """One entry in an internal object's event history.

    Attributes:
        type: What happened.
        internal_id: Caller's id of the parcel or shipment.
        adapter_id: Adapter that performed the step.
        resource: Carrier result of the step, when there is one.
        details: Extra diagnostic data (e.g. error message and step).
        timestamp: When the event was recorded.
    """

    type: FlowEventType
    internal_id: str
    adapter_id: str
    resource: BatchItem | None = None
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@runtime_checkable
class Store(Protocol):
    """Write-side persistence used by the orchestrator."""

    async def save_carrier_resource(
        self, internal_id: str, resource_type: ResourceType, resource: BatchItem,
    ) -> None: ...

    async def append_event(self, internal_id: str, event: DomainEvent) -> None: ...
