"""Create-label flow.

Runs the capability-gated sequence shipment -> parcels -> close -> labels
against one adapter:

1. create_shipment, if the adapter supports CREATE_SHIPMENT
2. create_parcel per parcel, if it supports CREATE_PARCEL, attached to the
   carrier shipment id (or the caller's shipment id / parcel id)
3. close_shipment, if create_label requires CLOSE_SHIPMENT and it is supported
4. create_label per successfully created parcel, if it supports CREATE_LABEL

The first raised error aborts the flow with a FlowAbortedError carrying
the step name and the partial result. Nothing is rolled back. Per-item
failures returned by the carrier are kept in the result and their labels
skipped.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from carrierkit.errors import CarrierError, classify_failure
from carrierkit.models import (
    CloseShipmentRequest,
    CreateLabelRequest,
    CreateParcelRequest,
    CreateShipmentRequest,
    Parcel,
    RequestOptions,
)
from carrierkit.orchestrator.store import DomainEvent, FlowEventType, ResourceType, Store
from carrierkit.services.adapter import AdapterContext, Capability, CarrierAdapter
from carrierkit.services.carrier_types import BatchItem, CarrierResource
from carrierkit.utils.logging_helpers import safe_log

logger = logging.getLogger(__name__)


@dataclass
class CreateLabelFlowResult:
    """Results accumulated by the flow, complete or partial.

    Attributes:
        shipment: Result of create_shipment, when it ran.
        parcel_results: One result per parcel, in input order.
        closed_shipment: Result of close_shipment, when it ran.
        label_results: One result per parcel a label was requested for.
        skipped_parcels: Internal ids of parcels whose label was skipped
            because the carrier did not create them.
    """

    shipment: BatchItem | None = None
    parcel_results: list[BatchItem] = field(default_factory=list)
    closed_shipment: BatchItem | None = None
    label_results: list[BatchItem] = field(default_factory=list)
    skipped_parcels: list[str] = field(default_factory=list)

    @property
    def created_parcels(self) -> list[CarrierResource]:
        return [r for r in self.parcel_results if isinstance(r, CarrierResource)]

    @property
    def created_labels(self) -> list[CarrierResource]:
        return [r for r in self.label_results if isinstance(r, CarrierResource)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "shipment": self.shipment.to_dict() if self.shipment else None,
            "parcelResults": [r.to_dict() for r in self.parcel_results],
            "closedShipment": self.closed_shipment.to_dict() if self.closed_shipment else None,
            "labelResults": [r.to_dict() for r in self.label_results],
            "skippedParcels": list(self.skipped_parcels),
        }


class FlowAbortedError(CarrierError):
    """A flow step failed. Same category as the failure that caused it.

    Attributes:
        step: Name of the step that failed (e.g. "create_parcel").
        partial: Results accumulated before the failure.
        cause: The classified failure.
    """

    def __init__(self, step: str, cause: CarrierError, partial: CreateLabelFlowResult) -> None:
        super().__init__(
            f"Create-label flow aborted at {step}: {cause.message}",
            cause.category,
            carrier_code=cause.carrier_code,
            retry_after_ms=cause.retry_after_ms,
            raw=cause.raw,
        )
        self.step = step
        self.partial = partial
        self.cause = cause


def _failed_step_error(step: str, item: BatchItem) -> CarrierError:
    """CarrierError for a whole-request step the carrier answered with a failure."""
    first = item.errors[0]
    return CarrierError(
        f"{step} failed: {first.message}",
        first.category,
        carrier_code=first.code,
        raw=item.raw,
    )


async def execute_create_label_flow(
    adapter: CarrierAdapter,
    parcels: list[Parcel],
    credentials: dict[str, Any],
    context: AdapterContext,
    *,
    store: Store | None = None,
    options: RequestOptions | None = None,
    shipment_id: str | None = None,
) -> CreateLabelFlowResult:
    """Run the create-label flow for a set of parcels.

    Args:
        adapter: Adapter to run against.
        parcels: Parcels to ship, in order.
        credentials: Carrier credentials attached to every request.
        context: Adapter context (transport, logger).
        store: Optional persistence for results and events.
        options: Request options attached to every request.
        shipment_id: Caller's internal shipment id. Defaults to the first
            parcel's shipment_id or id.

    Returns:
        CreateLabelFlowResult with every step's results.

    Raises:
        FlowAbortedError: A step raised. Carries the step and partial result.
    """
    options = options or RequestOptions()
    result = CreateLabelFlowResult()
    if not parcels:
        logger.info("Flow: no parcels to process for adapter %s", adapter.id)
        return result

    internal_shipment_id = shipment_id or parcels[0].shipment_id or parcels[0].id
    log = context.log
    step = "start"

    async def record(
        internal_id: str,
        resource_type: ResourceType,
        event_type: FlowEventType,
        resource: BatchItem,
    ) -> None:
        if store is None:
            return
        await store.save_carrier_resource(internal_id, resource_type, resource)
        await store.append_event(
            internal_id,
            DomainEvent(
                type=event_type,
                internal_id=internal_id,
                adapter_id=adapter.id,
                resource=resource,
            ),
        )

    try:
        carrier_shipment_id: str | None = None

        if adapter.supports(Capability.CREATE_SHIPMENT):
            step = "create_shipment"
            log.debug("Flow: creating shipment for %d parcels", len(parcels))
            shipment = await adapter.create_shipment(
                CreateShipmentRequest(parcels=parcels, credentials=credentials, options=options),
                context.with_operation(step),
            )
            result.shipment = shipment
            if not shipment.is_success:
                raise _failed_step_error(step, shipment)
            carrier_shipment_id = shipment.carrier_id
            await record(internal_shipment_id, "shipment", FlowEventType.SHIPMENT_CREATED, shipment)
            log.info("Flow: shipment created carrier_id=%s", carrier_shipment_id)

        if adapter.supports(Capability.CREATE_PARCEL):
            step = "create_parcel"
            step_context = context.with_operation(step)
            for parcel in parcels:
                attached = parcel.model_copy(update={
                    "shipment_id": carrier_shipment_id or parcel.shipment_id or parcel.id,
                })
                log.debug(
                    "Flow: creating parcel id=%s weight=%dg", parcel.id, parcel.weight_grams,
                )
                parcel_result = await adapter.create_parcel(
                    CreateParcelRequest(parcel=attached, credentials=credentials, options=options),
                    step_context,
                )
                result.parcel_results.append(parcel_result)
                safe_log(
                    step_context, logging.DEBUG, "Flow: create_parcel result",
                    {"parcelId": parcel.id, "status": parcel_result.status, "raw": parcel_result.raw},
                )
                if parcel_result.is_success:
                    await record(parcel.id, "parcel", FlowEventType.PARCEL_CREATED, parcel_result)
                    log.info(
                        "Flow: parcel created id=%s carrier_id=%s",
                        parcel.id, parcel_result.carrier_id,
                    )
                else:
                    log.warning(
                        "Flow: carrier rejected parcel id=%s: %s",
                        parcel.id, parcel_result.errors[0].message,
                    )

        if (
            Capability.CLOSE_SHIPMENT in adapter.requirements_for("create_label")
            and adapter.supports(Capability.CLOSE_SHIPMENT)
        ):
            step = "close_shipment"
            to_close = carrier_shipment_id or internal_shipment_id
            log.debug("Flow: closing shipment %s", to_close)
            closed = await adapter.close_shipment(
                CloseShipmentRequest(
                    shipment_carrier_id=to_close, credentials=credentials, options=options,
                ),
                context.with_operation(step),
            )
            result.closed_shipment = closed
            if not closed.is_success:
                raise _failed_step_error(step, closed)
            await record(internal_shipment_id, "shipment", FlowEventType.SHIPMENT_CLOSED, closed)
            log.info("Flow: shipment closed %s", to_close)

        if adapter.supports(Capability.CREATE_LABEL):
            step = "create_label"
            for parcel, parcel_result in zip(parcels, result.parcel_results):
                if not parcel_result.is_success:
                    log.warning("Flow: skipping label for parcel id=%s, not created", parcel.id)
                    result.skipped_parcels.append(parcel.id)
                    continue
                label = await adapter.create_label(
                    CreateLabelRequest(
                        parcel_carrier_id=parcel_result.carrier_id,
                        credentials=credentials,
                        options=options,
                    ),
                    context.with_operation(step),
                )
                result.label_results.append(label)
                if label.is_success:
                    await record(parcel.id, "label", FlowEventType.LABEL_GENERATED, label)
                    log.info("Flow: label created for parcel id=%s", parcel.id)
                else:
                    log.warning(
                        "Flow: carrier rejected label for parcel id=%s: %s",
                        parcel.id, label.errors[0].message,
                    )

        return result

    except Exception as e:
        cause = e if isinstance(e, CarrierError) else classify_failure(
            e, carrier_name=adapter.display_name or adapter.id,
        )
        log.error("Flow: %s failed for adapter %s: %s", step, adapter.id, cause)
        if store is not None:
            await _record_error(store, adapter.id, parcels[0].id, step, cause)
        raise FlowAbortedError(step, cause, result) from e


async def _record_error(
    store: Store, adapter_id: str, internal_id: str, step: str, cause: CarrierError,
) -> None:
    event = DomainEvent(
        type=FlowEventType.ERROR_OCCURRED,
        internal_id=internal_id,
        adapter_id=adapter_id,
        details={"step": step, **cause.to_dict(include_raw=False)},
    )
    try:
        await store.append_event(internal_id, event)
    except Exception:
        logger.exception("Flow: could not record %s event for %s", event.type.value, internal_id)
