"""Capability-declared carrier adapter contract.

Every canonical operation exists on CarrierAdapter, and each default
implementation raises CapabilityNotSupportedError. A concrete adapter
overrides the operations it supports and lists them in its class-level
``capabilities`` set. Callers branch on ``supports()`` rather than on
method presence.

Example:
    class FoxpostAdapter(BatchDelegatingAdapter):
        id = "foxpost"
        capabilities = frozenset({
            Capability.CREATE_PARCEL, Capability.CREATE_PARCELS,
        })

        async def create_parcels(self, request, context):
            ...

Adapters hold no per-call state: credentials travel in the request, the
transport and logger in the AdapterContext.
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, TypeVar

from carrierkit.errors import (
    CapabilityNotSupportedError,
    CarrierError,
    ErrorCategory,
)
from carrierkit.models import (
    CreateLabelRequest,
    CreateLabelsRequest,
    CreateParcelRequest,
    CreateParcelsRequest,
)
from carrierkit.services.batch import BatchResponse, first_result
from carrierkit.services.carrier_types import BatchItem
from carrierkit.services.http_transport import HttpTransport
from carrierkit.utils.logging_helpers import LoggingOptions

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    """Operations and features an adapter can declare."""

    RATES = "RATES"
    CREATE_SHIPMENT = "CREATE_SHIPMENT"
    CREATE_PARCEL = "CREATE_PARCEL"
    CREATE_PARCELS = "CREATE_PARCELS"
    CLOSE_SHIPMENT = "CLOSE_SHIPMENT"
    CREATE_LABEL = "CREATE_LABEL"
    CREATE_LABELS = "CREATE_LABELS"
    VOID_LABEL = "VOID_LABEL"
    TRACK = "TRACK"
    LIST_PICKUP_POINTS = "LIST_PICKUP_POINTS"
    PICKUP = "PICKUP"
    WEBHOOKS = "WEBHOOKS"
    TEST_MODE_SUPPORTED = "TEST_MODE_SUPPORTED"
    EXCHANGE_AUTH_TOKEN = "EXCHANGE_AUTH_TOKEN"


# Operation method name -> capability that gates it.
OPERATION_CAPABILITIES: Mapping[str, Capability] = MappingProxyType({
    "get_rates": Capability.RATES,
    "create_shipment": Capability.CREATE_SHIPMENT,
    "create_parcel": Capability.CREATE_PARCEL,
    "create_parcels": Capability.CREATE_PARCELS,
    "close_shipment": Capability.CLOSE_SHIPMENT,
    "create_label": Capability.CREATE_LABEL,
    "create_labels": Capability.CREATE_LABELS,
    "void_label": Capability.VOID_LABEL,
    "track": Capability.TRACK,
    "fetch_pickup_points": Capability.LIST_PICKUP_POINTS,
    "request_pickup": Capability.PICKUP,
})


@dataclass(frozen=True)
class AdapterContext:
    """Dependencies injected into every adapter call. Never carries credentials.

    Attributes:
        http: Outbound transport.
        logger: Logger for the operation. Defaults to the adapter module logger.
        logging_options: Verbosity controls for response logging.
        operation_name: Canonical name of the running operation.
    """

    http: HttpTransport | None = None
    logger: logging.Logger | None = None
    logging_options: LoggingOptions | None = None
    operation_name: str | None = None

    def with_operation(self, name: str) -> "AdapterContext":
        """Copy of this context naming the running operation."""
        return replace(self, operation_name=name)

    @property
    def log(self) -> logging.Logger:
        return self.logger or logger

    def require_http(self) -> HttpTransport:
        """Return the transport, or raise a Permanent error when none was injected."""
        if self.http is None:
            raise CarrierError(
                "AdapterContext has no HTTP transport",
                ErrorCategory.PERMANENT,
                carrier_code="MISSING_TRANSPORT",
            )
        return self.http


class CarrierAdapter:
    """Base class for carrier adapters.

    Class attributes:
        id: Stable adapter identifier (e.g. "foxpost").
        display_name: Human-readable carrier name.
        capabilities: Declared capabilities. Every operation capability
            listed here must be implemented by the subclass.
        requires: Operation name -> capabilities that must be exercised
            before it (e.g. create_label requires CLOSE_SHIPMENT). Consulted
            by the flow orchestrator, not enforced here.
    """

    id: ClassVar[str] = ""
    display_name: ClassVar[str | None] = None
    capabilities: ClassVar[frozenset[Capability]] = frozenset()
    requires: ClassVar[Mapping[str, frozenset[Capability]]] = MappingProxyType({})

    _FROZEN_ATTRS: ClassVar[frozenset[str]] = frozenset({"id", "capabilities", "requires"})

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.capabilities = frozenset(Capability(c) for c in cls.capabilities)
        cls.requires = MappingProxyType({
            op: frozenset(Capability(c) for c in caps)
            for op, caps in dict(cls.requires).items()
        })

        unknown = set(cls.requires) - set(OPERATION_CAPABILITIES)
        if unknown:
            raise TypeError(
                f"{cls.__name__}.requires names unknown operations: {sorted(unknown)}"
            )

        missing = [
            operation
            for operation, capability in OPERATION_CAPABILITIES.items()
            if capability in cls.capabilities
            and getattr(cls, operation) is getattr(CarrierAdapter, operation)
        ]
        if missing:
            raise TypeError(
                f"{cls.__name__} declares capabilities without implementing "
                f"{', '.join(missing)}"
            )
        if cls.capabilities and not cls.id:
            raise TypeError(f"{cls.__name__} declares capabilities but has no id")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self._FROZEN_ATTRS:
            raise AttributeError(f"{name} is read-only on carrier adapters")
        super().__setattr__(name, value)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r}>"

    # -- capability queries ---------------------------------------------------

    def supports(self, capability: Capability | str) -> bool:
        """Whether this adapter declares the capability."""
        return Capability(capability) in self.capabilities

    def requirements_for(self, operation: str) -> frozenset[Capability]:
        """Capabilities declared as prerequisites of an operation."""
        return self.requires.get(operation, frozenset())

    async def invoke(self, operation: str, request: Any, context: AdapterContext) -> Any:
        """Capability-gated dispatch by operation name.

        Args:
            operation: Operation method name (e.g. "create_parcels").
            request: Request model for the operation.
            context: Adapter context.

        Returns:
            The operation's result.

        Raises:
            CapabilityNotSupportedError: If the capability is not declared.
            CarrierError: Permanent, if the operation name is unknown.
        """
        capability = OPERATION_CAPABILITIES.get(operation)
        if capability is None:
            raise CarrierError(
                f"Unknown operation '{operation}' for adapter '{self.id}'",
                ErrorCategory.PERMANENT,
                carrier_code="UNKNOWN_OPERATION",
            )
        if not self.supports(capability):
            raise CapabilityNotSupportedError(capability.value, self.id)
        if context.operation_name is None:
            context = context.with_operation(operation)
        return await getattr(self, operation)(request, context)

    def _unsupported(self, capability: Capability) -> CapabilityNotSupportedError:
        return CapabilityNotSupportedError(capability.value, self.id or type(self).__name__)

    # -- operations -----------------------------------------------------------

    async def get_rates(self, request: Any, context: AdapterContext) -> Any:
        raise self._unsupported(Capability.RATES)

    async def create_shipment(self, request: Any, context: AdapterContext) -> Any:
        raise self._unsupported(Capability.CREATE_SHIPMENT)

    async def create_parcel(self, request: Any, context: AdapterContext) -> Any:
        raise self._unsupported(Capability.CREATE_PARCEL)

    async def create_parcels(self, request: Any, context: AdapterContext) -> Any:
        raise self._unsupported(Capability.CREATE_PARCELS)

    async def close_shipment(self, request: Any, context: AdapterContext) -> Any:
        raise self._unsupported(Capability.CLOSE_SHIPMENT)

    async def create_label(self, request: Any, context: AdapterContext) -> Any:
        raise self._unsupported(Capability.CREATE_LABEL)

    async def create_labels(self, request: Any, context: AdapterContext) -> Any:
        raise self._unsupported(Capability.CREATE_LABELS)

    async def void_label(self, request: Any, context: AdapterContext) -> Any:
        raise self._unsupported(Capability.VOID_LABEL)

    async def track(self, request: Any, context: AdapterContext) -> Any:
        raise self._unsupported(Capability.TRACK)

    async def fetch_pickup_points(self, request: Any, context: AdapterContext) -> Any:
        raise self._unsupported(Capability.LIST_PICKUP_POINTS)

    async def request_pickup(self, request: Any, context: AdapterContext) -> Any:
        raise self._unsupported(Capability.PICKUP)


# -- batch delegation -----------------------------------------------------------

async def delegate_to_batch(
    batch_call: Callable[[Any, AdapterContext], Awaitable[BatchResponse]],
    batch_request: Any,
    context: AdapterContext,
) -> BatchItem:
    """Run a one-element batch and unwrap its sole result.

    The single-item path never has its own carrier logic, so single and
    batch outcomes for the same input are identical.

    Args:
        batch_call: Bound batch operation (e.g. ``adapter.create_parcels``).
        batch_request: One-element batch request.
        context: Adapter context.

    Returns:
        The batch's first result, success or failure, unchanged.

    Raises:
        CarrierError: Transient, if the batch returned no results.
    """
    response = await batch_call(batch_request, context)
    if not isinstance(response, BatchResponse):
        raise CarrierError(
            "Batch operation returned an unexpected response shape",
            ErrorCategory.TRANSIENT,
            carrier_code="UNEXPECTED_BATCH_SHAPE",
            raw=repr(response),
        )
    item = first_result(response)
    if item is None:
        raise CarrierError(
            "Batch operation returned an empty results array",
            ErrorCategory.TRANSIENT,
            carrier_code="EMPTY_BATCH_RESULT",
            raw=response.raw_carrier_response,
        )
    return item


class BatchDelegatingAdapter(CarrierAdapter):
    """Adapter whose single-item operations delegate to their batch counterparts."""

    _BATCH_COUNTERPARTS: ClassVar[Mapping[Capability, Capability]] = MappingProxyType({
        Capability.CREATE_PARCEL: Capability.CREATE_PARCELS,
        Capability.CREATE_LABEL: Capability.CREATE_LABELS,
    })

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        for single, batch in cls._BATCH_COUNTERPARTS.items():
            if single in cls.capabilities and batch not in cls.capabilities:
                raise TypeError(
                    f"{cls.__name__} declares {single.value} but not {batch.value}, "
                    "which it delegates to"
                )

    async def create_parcel(
        self, request: CreateParcelRequest, context: AdapterContext,
    ) -> BatchItem:
        if not self.supports(Capability.CREATE_PARCEL):
            raise self._unsupported(Capability.CREATE_PARCEL)
        return await delegate_to_batch(
            self.create_parcels, CreateParcelsRequest.single(request), context,
        )

    async def create_label(
        self, request: CreateLabelRequest, context: AdapterContext,
    ) -> BatchItem:
        if not self.supports(Capability.CREATE_LABEL):
            raise self._unsupported(Capability.CREATE_LABEL)
        return await delegate_to_batch(
            self.create_labels, CreateLabelsRequest.single(request), context,
        )


# -- adapter wrappers ---------------------------------------------------------------

A = TypeVar("A", bound=CarrierAdapter)


class _AdapterProxy(ABC):
    """Transparent proxy that wraps operation methods of an adapter."""

    def __init__(self, adapter: CarrierAdapter) -> None:
        object.__setattr__(self, "_adapter", adapter)

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._adapter, name)
        if name in OPERATION_CAPABILITIES and callable(attr):
            return self._wrap(name, attr)
        return attr

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self._adapter, name, value)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._adapter!r}>"

    async def invoke(self, operation: str, request: Any, context: AdapterContext) -> Any:
        capability = OPERATION_CAPABILITIES.get(operation)
        if capability is None or not self._adapter.supports(capability):
            return await self._adapter.invoke(operation, request, context)
        if context.operation_name is None:
            context = context.with_operation(operation)
        return await getattr(self, operation)(request, context)

    @abstractmethod
    def _wrap(self, name: str, method: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        """Return the wrapped form of operation method `name`."""


class _OperationNameProxy(_AdapterProxy):
    def _wrap(self, name: str, method: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        async def call(request: Any, context: AdapterContext) -> Any:
            if context.operation_name is None:
                context = context.with_operation(name)
            return await method(request, context)
        return call


class _CallTracingProxy(_AdapterProxy):
    def __init__(self, adapter: CarrierAdapter, trace_logger: logging.Logger | None) -> None:
        super().__init__(adapter)
        object.__setattr__(self, "_trace_logger", trace_logger or logger)

    def _wrap(self, name: str, method: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        adapter_id = self._adapter.id
        trace = self._trace_logger

        async def call(request: Any, context: AdapterContext) -> Any:
            op = context.operation_name or name
            start = time.monotonic()
            trace.debug("[%s] %s started", adapter_id, op)
            try:
                result = await method(request, context)
            except Exception as e:
                trace.error(
                    "[%s] %s failed after %dms: %s",
                    adapter_id, op, (time.monotonic() - start) * 1000, e,
                )
                raise
            trace.info(
                "[%s] %s completed in %dms",
                adapter_id, op, (time.monotonic() - start) * 1000,
            )
            return result
        return call


def with_operation_name(adapter: A) -> A:
    """Wrap an adapter so every operation call names itself in the context.

    An operation name already set on the context is kept.
    """
    return _OperationNameProxy(adapter)  # type: ignore[return-value]


def with_call_tracing(adapter: A, trace_logger: logging.Logger | None = None) -> A:
    """Wrap an adapter so every operation call logs start, finish and duration."""
    return _CallTracingProxy(adapter, trace_logger)  # type: ignore[return-value]
