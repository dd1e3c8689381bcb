"""Shared result types for carrier operations.

Neutral module with no transport or adapter imports. Used by the batch
aggregator, the adapter contract and the flow orchestrator.

A batch slot is either a CarrierResource (the carrier assigned an id) or a
FailedCarrierResource (it did not). The two share a ``status`` discriminant
and are never merged into one type with optional fields for both cases.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Union

from carrierkit.errors import ErrorCategory

FAILED_STATUS = "failed"


def _frozen_meta(meta: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(meta or {}))


@dataclass(frozen=True)
class ItemError:
    """Structured per-item error reported inside a batch response."""

    code: str
    message: str
    field: str | None = None
    category: ErrorCategory = ErrorCategory.VALIDATION

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
        }
        if self.field is not None:
            data["field"] = self.field
        return data


@dataclass(frozen=True)
class CarrierResource:
    """Result of one successful provider-side operation.

    Attributes:
        carrier_id: Opaque carrier-assigned identifier (parcel barcode,
            label id, shipment id, tracking number...).
        status: Normalized status string (e.g. "created", "closed").
        raw: Provider payload, retained verbatim.
        meta: Free-form carrier-specific metadata.
    """

    carrier_id: str
    status: str = "created"
    raw: Any = None
    meta: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.carrier_id:
            raise ValueError("CarrierResource requires a non-empty carrier_id")
        if self.status == FAILED_STATUS:
            raise ValueError("Use FailedCarrierResource for failed items")
        object.__setattr__(self, "meta", _frozen_meta(self.meta))

    @property
    def is_success(self) -> bool:
        return True

    @property
    def errors(self) -> tuple["ItemError", ...]:
        return ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "carrierId": self.carrier_id,
            "status": self.status,
            "raw": self.raw,
        }
        if self.meta:
            data["meta"] = dict(self.meta)
        return data


@dataclass(frozen=True)
class FailedCarrierResource:
    """Per-item failure: no carrier id, status fixed to "failed"."""

    errors: tuple[ItemError, ...]
    raw: Any = None
    meta: Mapping[str, Any] = field(default_factory=dict)
    status: Literal["failed"] = field(default=FAILED_STATUS, init=False)

    def __post_init__(self) -> None:
        errors = tuple(self.errors)
        if not errors:
            raise ValueError("FailedCarrierResource requires at least one ItemError")
        object.__setattr__(self, "errors", errors)
        object.__setattr__(self, "meta", _frozen_meta(self.meta))

    @property
    def carrier_id(self) -> None:
        return None

    @property
    def is_success(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status,
            "errors": [e.to_dict() for e in self.errors],
            "raw": self.raw,
        }
        if self.meta:
            data["meta"] = dict(self.meta)
        return data


BatchItem = Union[CarrierResource, FailedCarrierResource]


def failed_item(
    code: str,
    message: str,
    *,
    field: str | None = None,
    category: ErrorCategory = ErrorCategory.VALIDATION,
    raw: Any = None,
) -> FailedCarrierResource:
    """Build a single-error FailedCarrierResource."""
    return FailedCarrierResource(
        errors=(ItemError(code=code, message=message, field=field, category=category),),
        raw=raw,
    )


def missing_carrier_id(raw: Any = None, field: str = "carrierId") -> FailedCarrierResource:
    """Per-item failure for a carrier response that assigned no identifier.

    Categorised Transient, unlike carrier-reported item errors.
    """
    return failed_item(
        "MISSING_CARRIER_ID",
        "No identifier assigned by carrier",
        field=field,
        category=ErrorCategory.TRANSIENT,
        raw=raw,
    )
