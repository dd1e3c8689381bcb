"""Batch result aggregation.

Turns a carrier's per-item outcomes into a BatchResponse with counts,
three mutually exclusive status flags and a summary line. Item failures
stay in-band as FailedCarrierResource entries; nothing here raises for them.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from carrierkit.errors import ErrorCategory, get_category_info
from carrierkit.services.carrier_types import BatchItem, CarrierResource

EMPTY_BATCH_SUMMARY = "No items to process"


@dataclass(frozen=True)
class BatchResponse:
    """Aggregated outcome of one batch operation.

    Attributes:
        results: Per-item outcomes in input order.
        success_count: Items the carrier assigned an id to.
        failure_count: Items that failed.
        total_count: Number of items in the batch.
        all_succeeded: True when every item succeeded (and there was one).
        all_failed: True when every item failed (and there was one).
        some_failed: True when successes and failures are mixed.
        summary: Human-readable one-line summary.
        raw_carrier_response: Whole carrier response, when kept.
    """

    results: tuple[BatchItem, ...]
    success_count: int
    failure_count: int
    total_count: int
    all_succeeded: bool
    all_failed: bool
    some_failed: bool
    summary: str
    raw_carrier_response: Any = None

    @property
    def successes(self) -> list[CarrierResource]:
        return [r for r in self.results if is_success(r)]

    @property
    def failures(self) -> list[BatchItem]:
        return [r for r in self.results if not is_success(r)]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the batch response JSON shape."""
        data: dict[str, Any] = {
            "results": [r.to_dict() for r in self.results],
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "totalCount": self.total_count,
            "allSucceeded": self.all_succeeded,
            "allFailed": self.all_failed,
            "someFailed": self.some_failed,
            "summary": self.summary,
        }
        if self.raw_carrier_response is not None:
            data["rawCarrierResponse"] = self.raw_carrier_response
        return data


def is_success(item: BatchItem) -> bool:
    """An item succeeded if it carries a carrier id and no errors."""
    return bool(item.carrier_id) and not item.errors


def batch_summary(success_count: int, failure_count: int, noun: str = "items") -> str:
    """Build the summary line for the given counts.

    Args:
        success_count: Number of successful items.
        failure_count: Number of failed items.
        noun: Plural noun for the items (e.g. "parcels", "labels").

    Returns:
        One of the fixed summary templates.
    """
    total = success_count + failure_count
    if total == 0:
        return EMPTY_BATCH_SUMMARY
    if failure_count == 0:
        return f"All {total} {noun} created successfully"
    if success_count == 0:
        return f"All {total} {noun} failed"
    return f"Mixed results: {success_count} succeeded, {failure_count} failed"


def aggregate_batch(
    items: Iterable[BatchItem],
    *,
    noun: str = "items",
    raw_carrier_response: Any = None,
) -> BatchResponse:
    """Aggregate per-item outcomes into a BatchResponse.

    Args:
        items: Per-item outcomes, in input order.
        noun: Plural noun used in the summary line.
        raw_carrier_response: Whole carrier response to keep for diagnostics.

    Returns:
        BatchResponse. An empty input yields zero counts, all flags false
        and the neutral "No items to process" summary.
    """
    results = tuple(items)
    success_count = 0
    for item in results:
        if is_success(item):
            success_count += 1
    total = len(results)
    failure_count = total - success_count

    return BatchResponse(
        results=results,
        success_count=success_count,
        failure_count=failure_count,
        total_count=total,
        all_succeeded=total > 0 and failure_count == 0,
        all_failed=total > 0 and success_count == 0,
        some_failed=success_count > 0 and failure_count > 0,
        summary=batch_summary(success_count, failure_count, noun),
        raw_carrier_response=raw_carrier_response,
    )


def dominant_error_category(response: BatchResponse) -> ErrorCategory | None:
    """Most frequent category among the batch's item errors.

    Ties resolve to the category seen first. Returns None when the batch
    has no item errors.
    """
    counts: Counter[ErrorCategory] = Counter()
    for item in response.results:
        for error in item.errors:
            counts[error.category] += 1
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def http_status_for_batch(
    response: BatchResponse,
    dominant_category: bool = False,
) -> int:
    """Map a BatchResponse to the HTTP status a host service should answer with.

    Args:
        response: The aggregated batch.
        dominant_category: When True, an all-failed batch answers with the
            status of its dominant error category instead of a flat 400.

    Returns:
        200 when all succeeded (or the batch is empty), 207 for mixed
        results, 400 (or the dominant category's status) when all failed.
    """
    if response.some_failed:
        return 207
    if response.all_failed:
        if dominant_category:
            category = dominant_error_category(response)
            if category is not None:
                return get_category_info(category).http_status
        return 400
    return 200


def first_result(response: BatchResponse) -> BatchItem | None:
    """Return the first per-item result, or None for an empty batch."""
    return response.results[0] if response.results else None
