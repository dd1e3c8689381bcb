"""Tests for batch aggregation."""

import pytest

from carrierkit.errors import ErrorCategory
from carrierkit.services.batch import (
    EMPTY_BATCH_SUMMARY,
    aggregate_batch,
    batch_summary,
    dominant_error_category,
    first_result,
    http_status_for_batch,
)
from carrierkit.services.carrier_types import CarrierResource, failed_item


def ok(carrier_id: str) -> CarrierResource:
    return CarrierResource(carrier_id=carrier_id)


def bad(code: str = "INVALID_ADDRESS", category: ErrorCategory = ErrorCategory.VALIDATION):
    return failed_item(code, "failed", category=category)


class TestAggregateBatch:
    """Counts, flags and summary lines."""

    def test_mixed_results(self):
        response = aggregate_batch([ok("A"), bad(), ok("C")], noun="parcels")
        assert response.success_count == 2
        assert response.failure_count == 1
        assert response.total_count == 3
        assert response.some_failed
        assert not response.all_succeeded
        assert not response.all_failed
        assert response.summary == "Mixed results: 2 succeeded, 1 failed"

    def test_all_succeeded(self):
        response = aggregate_batch([ok("A"), ok("B")], noun="parcels")
        assert response.all_succeeded
        assert response.summary == "All 2 parcels created successfully"

    def test_all_failed(self):
        response = aggregate_batch([bad(), bad()], noun="labels")
        assert response.all_failed
        assert response.summary == "All 2 labels failed"

    def test_empty(self):
        response = aggregate_batch([])
        assert response.total_count == 0
        assert not (response.all_succeeded or response.all_failed or response.some_failed)
        assert response.summary == EMPTY_BATCH_SUMMARY

    @pytest.mark.parametrize("outcomes", [
        [True], [False], [True, False], [False, False, True], [True] * 5,
    ])
    def test_counts_and_flags_agree(self, outcomes):
        items = [ok(f"id{i}") if good else bad() for i, good in enumerate(outcomes)]
        response = aggregate_batch(items)
        assert response.success_count + response.failure_count == response.total_count
        assert len(response.results) == response.total_count
        flags = [response.all_succeeded, response.all_failed, response.some_failed]
        assert sum(flags) == 1

    def test_preserves_order(self):
        items = [ok("A"), bad(), ok("C")]
        response = aggregate_batch(items)
        assert list(response.results) == items
        assert [r.carrier_id for r in response.successes] == ["A", "C"]
        assert len(response.failures) == 1

    def test_to_dict_includes_raw_only_when_set(self):
        assert "rawCarrierResponse" not in aggregate_batch([ok("A")]).to_dict()
        data = aggregate_batch([ok("A")], raw_carrier_response={"valid": True}).to_dict()
        assert data["rawCarrierResponse"] == {"valid": True}
        assert data["successCount"] == 1
        assert data["results"][0]["carrierId"] == "A"


class TestBatchSummary:

    def test_default_noun(self):
        assert batch_summary(3, 0) == "All 3 items created successfully"


class TestHttpStatusForBatch:
    """Host-service status mapping."""

    def test_all_succeeded_is_200(self):
        assert http_status_for_batch(aggregate_batch([ok("A")])) == 200

    def test_empty_is_200(self):
        assert http_status_for_batch(aggregate_batch([])) == 200

    def test_mixed_is_207(self):
        assert http_status_for_batch(aggregate_batch([ok("A"), bad()])) == 207

    def test_all_failed_is_400(self):
        response = aggregate_batch([bad(category=ErrorCategory.TRANSIENT)])
        assert http_status_for_batch(response) == 400

    def test_all_failed_uses_dominant_category(self):
        response = aggregate_batch([
            bad(category=ErrorCategory.TRANSIENT),
            bad(category=ErrorCategory.TRANSIENT),
            bad(category=ErrorCategory.VALIDATION),
        ])
        assert dominant_error_category(response) is ErrorCategory.TRANSIENT
        assert http_status_for_batch(response, dominant_category=True) == 503


class TestFirstResult:

    def test_first(self):
        assert first_result(aggregate_batch([ok("A"), ok("B")])).carrier_id == "A"

    def test_empty(self):
        assert first_result(aggregate_batch([])) is None
