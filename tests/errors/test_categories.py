"""Tests for the error category registry."""

import pytest

from carrierkit.errors import CATEGORY_REGISTRY, ErrorCategory, get_category_info


class TestErrorCategory:
    """Wire names and retry semantics."""

    def test_wire_names(self):
        assert [c.value for c in ErrorCategory] == [
            "Validation", "Auth", "RateLimit", "Transient", "Permanent",
        ]

    def test_only_rate_limit_and_transient_retryable(self):
        retryable = {c for c in ErrorCategory if c.is_retryable}
        assert retryable == {ErrorCategory.RATE_LIMIT, ErrorCategory.TRANSIENT}

    def test_every_category_registered(self):
        assert set(CATEGORY_REGISTRY) == set(ErrorCategory)


class TestGetCategoryInfo:

    def test_by_enum(self):
        info = get_category_info(ErrorCategory.AUTH)
        assert info.http_status == 401
        assert info.title == "Authentication Failed"

    def test_by_wire_name(self):
        assert get_category_info("RateLimit").http_status == 429

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            get_category_info("Flaky")
