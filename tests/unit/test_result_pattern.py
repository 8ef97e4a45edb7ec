"""
Tests for Result Pattern Implementation
"""

import pytest
from services.common.result import Result


class TestResultPattern:
    """Test suite for Result pattern"""

    def test_success_result(self):
        contacts = [{"id": 1, "phone": "2065550101"}]
        result = Result.success(contacts)

        assert result.is_success is True
        assert result.is_failure is False
        assert result.data == contacts
        assert result.value == contacts
        assert result.error is None
        assert result.error_code is None
        assert bool(result) is True

    def test_failure_result(self):
        result = Result.failure("Contact not found: 7", code="NOT_FOUND")

        assert result.is_success is False
        assert result.is_failure is True
        assert result.data is None
        assert result.error == "Contact not found: 7"
        assert result.error_code == "NOT_FOUND"
        assert result.code == "NOT_FOUND"
        assert bool(result) is False

    def test_metadata(self):
        assert Result.success(1, metadata={"rows": 3}).metadata == {"rows": 3}
        assert Result.failure("bad", metadata={"field": "label"}).metadata == {"field": "label"}

    def test_unwrap(self):
        assert Result.success([1, 2]).unwrap() == [1, 2]

        with pytest.raises(ValueError, match="Cannot unwrap a failure result: boom"):
            Result.failure("boom").unwrap()

    def test_unwrap_or(self):
        assert Result.success("data").unwrap_or("default") == "data"
        assert Result.failure("error").unwrap_or("default") == "default"

    def test_repr(self):
        assert repr(Result.success(5)) == "Result.success(data=5)"
        assert repr(Result.failure("bad", code="VALIDATION_ERROR")) == (
            "Result.failure(error='bad', code='VALIDATION_ERROR')"
        )
