"""Tests for shared/exceptions.py."""

from shared.exceptions import (
    AllStrategiesFailedError,
    AuthenticationError,
    AuthorizationError,
    DuplicateError,
    ExternalServiceError,
    NotFoundError,
    PayloadTooLargeError,
    SalesdeskError,
    ValidationError,
)


class TestSalesdeskError:
    def test_message(self):
        error = SalesdeskError("Test error")
        assert error.message == "Test error"
        assert str(error) == "Test error"

    def test_default_code_and_status(self):
        error = SalesdeskError("Test error")
        assert error.code == "INTERNAL_ERROR"
        assert error.status_code == 500
        assert error.details == {}

    def test_custom_code_and_details(self):
        error = SalesdeskError("Test error", code="CUSTOM", details={"key": "value"})
        assert error.code == "CUSTOM"
        assert error.details == {"key": "value"}

    def test_to_dict_omits_empty_details(self):
        assert SalesdeskError("Oops").to_dict() == {"code": "INTERNAL_ERROR", "message": "Oops"}

    def test_to_dict_includes_details(self):
        error = ValidationError("Bad", details={"field": "name"})
        assert error.to_dict() == {
            "code": "VALIDATION_ERROR",
            "message": "Bad",
            "details": {"field": "name"},
        }


class TestSubclasses:
    def test_status_codes(self):
        assert ValidationError("x").status_code == 400
        assert AuthenticationError("x").status_code == 401
        assert AuthorizationError("x").status_code == 403
        assert NotFoundError("x").status_code == 404
        assert DuplicateError("x").status_code == 409
        assert PayloadTooLargeError(1024).status_code == 413
        assert ExternalServiceError("x", service="s").status_code == 502

    def test_default_codes(self):
        assert AuthenticationError("x").code == "UNAUTHORIZED"
        assert AuthorizationError("x").code == "FORBIDDEN"
        assert NotFoundError("x").code == "NOT_FOUND"
        assert DuplicateError("x").code == "DUPLICATE"
        assert ExternalServiceError("x", service="s").code == "UPSTREAM_ERROR"

    def test_all_inherit_from_base(self):
        for cls in (ValidationError, AuthenticationError, AuthorizationError, NotFoundError, DuplicateError):
            assert issubclass(cls, SalesdeskError)


class TestPayloadTooLargeError:
    def test_message_in_megabytes(self):
        error = PayloadTooLargeError(10 * 1024 * 1024, actual_bytes=11 * 1024 * 1024)
        assert "10MB" in error.message
        assert error.details == {"max_bytes": 10 * 1024 * 1024, "actual_bytes": 11 * 1024 * 1024}


class TestExternalServiceError:
    def test_service_recorded_in_details(self):
        error = ExternalServiceError("Stripe down", service="stripe")
        assert error.service == "stripe"
        assert error.details["service"] == "stripe"


class TestAllStrategiesFailedError:
    def test_aggregates_errors(self):
        error = AllStrategiesFailedError(
            "llm", [("anthropic", RuntimeError("timeout")), ("openai", ValueError("bad key"))]
        )
        assert error.status_code == 502
        assert error.details["attempted"] == ["anthropic", "openai"]
        assert "anthropic: timeout" in error.message
        assert "openai: bad key" in error.message
        assert len(error.errors) == 2
