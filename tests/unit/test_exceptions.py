"""Unit tests for custom exception classes.

Tests the exception hierarchy, default error codes, HTTP status mapping
and details propagation for the scope governance engine.
"""

from taskscope.exceptions import (
    ScopeEngineError,
    ValidationError,
    NotFoundError,
    ConflictError,
    LockTimeoutError,
    StorageError,
    ExtractionError,
)


class TestScopeEngineError:
    def test_base_error_attributes(self):
        err = ScopeEngineError("Something failed", error_code="ERR_TEST", details={"key": "value"})
        assert err.message == "Something failed"
        assert err.error_code == "ERR_TEST"
        assert err.details == {"key": "value"}
        assert str(err) == "Something failed"

    def test_base_error_defaults(self):
        err = ScopeEngineError("Minimal error")
        assert err.error_code == "ERR_UNKNOWN"
        assert err.details is None
        assert err.status_code == 500


class TestSubclassErrorCodes:
    """Each subclass must carry its own error_code and status code."""

    def test_validation_error(self):
        err = ValidationError("bad input")
        assert err.error_code == "ERR_VALID_001"
        assert err.status_code == 400
        assert isinstance(err, ScopeEngineError)

    def test_not_found_error_names_identifier(self):
        err = NotFoundError("변경 요청", "CR-404", details={"project_id": "p1"})
        assert err.error_code == "ERR_NOT_FOUND_001"
        assert err.status_code == 404
        assert "CR-404" in err.message
        assert err.details == {"kind": "변경 요청", "id": "CR-404", "project_id": "p1"}

    def test_conflict_error(self):
        err = ConflictError("illegal transition")
        assert err.error_code == "ERR_CONFLICT_001"
        assert err.status_code == 409

    def test_lock_timeout_error(self):
        err = LockTimeoutError("busy")
        assert err.error_code == "ERR_LOCK_001"
        assert err.status_code == 503

    def test_storage_and_extraction_errors_are_server_errors(self):
        assert StorageError("disk").error_code == "ERR_STORE_001"
        assert StorageError("disk").status_code == 500
        assert ExtractionError("oops").error_code == "ERR_EXTRACT_001"
        assert ExtractionError("oops").status_code == 500
