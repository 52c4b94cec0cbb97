"""Unit tests for error kinds and the OperationResult envelope."""

from remittance_broker.core.errors import (
    ErrorCategory,
    ErrorKind,
    OperationResult,
    RemittanceError,
    StorageError,
)


class TestErrorKind:
    def test_verification_kinds(self):
        for kind in (
            ErrorKind.NO_MATCH,
            ErrorKind.AMBIGUOUS_MATCH,
            ErrorKind.EXPIRY_MISMATCH,
            ErrorKind.CREDENTIAL_EXPIRED,
        ):
            assert kind.category is ErrorCategory.VERIFICATION

    def test_business_rule_kinds(self):
        for kind in (
            ErrorKind.BENEFICIARY_NOT_FOUND,
            ErrorKind.AMOUNT_EXCEEDS_LIMIT,
            ErrorKind.RATE_UNAVAILABLE,
            ErrorKind.NOT_REFRESHABLE,
        ):
            assert kind.category is ErrorCategory.BUSINESS_RULE

    def test_every_kind_has_a_category(self):
        assert all(isinstance(kind.category, ErrorCategory) for kind in ErrorKind)


class TestOperationResult:
    def test_success_payload(self):
        payload = OperationResult.success({"orderNo": "RM1"}).to_payload()
        assert payload == {"ok": True, "data": {"orderNo": "RM1"}}

    def test_failure_payload_uses_camel_case(self):
        result = OperationResult.failure(ErrorKind.AMOUNT_EXCEEDS_LIMIT, "too much", data={"retryable": True})
        payload = result.to_payload()

        assert payload["ok"] is False
        assert payload["errorKind"] == "AmountExceedsLimit"
        assert payload["message"] == "too much"
        assert payload["data"] == {"retryable": True}
        assert result.category is ErrorCategory.BUSINESS_RULE

    def test_storage_error_is_remittance_error(self):
        assert issubclass(StorageError, RemittanceError)
        assert issubclass(StorageError, RuntimeError)
