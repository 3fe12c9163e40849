"""Tests for the unified exception taxonomy.

Validates:
- ManagementError hierarchy and structured attributes
- Category classification (validation, transient, permanent, contract)
- ``to_error_dict()`` produces stable payload keys
- Retry semantics are consistent with taxonomy class
- All backend/activity exceptions are ManagementError subclasses
"""

from __future__ import annotations

from typing import ClassVar

import pytest

from search_mgmt.activities.provisioning import ProvisioningError
from search_mgmt.auth.credentials import CredentialError
from search_mgmt.backends.base import (
    ArmAuthError,
    ArmRequestError,
    ArmTransportError,
    BackendError,
    ResourceNotFoundError,
    error_for_status,
)
from search_mgmt.core.config import ConfigValidationError
from search_mgmt.core.exceptions import (
    ContractError,
    ManagementError,
    PermanentError,
    TransientError,
    ValidationError,
)
from search_mgmt.models._validation import ModelValidationError
from search_mgmt.models.provisioning import PollResult, ProvisioningState


class TestManagementErrorBase:
    """ManagementError base class behavior."""

    def test_default_attributes(self) -> None:
        err = ManagementError("boom")
        assert err.message == "boom"
        assert err.stage == ""
        assert err.code == ""
        assert err.retryable is False
        assert err.correlation_id == ""

    def test_custom_attributes(self) -> None:
        err = ManagementError(
            "fail",
            stage="backend",
            code="ARM_REQUEST_FAILED",
            retryable=True,
            correlation_id="abc-123",
        )
        assert err.stage == "backend"
        assert err.code == "ARM_REQUEST_FAILED"
        assert err.retryable is True
        assert err.correlation_id == "abc-123"

    def test_str_is_message(self) -> None:
        err = ManagementError("human-readable error")
        assert str(err) == "human-readable error"

    def test_to_error_dict_keys(self) -> None:
        err = ManagementError("x", stage="s", code="C", retryable=True, correlation_id="id")
        d = err.to_error_dict()
        assert set(d.keys()) == {
            "category",
            "code",
            "stage",
            "message",
            "retryable",
            "correlation_id",
        }
        assert d["message"] == "x"
        assert d["stage"] == "s"
        assert d["code"] == "C"
        assert d["retryable"] is True
        assert d["correlation_id"] == "id"


class TestCategoryBases:
    """Category base classes set correct defaults."""

    def test_validation_error_not_retryable(self) -> None:
        err = ValidationError("bad input")
        assert err.retryable is False
        assert err.category == "validation"

    def test_transient_error_retryable(self) -> None:
        err = TransientError("timeout")
        assert err.retryable is True
        assert err.category == "transient"

    def test_permanent_error_not_retryable(self) -> None:
        err = PermanentError("gone")
        assert err.retryable is False
        assert err.category == "permanent"

    def test_contract_error_not_retryable(self) -> None:
        err = ContractError("schema drift")
        assert err.retryable is False
        assert err.category == "contract"

    def test_dynamic_category_from_retryable(self) -> None:
        retryable = ManagementError("x", retryable=True)
        assert retryable.category == "transient"
        not_retryable = ManagementError("x", retryable=False)
        assert not_retryable.category == "permanent"


class TestAllExceptionsAreManagementError:
    """Every custom exception inherits from ManagementError."""

    EXCEPTION_CLASSES: ClassVar[list[type[ManagementError]]] = [
        BackendError,
        ArmRequestError,
        ArmAuthError,
        ArmTransportError,
        ResourceNotFoundError,
        CredentialError,
        ConfigValidationError,
        ModelValidationError,
        ProvisioningError,
    ]

    def test_all_subclass_management_error(self) -> None:
        for cls in self.EXCEPTION_CLASSES:
            assert issubclass(cls, ManagementError), f"{cls.__name__} is not a ManagementError"


class TestExceptionStageAndCode:
    """Every domain exception has a default stage and code."""

    def test_config_validation_error(self) -> None:
        err = ConfigValidationError("POLL_INTERVAL_SECONDS", 0, "must be > 0")
        assert err.stage == "config"
        assert err.code == "CONFIG_VALIDATION_FAILED"
        assert err.key == "POLL_INTERVAL_SECONDS"

    def test_model_validation_error_is_value_error(self) -> None:
        err = ModelValidationError("PollPolicy", "interval_seconds", 0, "must be > 0")
        assert isinstance(err, ValueError)
        assert err.stage == "model_validation"
        assert err.code == "MODEL_VALIDATION_FAILED"
        assert err.category == "permanent"
        assert "PollPolicy.interval_seconds=0" in err.message

    def test_credential_error(self) -> None:
        err = CredentialError("no token")
        assert err.stage == "auth"
        assert err.code == "CREDENTIAL_FAILED"
        assert err.retryable is False

    def test_provisioning_error_keeps_result(self) -> None:
        result = PollResult.timed_out(ProvisioningState.IN_PROGRESS, attempts=3)
        err = ProvisioningError("create did not complete", result)
        assert err.stage == "provisioning"
        assert err.code == "PROVISIONING_FAILED"
        assert err.result is result


class TestBackendErrors:
    """Backend exceptions carry transport context and retry hints."""

    def test_str_includes_backend(self) -> None:
        err = ArmRequestError("rest", "bad request", status_code=400)
        assert str(err) == "[rest] bad request"
        assert err.stage == "backend"

    def test_transport_error_retryable(self) -> None:
        err = ArmTransportError("rest", "connection reset")
        assert err.retryable is True
        assert err.category == "transient"
        assert err.code == "ARM_TRANSPORT_FAILED"

    def test_not_found_permanent(self) -> None:
        err = ResourceNotFoundError("sdk", "missing", status_code=404)
        assert err.retryable is False
        assert err.category == "permanent"
        assert err.code == "RESOURCE_NOT_FOUND"

    def test_error_dict_carries_http_context(self) -> None:
        err = ArmRequestError(
            "rest",
            "name taken",
            status_code=409,
            error_code="ServiceNameUnavailable",
            correlation_id="c-9",
        )
        d = err.to_error_dict()
        assert d["backend"] == "rest"
        assert d["status_code"] == 409
        assert d["error_code"] == "ServiceNameUnavailable"
        assert d["correlation_id"] == "c-9"

    def test_error_dict_omits_missing_http_context(self) -> None:
        d = ArmTransportError("sdk", "connection reset").to_error_dict()
        assert d["backend"] == "sdk"
        assert "status_code" not in d
        assert "error_code" not in d

    def test_provisioning_error_dict_carries_poll_result(self) -> None:
        result = PollResult.timed_out(ProvisioningState.IN_PROGRESS, attempts=3)
        d = ProvisioningError("did not complete", result).to_error_dict()
        assert d["poll_result"] == result.to_dict()

    @pytest.mark.parametrize(
        ("status", "cls", "retryable"),
        [
            (404, ResourceNotFoundError, False),
            (401, ArmAuthError, False),
            (403, ArmAuthError, False),
            (400, ArmRequestError, False),
            (409, ArmRequestError, False),
            (408, ArmRequestError, True),
            (429, ArmRequestError, True),
            (500, ArmRequestError, True),
            (503, ArmRequestError, True),
        ],
    )
    def test_error_for_status(self, status: int, cls: type[BackendError], retryable: bool) -> None:
        err = error_for_status("rest", status, "msg", error_code="Code", correlation_id="req-1")
        assert type(err) is cls
        assert err.retryable is retryable
        assert err.status_code == status
        assert err.error_code == "Code"
        assert err.correlation_id == "req-1"
