"""Model validation error and range-check helpers shared by the models."""

from __future__ import annotations

from search_mgmt.core.exceptions import ManagementError


class ModelValidationError(ValueError, ManagementError):
    """Raised when a domain model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        ManagementError.__init__(self, formatted)


def check_range(model: str, field_name: str, value: float, lo: float, hi: float) -> None:
    """Raise `ModelValidationError` if *value* falls outside [lo, hi]."""
    if value < lo or value > hi:
        raise ModelValidationError(model, field_name, value, f"must be between {lo} and {hi}")


def check_min(model: str, field_name: str, value: float | int, lo: float | int) -> None:
    """Raise `ModelValidationError` if *value* is below *lo*."""
    if value < lo:
        raise ModelValidationError(model, field_name, value, f"must be >= {lo}")


def check_positive(model: str, field_name: str, value: float | int) -> None:
    """Raise `ModelValidationError` if *value* is not strictly positive."""
    if value <= 0:
        raise ModelValidationError(model, field_name, value, "must be > 0")


def check_non_empty(model: str, field_name: str, value: str) -> None:
    """Raise `ModelValidationError` if *value* is empty or blank."""
    if not value or not value.strip():
        raise ModelValidationError(model, field_name, value, "must not be empty")
