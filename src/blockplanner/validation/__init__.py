"""Validation module for verifying placement correctness."""

from blockplanner.validation.validator import (
    PlacementValidator,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
)

__all__ = [
    "PlacementValidator",
    "ValidationError",
    "ValidationErrorType",
    "ValidationResult",
]
