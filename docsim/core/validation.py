"""
Input validation and error taxonomy for the similarity engine.

This module provides the custom exceptions raised while validating an
analysis request, reusable parameter validators, and a decorator that
validates function inputs before the call.
"""

import inspect
import math
from functools import wraps
from typing import Any, List, Mapping, Optional


class ValidationError(Exception):
    """
    A request or parameter was rejected before any work started.

    Attributes:
        message: Human-readable reason, safe to show to callers
        field: Name of the offending input, when there is one
        value: The rejected value (or a summary of it)
    """

    def __init__(self, message: str, field: str = None, value: Any = None):
        self.message = message
        self.field = field
        self.value = value
        super().__init__(message)


class InvalidInputCountError(ValidationError):
    """Raised when too few (or too many) documents are supplied."""
    pass


class InvalidThresholdError(ValidationError):
    """Raised when the similarity threshold is not a number in [0.0, 1.0]."""
    pass


class DocumentValidationError(ValidationError):
    """Raised for a malformed document entry."""
    pass


class ParameterValidationError(ValidationError):
    """Raised for an invalid engine or configuration parameter."""
    pass


class FileValidationError(ValidationError):
    """Raised when an input file is missing or not plain text."""
    pass


class AnalysisCancelledError(Exception):
    """Raised when an external cancellation signal aborts an analysis run."""

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Analysis cancelled during stage: {stage}")


def _reject(field: str, value: Any, message: str) -> ParameterValidationError:
    return ParameterValidationError(f"{field} {message}", field=field, value=value)


class ParameterValidator:
    """Coercing validators for numeric and string parameters. Booleans are never numbers."""

    @staticmethod
    def validate_positive_integer(value: Any, field: str, min_value: int = 1, max_value: Optional[int] = None) -> int:
        """Coerce ``value`` to int and check ``min_value <= value <= max_value``."""
        if isinstance(value, bool):
            raise _reject(field, value, "must be an integer, got bool")
        if isinstance(value, float) and not value.is_integer():
            raise _reject(field, value, f"must be a whole number, got {value}")
        try:
            number = value if isinstance(value, int) else int(value)
        except (ValueError, TypeError):
            raise _reject(field, value, f"must be an integer, got {type(value).__name__} {value!r}")

        if number < min_value or (max_value is not None and number > max_value):
            bounds = f">= {min_value}" if max_value is None else f"between {min_value} and {max_value}"
            raise _reject(field, number, f"must be {bounds}, got {number}")
        return number

    @staticmethod
    def validate_float_range(value: Any, field: str, min_value: float = 0.0, max_value: float = 1.0) -> float:
        """Coerce ``value`` to float and check it lies in the closed interval. NaN is rejected."""
        if isinstance(value, bool):
            raise _reject(field, value, "must be a number, got bool")
        try:
            number = float(value)
        except (ValueError, TypeError):
            raise _reject(field, value, f"must be a number, got {type(value).__name__} {value!r}")

        if math.isnan(number) or not min_value <= number <= max_value:
            raise _reject(field, value, f"must be within [{min_value}, {max_value}], got {value}")
        return number

    @staticmethod
    def validate_string(value: Any, field: str, min_length: int = 0, max_length: Optional[int] = None) -> str:
        if not isinstance(value, str):
            raise _reject(field, value, f"must be a string, got {type(value).__name__}")
        if len(value) < min_length:
            raise _reject(field, value, f"must have at least {min_length} characters")
        if max_length is not None and len(value) > max_length:
            raise _reject(field, value, f"must have at most {max_length} characters")
        return value


class RequestValidator:
    """Validation of the two request inputs: the document list and the threshold."""

    @staticmethod
    def validate_threshold(value: Any) -> float:
        """
        Validate the similarity threshold.

        Out-of-range values are rejected, never clamped.

        Raises:
            InvalidThresholdError: If the threshold is not a number in [0.0, 1.0]
        """
        try:
            return ParameterValidator.validate_float_range(value, "threshold", 0.0, 1.0)
        except ParameterValidationError as e:
            raise InvalidThresholdError(e.message, field="threshold", value=value)

    @staticmethod
    def validate_document_count(count: int, min_documents: int = 2, max_documents: Optional[int] = 5) -> int:
        """
        Validate the number of supplied documents.

        Raises:
            InvalidInputCountError: If the count is outside the allowed range
        """
        if count < min_documents:
            raise InvalidInputCountError(
                f"At least {min_documents} documents are required for similarity analysis, got {count}",
                field="documents",
                value=count
            )
        if max_documents is not None and count > max_documents:
            raise InvalidInputCountError(
                f"Maximum {max_documents} documents allowed, got {count}",
                field="documents",
                value=count
            )
        return count

    @staticmethod
    def validate_document_entry(entry: Any, position: int) -> Mapping[str, str]:
        """
        Validate one ``{name, text}`` entry and return it as a plain mapping.

        Raises:
            DocumentValidationError: If the entry is malformed
        """
        field = f"documents[{position}]"
        if hasattr(entry, "name") and hasattr(entry, "text"):
            name, text = entry.name, entry.text
        elif isinstance(entry, Mapping):
            if "name" not in entry or "text" not in entry:
                raise DocumentValidationError(
                    f"{field} must provide both 'name' and 'text'",
                    field=field,
                    value=list(entry.keys())
                )
            name, text = entry["name"], entry["text"]
        else:
            raise DocumentValidationError(
                f"{field} must be a mapping with 'name' and 'text', got {type(entry).__name__}",
                field=field,
                value=entry
            )

        if not isinstance(name, str):
            raise DocumentValidationError(
                f"{field}.name must be a string, got {type(name).__name__}",
                field=f"{field}.name",
                value=name
            )
        if not isinstance(text, str):
            raise DocumentValidationError(
                f"{field}.text must be a string, got {type(text).__name__}",
                field=f"{field}.text",
                value=type(text).__name__
            )
        return {"name": name, "text": text}

    @classmethod
    def validate_documents(cls, documents: Any, min_documents: int = 2,
                           max_documents: Optional[int] = 5) -> List[Mapping[str, str]]:
        """Validate the whole document list, count first."""
        if isinstance(documents, (str, bytes)) or not hasattr(documents, "__len__"):
            raise DocumentValidationError(
                f"documents must be a list, got {type(documents).__name__}",
                field="documents",
                value=type(documents).__name__
            )
        cls.validate_document_count(len(documents), min_documents, max_documents)
        return [cls.validate_document_entry(entry, i) for i, entry in enumerate(documents)]


def validate_inputs(**validators):
    """
    Validate and coerce keyword parameters before the wrapped call.

    Each validator receives the bound argument value (defaults applied)
    and returns the value to pass on. ``ValidationError`` propagates as
    is; any other exception becomes a ``ParameterValidationError``.

    Usage::

        @validate_inputs(batch_size=lambda v: ParameterValidator.validate_positive_integer(v, "batch_size"))
        def __init__(self, vocabulary, batch_size=256): ...
    """
    def decorator(func):
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(*args, **kwargs):
            bound = signature.bind(*args, **kwargs)
            bound.apply_defaults()

            for name, validator in validators.items():
                if name not in bound.arguments:
                    continue
                value = bound.arguments[name]
                try:
                    bound.arguments[name] = validator(value)
                except ValidationError:
                    raise
                except Exception as e:
                    raise ParameterValidationError(f"Invalid {name}: {e}", field=name, value=value) from e

            return func(*bound.args, **bound.kwargs)
        return wrapper
    return decorator
