"""
Failure classification and the response envelope.

Every API endpoint answers with an `ApiResponse`. Failures the system can
explain are raised as `KnownError` subclasses and converted at the API edge;
anything else becomes an unknown failure with a fixed message.

Response types:
- Success: Operation completed successfully
- KnownFailure: System knows why it failed
- UnknownFailure: System does not know why it failed
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"

    # Resource failures
    NOT_FOUND = "not_found"
    NOT_RESOLVED = "not_resolved"

    # Service failures
    EXTERNAL_API_ERROR = "external_api_error"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class ApiResponse(BaseModel, Generic[T]):
    """Universal response envelope for all API endpoints."""

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    data: T | None = Field(
        default=None,
        description="Response data (present on success)",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="Failure details (present on non-success)",
    )

    @classmethod
    def success(cls, data: T) -> "ApiResponse[T]":
        """Create a success response."""
        return cls(outcome=OutcomeType.SUCCESS, data=data)

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ) -> "ApiResponse[Any]":
        """
        Create a known failure response.

        Use when the system knows exactly why the operation failed.
        Example: Species not found, catalog service unreachable.
        """
        return cls(
            outcome=OutcomeType.KNOWN_FAILURE,
            failure=FailureDetail(
                kind=kind,
                message=message,
                detail=detail,
                suggestion=suggestion,
            ),
        )

    @classmethod
    def unknown_failure(cls, detail: str | None = None) -> "ApiResponse[Any]":
        """Create an unknown failure response. The message is fixed."""
        return cls(
            outcome=OutcomeType.UNKNOWN_FAILURE,
            failure=FailureDetail(
                kind=FailureKind.UNKNOWN,
                message="Something went wrong and the cause is unknown. Try again.",
                detail=detail,
                suggestion="If this persists, please report the issue.",
            ),
        )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ApiResponse[Any]:
        """Convert to an ApiResponse."""
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


class CatalogFetchError(KnownError):
    """
    Raised when a list, category-index or detail request fails.

    Wraps transport errors and non-2xx responses from the catalog service.
    """

    def __init__(self, url: str, reason: str, status: int | None = None):
        self.url = url
        self.status = status
        super().__init__(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message="The species catalog could not be reached.",
            detail=f"{url}: {reason}",
            suggestion="No results for now. Try again in a moment.",
            status_code=502,
        )


class SpeciesNotFoundError(KnownError):
    """Raised when the catalog has no record for an identifier."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"No species named '{identifier}'.",
            suggestion="Check the spelling or browse the catalog.",
            status_code=404,
        )


class NotResolvedError(KnownError):
    """Raised when an operation needs a detail record that is not resolved yet."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(
            kind=FailureKind.NOT_RESOLVED,
            message=f"Details for '{identifier}' are not loaded yet.",
            suggestion="Wait for the entry to finish loading and try again.",
            status_code=409,
        )


def create_success(data: T) -> ApiResponse[T]:
    """Create a success response."""
    return ApiResponse[T](outcome=OutcomeType.SUCCESS, data=data)


def create_unknown_failure(exception: Exception) -> ApiResponse[Any]:
    """
    Create an unknown failure response from an exception.

    Only the exception type is exposed, never its message.
    """
    return ApiResponse.unknown_failure(detail=type(exception).__name__)
