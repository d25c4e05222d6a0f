from collections.abc import Generator
from contextlib import contextmanager
from enum import Enum
from typing import Any

from botocore.exceptions import ClientError, ConnectTimeoutError, ReadTimeoutError


class DynafriendError(Exception):
    """Base exception for all dynafriend errors."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


# --- Query construction / planning errors ---


class FilterConflictError(DynafriendError):
    """Raised when two conditions are declared on the same attribute key."""

    def __init__(self, key: str, condition_name: str) -> None:
        super().__init__(f"key \"{key}\" already used in \"{condition_name}\" condition")
        self.key = key
        self.condition_name = condition_name


class NoViableIndexError(DynafriendError):
    """Raised when no index of the table can serve a query."""

    def __init__(self, table_name: str) -> None:
        super().__init__(f"no viable indexes found for table \"{table_name}\" for given query")
        self.table_name = table_name


class UnknownFilterTypeError(DynafriendError):
    """Raised when the compiler meets a filter type it cannot translate."""

    def __init__(self, filter_type: Any) -> None:
        super().__init__(f"unknown filter type: {filter_type!r}")
        self.filter_type = filter_type


# --- Result parsing ---


class CompletionReason(Enum):
    """Why a QueryParser stopped producing items."""

    ALL_ITEMS_PARSED = "all items parsed"
    MAX_PAGINATION_REACHED = "max pagination reached"
    NO_ITEMS_RETURNED = "no items returned"
    LIMIT_REACHED = "limit reached"


class ParsingCompleteError(DynafriendError):
    """
    Raised by QueryParser.next_item() once the result sequence is over.

    This is a termination signal, not a fault: callers should stop pulling
    items rather than retry.
    """

    def __init__(self, reason: CompletionReason) -> None:
        super().__init__(f"parsing is complete: {reason.value}")
        self.reason = reason


class ItemDecodeError(DynafriendError):
    """Raised when a DynamoDB item cannot be decoded into the requested type."""

    def __init__(
        self, message: str, destination: Any = None, original_error: Exception | None = None
    ) -> None:
        super().__init__(message, original_error)
        self.destination = destination


class DynamoSerializationError(DynafriendError):
    """Raised when serialization to DynamoDB format fails (e.g. unsupported type)."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message, original_error)


# --- Backend errors ---


class TableNotFoundError(DynafriendError):
    """The table (or one of its indexes) does not exist."""

    def __init__(self, table_name: str, original_error: Exception | None = None) -> None:
        super().__init__(f"Table '{table_name}' not found", original_error)
        self.table_name = table_name


class ConditionalCheckFailedError(DynafriendError):
    """A put's condition expression evaluated to false."""

    def __init__(
        self, condition: str | None = None, original_error: Exception | None = None
    ) -> None:
        message = f"Conditional check failed: {condition}" if condition else "Conditional check failed"
        super().__init__(message, original_error)
        self.condition = condition


class ProvisionedThroughputExceededError(DynafriendError):
    """DynamoDB throttled the request; retrying later may succeed."""

    def __init__(
        self, message: str = "Request rate exceeded", original_error: Exception | None = None
    ) -> None:
        super().__init__(message, original_error)


class ItemCollectionSizeLimitError(DynafriendError):
    """An item collection of a table with local indexes outgrew 10GB."""

    def __init__(
        self,
        message: str = "Item collection size limit exceeded",
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)


class TransactionConflictError(DynafriendError):
    """The write collided with a transaction in progress on the same item."""

    def __init__(
        self, message: str = "Transaction conflict", original_error: Exception | None = None
    ) -> None:
        super().__init__(message, original_error)


class RequestTimeoutError(DynafriendError):
    """
    A request did not complete within the client's connect/read timeout.

    Query pages are fetched before any parser state changes, so pulling again
    retries the same page.
    """

    def __init__(
        self, message: str = "Request timed out", original_error: Exception | None = None
    ) -> None:
        super().__init__(message, original_error)


class ValidationError(DynafriendError):
    """DynamoDB rejected the request as malformed (bad expression, wrong key type, ...)."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.field = field
        self.value = value


# ClientError codes whose translation only needs the service message
_MESSAGE_ERRORS: dict[str, type[DynafriendError]] = {
    "ProvisionedThroughputExceededException": ProvisionedThroughputExceededError,
    "ThrottlingException": ProvisionedThroughputExceededError,
    "RequestLimitExceeded": ProvisionedThroughputExceededError,
    "ValidationException": ValidationError,
    "SerializationException": ValidationError,
    "ItemCollectionSizeLimitExceededException": ItemCollectionSizeLimitError,
    "TransactionConflictException": TransactionConflictError,
    "RequestTimeout": RequestTimeoutError,
    "RequestTimeoutException": RequestTimeoutError,
}


def translate_client_error(error: ClientError, table_name: str | None = None) -> DynafriendError:
    """Maps a botocore ClientError onto the matching DynafriendError."""
    details = error.response.get("Error", {})
    code = details.get("Code", "Unknown")
    message = details.get("Message", str(error))

    if code == "ResourceNotFoundException":
        return TableNotFoundError(table_name=table_name or "unknown", original_error=error)
    if code == "ConditionalCheckFailedException":
        return ConditionalCheckFailedError(original_error=error)

    error_class = _MESSAGE_ERRORS.get(code)
    if error_class is not None:
        return error_class(message, original_error=error)
    return DynafriendError(f"DynamoDB error ({code}): {message}", original_error=error)


@contextmanager
def handle_dynamo_errors(table_name: str | None = None) -> Generator[None, None, None]:
    """
    Translates botocore failures raised inside the block into DynafriendError
    subclasses, chaining the original.

    Usage:
        with handle_dynamo_errors(table_name="orders"):
            client.query(**request)
    """
    try:
        yield
    except (ConnectTimeoutError, ReadTimeoutError) as e:
        raise RequestTimeoutError(str(e), original_error=e) from e
    except ClientError as e:
        raise translate_client_error(e, table_name) from e
