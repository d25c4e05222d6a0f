from .compiler import CompiledQuery, compile_query
from .conditions import Attr, Condition, DynCondition
from .exceptions import (
    CompletionReason,
    ConditionalCheckFailedError,
    DynafriendError,
    DynamoSerializationError,
    FilterConflictError,
    ItemCollectionSizeLimitError,
    ItemDecodeError,
    NoViableIndexError,
    ParsingCompleteError,
    ProvisionedThroughputExceededError,
    RequestTimeoutError,
    TableNotFoundError,
    TransactionConflictError,
    UnknownFilterTypeError,
    ValidationError,
)
from .expression import QueryExpr, QueryExprKey, QuerySpec, new_query
from .filters import FilterType, QueryFilter
from .indexes import PRIMARY_INDEX_NAME, IndexDescriptor, IndexKind
from .pagination import QueryParser
from .selector import choose_index
from .table import Client, Table

__all__ = [
    "Client",
    "Table",
    # Query building
    "new_query",
    "QueryExpr",
    "QueryExprKey",
    "QuerySpec",
    "QueryFilter",
    "FilterType",
    # Free-form conditions
    "Attr",
    "DynCondition",
    "Condition",
    # Planning and execution
    "IndexDescriptor",
    "IndexKind",
    "PRIMARY_INDEX_NAME",
    "choose_index",
    "CompiledQuery",
    "compile_query",
    "QueryParser",
    "CompletionReason",
    # Exceptions
    "DynafriendError",
    "FilterConflictError",
    "NoViableIndexError",
    "ParsingCompleteError",
    "UnknownFilterTypeError",
    "ItemDecodeError",
    "DynamoSerializationError",
    "TableNotFoundError",
    "ConditionalCheckFailedError",
    "ProvisionedThroughputExceededError",
    "ItemCollectionSizeLimitError",
    "TransactionConflictError",
    "RequestTimeoutError",
    "ValidationError",
]
