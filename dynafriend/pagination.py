"""
Lazy, pull-based query results.

A QueryParser holds a compiled request and fetches pages from DynamoDB only
when the caller asks for an item and the buffered page is used up. It stops
for good on the first of:

- the previous page carried no LastEvaluatedKey (ALL_ITEMS_PARSED),
- the max pagination was reached (MAX_PAGINATION_REACHED),
- a fetched page came back empty (NO_ITEMS_RETURNED),
- the item limit was reached (LIMIT_REACHED, after returning the last item).

Once complete, every call raises ParsingCompleteError with the same reason and
never touches the network. A failed fetch changes nothing, so calling again
retries the same page.

Note that an empty page ends the sequence even if DynamoDB returned a
LastEvaluatedKey with it: a page whose items were all discarded by the filter
expression stops the query there.
"""

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from ._logging import LoggerLike
from .compiler import CompiledQuery
from .exceptions import CompletionReason, ParsingCompleteError, handle_dynamo_errors
from .expression import QuerySpec
from .serializer import DynamoSerializer

if TYPE_CHECKING:
    from .table import Table

__all__ = ["CompletionReason", "QueryParser"]


class QueryParser(Iterator[Any]):
    """
    Iterates over the results of one query execution.

    Not thread-safe: one parser, one consumer.

    Usage:
        parser = table.query(expr, model=Order)
        for order in parser:
            ...

        # or pull explicitly
        while True:
            try:
                order = parser.next_item(Order)
            except ParsingCompleteError:
                break
    """

    def __init__(
        self,
        table: "Table",
        spec: QuerySpec,
        compiled: CompiledQuery,
        model: Any = None,
    ) -> None:
        self.table = table
        self.spec = spec
        self.compiled = compiled
        self.model = model
        self.serializer: DynamoSerializer = table.serializer
        self.logger: LoggerLike = spec.logger

        self._last_evaluated_key: dict[str, Any] | None = None
        self._buffered_items: list[dict[str, Any]] = []
        self._cursor = 0

        self._items_parsed = 0
        self._pages_parsed = 0
        self._all_pages_parsed = False
        self._completion_reason: CompletionReason | None = None

    # --- STATE ---

    @property
    def items_parsed(self) -> int:
        return self._items_parsed

    @property
    def pages_parsed(self) -> int:
        return self._pages_parsed

    @property
    def completed(self) -> bool:
        return self._completion_reason is not None

    @property
    def completion_reason(self) -> CompletionReason | None:
        return self._completion_reason

    @property
    def last_evaluated_key(self) -> dict[str, Any] | None:
        """Continuation token of the last fetched page, in DynamoDB JSON."""
        return self._last_evaluated_key

    def _complete(self, reason: CompletionReason) -> ParsingCompleteError:
        self._completion_reason = reason
        self.logger.info(
            "Query parsing complete",
            extra={
                "table": self.compiled.table_name,
                "reason": reason.value,
                "items_parsed": self._items_parsed,
                "pages_parsed": self._pages_parsed,
            },
        )
        return ParsingCompleteError(reason)

    # --- PULL ---

    def _fetch_page(self) -> None:
        """
        Refills the buffer with the next page.

        State is only updated after a successful, non-empty fetch.
        """
        if self._all_pages_parsed:
            raise self._complete(CompletionReason.ALL_ITEMS_PARSED)

        max_pagination = self.spec.max_pagination
        if max_pagination is not None and self._pages_parsed == max_pagination:
            raise self._complete(CompletionReason.MAX_PAGINATION_REACHED)

        request = self.compiled.to_request(exclusive_start_key=self._last_evaluated_key)
        self.logger.info(
            "Executing query page",
            extra={
                "table": self.compiled.table_name,
                "index": self.compiled.index_name,
                "page": self._pages_parsed + 1,
                "has_cursor": self._last_evaluated_key is not None,
            },
        )

        with handle_dynamo_errors(table_name=self.compiled.table_name):
            response = self.table.client.query(**request)

        items = response.get("Items", [])
        if not items:
            raise self._complete(CompletionReason.NO_ITEMS_RETURNED)

        last_evaluated_key = response.get("LastEvaluatedKey")
        if last_evaluated_key:
            self._last_evaluated_key = last_evaluated_key
        else:
            self._all_pages_parsed = True

        self._pages_parsed += 1
        self._buffered_items = items
        self._cursor = 0

    def next_raw(self) -> dict[str, Any]:
        """
        Returns the next item in DynamoDB JSON, fetching a page if needed.

        Raises:
            ParsingCompleteError: When there are no more items to return
            DynafriendError: When the page fetch fails (state is unchanged)
        """
        if self._completion_reason is not None:
            raise ParsingCompleteError(self._completion_reason)

        if self._cursor >= len(self._buffered_items):
            self._fetch_page()

        item = self._buffered_items[self._cursor]
        self._cursor += 1
        self._items_parsed += 1

        if self.spec.limit is not None and self._items_parsed == self.spec.limit:
            # This item is still returned
            self._complete(CompletionReason.LIMIT_REACHED)

        return item

    def next_item(self, destination: Any = None) -> Any:
        """
        Returns the next item decoded into ``destination``.

        Args:
            destination: Type to decode into (pydantic model, dataclass, ...).
                Defaults to the parser's model, or a plain dict.

        Raises:
            ParsingCompleteError: When there are no more items to return
            ItemDecodeError: When the item does not fit ``destination``;
                the item is consumed all the same
        """
        item = self.next_raw()
        return self.serializer.decode_item(item, destination or self.model)

    # --- ITERATION ---

    def __iter__(self) -> "QueryParser":
        return self

    def __next__(self) -> Any:
        try:
            return self.next_item()
        except ParsingCompleteError:
            raise StopIteration from None

    def all(self) -> list[Any]:
        """
        Consumes every remaining item into a list.
        WARNING: Can consume high memory for large result sets.
        """
        return list(self)

    def first(self) -> Any | None:
        """Returns the next item, or None when the query is complete."""
        return next(self, None)
