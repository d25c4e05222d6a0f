"""
Index selection.

Picks the index a query runs against in two steps:

1. Viability. An index survives only if
   a. its partition key has an equals condition (DynamoDB never queries a
      partition key by range),
   b. it supports consistent reads, when a consistent read is requested,
   c. it is sorted on the requested order key, when an order is requested,
   d. it projects the selected attributes, or all attributes when nothing
      was selected.
2. Priority. Among survivors, prefer an index whose sort key carries an
   equals condition, then begins-with, then between; otherwise any survivor.

Indexes are kept in table order (primary, global, local), and the first
index of the preferred group wins. Callers should not rely on which of
several equally good indexes is picked.
"""

from collections.abc import Callable, Mapping

from .exceptions import NoViableIndexError
from .expression import QuerySpec
from .filters import FilterType
from .indexes import IndexDescriptor

# Sort-key condition types, best first
SORT_KEY_PRIORITY = (FilterType.EQUALS, FilterType.BEGINS_WITH, FilterType.BETWEEN)


def viable_indexes(
    spec: QuerySpec, indexes: Mapping[str, IndexDescriptor], table_name: str = ""
) -> dict[str, IndexDescriptor]:
    """
    Returns the indexes able to serve the query, preserving table order.
    """
    log = spec.logger
    viable = dict(indexes)
    log.debug(
        "Found indexes in table", extra={"table": table_name, "indexes": list(viable)}
    )

    def prune(reason: str, is_viable: Callable[[IndexDescriptor], bool]) -> None:
        for index_name, index in list(viable.items()):
            if not is_viable(index):
                log.debug(
                    "Index not viable",
                    extra={
                        "table": table_name,
                        "index": index_name,
                        "index_keys": index.describe_keys(),
                        "reason": reason,
                    },
                )
                del viable[index_name]

    equals_keys = spec.keys_of_type(FilterType.EQUALS)
    prune(
        f"partition key not in equals filters: {sorted(equals_keys)}",
        lambda index: index.partition_key in equals_keys,
    )

    if spec.consistent_read:
        prune("index does not support consistent read", lambda index: index.consistent_readable)

    if spec.order_key is not None:
        order_key = spec.order_key
        prune(
            f'index does not support sorting on "{order_key}" attribute',
            lambda index: index.is_composite and index.sort_key == order_key,
        )

    if spec.attributes_specified:
        selected = spec.attributes
        prune(
            "index does not include all selected attributes",
            lambda index: index.projects(selected),
        )
    else:
        # Without a projection the query returns whole items
        prune(
            "index does not project all attributes",
            lambda index: index.includes_all_attributes,
        )

    return viable


def choose_index(
    spec: QuerySpec, indexes: Mapping[str, IndexDescriptor], table_name: str
) -> IndexDescriptor:
    """
    Chooses the index to run the query against.

    Raises:
        NoViableIndexError: If no index can serve the query
    """
    log = spec.logger
    viable = viable_indexes(spec, indexes, table_name)

    if not viable:
        log.error("No viable indexes found", extra={"table": table_name})
        raise NoViableIndexError(table_name)

    log.debug("Found viable indexes", extra={"table": table_name, "indexes": list(viable)})

    preferred = list(viable.values())
    for filter_type in SORT_KEY_PRIORITY:
        filter_keys = spec.keys_of_type(filter_type)
        matches = [index for index in viable.values() if index.sort_key in filter_keys]
        if matches:
            preferred = matches
            break

    chosen = preferred[0]
    log.info("Choosing index for query", extra={"table": table_name, "index": chosen.name})
    return chosen
