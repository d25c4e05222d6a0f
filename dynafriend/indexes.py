"""
Index metadata.

An IndexDescriptor describes one index of a table (its primary key schema or a
secondary index) as reported by DynamoDB's DescribeTable. Descriptors are
built in one pass from the ``Table`` section of a DescribeTable response and
are immutable afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Name used for the table's own key schema. "#" cannot appear in a DynamoDB
# index name, so it never collides with a secondary index.
PRIMARY_INDEX_NAME = "#primary"


class IndexKind(Enum):
    PRIMARY = "primary"
    GLOBAL = "global"
    LOCAL = "local"


@dataclass(frozen=True)
class IndexDescriptor:
    """
    Metadata needed to decide whether an index can serve a query.

    Attributes:
        name: Index name, or PRIMARY_INDEX_NAME for the table's key schema
        table_name: Owning table
        partition_key: HASH key attribute
        sort_key: RANGE key attribute, None for simple indexes
        consistent_readable: Whether ConsistentRead is allowed on this index
        includes_all_attributes: Whether the index projects every attribute
        attributes: Projected attribute names when not projecting all
            (always contains the index's and the table's key attributes)
        size: Item count reported by DynamoDB
        kind: Primary, global secondary or local secondary
    """

    name: str
    table_name: str
    partition_key: str
    sort_key: str | None = None
    consistent_readable: bool = False
    includes_all_attributes: bool = True
    attributes: frozenset[str] = field(default_factory=frozenset)
    size: int = 0
    kind: IndexKind = IndexKind.GLOBAL

    @property
    def is_composite(self) -> bool:
        return self.sort_key is not None

    @property
    def is_primary(self) -> bool:
        return self.name == PRIMARY_INDEX_NAME

    def keys(self) -> list[str]:
        """Returns the index key attributes, partition key first."""
        if self.sort_key is not None:
            return [self.partition_key, self.sort_key]
        return [self.partition_key]

    def projects(self, attributes: tuple[str, ...] | list[str]) -> bool:
        """Checks whether every given attribute is available from this index."""
        if self.includes_all_attributes:
            return True
        return all(attribute in self.attributes for attribute in attributes)

    def describe_keys(self) -> str:
        if self.sort_key is not None:
            return f'partition:"{self.partition_key}", sort:"{self.sort_key}"'
        return f'partition:"{self.partition_key}"'


def keys_from_schema(key_schema: list[dict[str, Any]]) -> tuple[str, str | None]:
    """
    Extracts (partition key, sort key) from a DynamoDB KeySchema list.

    Raises:
        ValueError: If the schema has no HASH key
    """
    partition_key: str | None = None
    sort_key: str | None = None
    for element in key_schema:
        if element["KeyType"] == "HASH":
            partition_key = element["AttributeName"]
        elif element["KeyType"] == "RANGE":
            sort_key = element["AttributeName"]

    if partition_key is None:
        raise ValueError(f"Key schema has no HASH key: {key_schema!r}")
    return partition_key, sort_key


def _projected_attributes(
    projection: dict[str, Any] | None, index_keys: list[str], table_keys: list[str]
) -> tuple[bool, frozenset[str]]:
    """
    Returns (includes_all_attributes, attributes) for a secondary index projection.

    KEYS_ONLY and INCLUDE projections always carry the index keys and the
    table's primary keys; INCLUDE adds its NonKeyAttributes.
    """
    projection_type = (projection or {}).get("ProjectionType", "ALL")
    if projection_type == "ALL":
        return True, frozenset()

    attributes = set(index_keys) | set(table_keys)
    if projection_type == "INCLUDE":
        attributes.update((projection or {}).get("NonKeyAttributes", []))
    return False, frozenset(attributes)


def load_index_descriptors(
    table_name: str, description: dict[str, Any]
) -> dict[str, IndexDescriptor]:
    """
    Builds the descriptors of every index from a DescribeTable ``Table`` section.

    Order: primary index first, then global secondary indexes, then local
    secondary indexes, each in the order DynamoDB reports them.
    """
    indexes: dict[str, IndexDescriptor] = {}

    partition_key, sort_key = keys_from_schema(description["KeySchema"])
    primary = IndexDescriptor(
        name=PRIMARY_INDEX_NAME,
        table_name=table_name,
        partition_key=partition_key,
        sort_key=sort_key,
        consistent_readable=True,
        includes_all_attributes=True,
        size=int(description.get("ItemCount", 0)),
        kind=IndexKind.PRIMARY,
    )
    indexes[primary.name] = primary
    table_keys = primary.keys()

    secondary = [
        (index_description, IndexKind.GLOBAL)
        for index_description in description.get("GlobalSecondaryIndexes", [])
    ] + [
        (index_description, IndexKind.LOCAL)
        for index_description in description.get("LocalSecondaryIndexes", [])
    ]

    for index_description, kind in secondary:
        index_partition_key, index_sort_key = keys_from_schema(index_description["KeySchema"])
        index_keys = [index_partition_key] + ([index_sort_key] if index_sort_key else [])
        includes_all, attributes = _projected_attributes(
            index_description.get("Projection"), index_keys, table_keys
        )
        index = IndexDescriptor(
            name=index_description["IndexName"],
            table_name=table_name,
            partition_key=index_partition_key,
            sort_key=index_sort_key,
            # Local secondary indexes share the table's partition and support
            # strongly consistent reads; global ones never do.
            consistent_readable=kind is IndexKind.LOCAL,
            includes_all_attributes=includes_all,
            attributes=attributes,
            size=int(index_description.get("ItemCount", 0)),
            kind=kind,
        )
        indexes[index.name] = index

    return indexes
