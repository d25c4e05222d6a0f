from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, cast
from uuid import UUID

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic.type_adapter import TypeAdapter

from .exceptions import DynamoSerializationError, ItemDecodeError


@lru_cache(maxsize=128)
def _type_adapter(destination: Any) -> TypeAdapter[Any]:
    return TypeAdapter(destination)


def _is_empty_set(value: Any) -> bool:
    return isinstance(value, (set, frozenset)) and not value


class DynamoSerializer:
    """
    Converts query operands and items between Python and DynamoDB JSON
    (``{"S": ...}``, ``{"N": ...}``, ...), and decodes raw items into typed
    destinations.

    Architectural Note:
    -------------------
    boto3's TypeSerializer only takes Decimal numbers and a few plain types.
    Values are normalised first (float to Decimal via str, datetime/date to
    ISO strings, UUID to str, Enum to its value, tuples to lists); on the way
    back whole Decimals become int and the rest float.
    """

    def __init__(self) -> None:
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    # --- PYTHON -> DYNAMODB ---

    def to_dynamo_value(self, value: Any) -> dict[str, Any]:
        """
        Serializes one value, e.g. an ExpressionAttributeValues entry.
        E.g.: 10.5 -> {'N': '10.5'}
        """
        try:
            return cast(dict[str, Any], self._serializer.serialize(self._normalise(value)))
        except TypeError as e:
            raise DynamoSerializationError(
                f"Cannot serialize value {value!r}: {e!s}", original_error=e
            ) from e

    def to_dynamo(self, data: dict[str, Any]) -> dict[str, dict[str, Any]]:
        """
        Serializes a whole item. Empty sets are left out, DynamoDB rejects them.
        """
        item: dict[str, dict[str, Any]] = {}
        for name, value in data.items():
            if _is_empty_set(value):
                continue
            try:
                item[name] = cast(dict[str, Any], self._serializer.serialize(self._normalise(value)))
            except TypeError as e:
                raise DynamoSerializationError(
                    f"Cannot serialize attribute '{name}' (value={value!r}): {e!s}",
                    original_error=e,
                ) from e
        return item

    def encode_item(self, item: BaseModel | dict[str, Any]) -> dict[str, dict[str, Any]]:
        """Serializes a pydantic model (by alias, None fields skipped) or a plain dict."""
        if isinstance(item, BaseModel):
            return self.to_dynamo(item.model_dump(mode="python", by_alias=True, exclude_none=True))
        return self.to_dynamo(dict(item))

    # --- DYNAMODB -> PYTHON ---

    def from_dynamo(self, item: dict[str, Any]) -> dict[str, Any]:
        """Deserializes a DynamoDB JSON item into a plain dict."""
        return {
            name: self._denormalise(self._deserializer.deserialize(value))
            for name, value in item.items()
        }

    def decode_item(self, item: dict[str, Any], destination: Any = None) -> Any:
        """
        Decodes a raw DynamoDB item into ``destination``.

        Args:
            item: Item in DynamoDB JSON format
            destination: A pydantic model, dataclass, TypedDict or any type
                pydantic can validate. None returns a plain dict.

        Raises:
            ItemDecodeError: If the item does not fit the destination type
        """
        try:
            data = self.from_dynamo(item)
        except (TypeError, ValueError) as e:
            raise ItemDecodeError(
                f"Malformed DynamoDB item: {e!s}", destination=destination, original_error=e
            ) from e

        if destination is None or destination is dict:
            return data

        try:
            if isinstance(destination, type) and issubclass(destination, BaseModel):
                return destination.model_validate(data)
            return _type_adapter(destination).validate_python(data)
        except PydanticValidationError as e:
            name = getattr(destination, "__name__", repr(destination))
            raise ItemDecodeError(
                f"Item does not match {name}: {e.error_count()} validation error(s)",
                destination=destination,
                original_error=e,
            ) from e

    # --- NORMALISATION ---

    def _normalise(self, value: Any) -> Any:
        if isinstance(value, float):
            # via str, so 0.1 stays 0.1
            return Decimal(str(value))
        if isinstance(value, datetime):
            offset = value.utcoffset()
            if offset is not None and offset.total_seconds() == 0:
                # same "Z" form pydantic writes for UTC
                return value.replace(tzinfo=None).isoformat() + "Z"
            return value.isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, (set, frozenset)):
            return {self._normalise(member) for member in value}
        if isinstance(value, (list, tuple)):
            return [self._normalise(member) for member in value]
        if isinstance(value, dict):
            return {key: self._normalise(member) for key, member in value.items()}
        return value

    def _denormalise(self, value: Any) -> Any:
        if isinstance(value, Decimal):
            return int(value) if value == value.to_integral_value() else float(value)
        if isinstance(value, set):
            return {self._denormalise(member) for member in value}
        if isinstance(value, list):
            return [self._denormalise(member) for member in value]
        if isinstance(value, dict):
            return {key: self._denormalise(member) for key, member in value.items()}
        return value
