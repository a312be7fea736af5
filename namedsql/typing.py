from collections.abc import Mapping
from enum import Enum, IntEnum

from typing_extensions import TypeAlias

__all__ = ("GeneratedKeys", "ParameterMap", "SqlType")


ParameterMap: TypeAlias = Mapping[str, tuple[int, ...]]
"""Parameter name to the 1-based positional indices it occupies, in query order."""


class SqlType(str, Enum):
    """SQL type tags used when binding a typed NULL."""

    INTEGER = "integer"
    BIGINT = "bigint"
    BOOLEAN = "boolean"
    DOUBLE = "double"
    TIMESTAMP = "timestamp"
    VARCHAR = "varchar"

    def __str__(self) -> str:
        return self.value


class GeneratedKeys(IntEnum):
    """Whether a prepared statement should make auto-generated keys retrievable."""

    RETURN_GENERATED_KEYS = 1
    NO_GENERATED_KEYS = 2
