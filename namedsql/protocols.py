"""Runtime-checkable protocols for the collaborators a named statement talks to.

A ``NamedParameterStatement`` never imports a database driver. It asks a
:class:`ConnectionProvider` for a :class:`DriverConnection`, asks that for a
:class:`StatementHandle` and binds values on the handle by position.
"""

import datetime
from typing import Any, Optional, Protocol, runtime_checkable

from namedsql.typing import GeneratedKeys, SqlType

__all__ = ("ConnectionProvider", "DriverConnection", "StatementHandle")


@runtime_checkable
class StatementHandle(Protocol):
    """A connection-bound prepared statement with 1-based positional binding."""

    def execute_query(self) -> Any:
        """Execute and return a cursor over the result rows."""
        ...

    def execute_update(self) -> int:
        """Execute and return the affected row count."""
        ...

    def get_generated_keys(self) -> Any:
        """Return a cursor exposing keys generated by the last execution."""
        ...

    def get_warnings(self) -> Optional[Any]:
        """Return driver warnings, or ``None`` when there are none."""
        ...

    def close(self) -> None: ...

    def set_int(self, index: int, value: int) -> None: ...

    def set_long(self, index: int, value: int) -> None: ...

    def set_boolean(self, index: int, value: bool) -> None: ...

    def set_double(self, index: int, value: float) -> None: ...

    def set_timestamp(self, index: int, value: datetime.datetime) -> None: ...

    def set_string(self, index: int, value: str) -> None: ...

    def set_null(self, index: int, sql_type: SqlType) -> None: ...


@runtime_checkable
class DriverConnection(Protocol):
    """A live driver connection able to prepare statements."""

    def prepare_statement(
        self, sql: str, generated_keys: GeneratedKeys = GeneratedKeys.NO_GENERATED_KEYS
    ) -> StatementHandle:
        """Prepare ``sql`` (already in positional form)."""
        ...


@runtime_checkable
class ConnectionProvider(Protocol):
    """Shared owner of a driver connection that can replace it on demand."""

    def get_instance(self) -> DriverConnection:
        """Return the current driver connection."""
        ...

    def reset(self) -> None:
        """Drop the current driver connection and establish a new one."""
        ...
