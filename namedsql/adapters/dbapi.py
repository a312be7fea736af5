"""Prepared statements on top of any PEP 249 (DB-API 2.0) connection.

DB-API drivers have no prepared-statement objects: a query and its parameters
are handed to ``cursor.execute`` together. :class:`DBAPIPreparedStatement`
keeps the positional binding table between executions so a
``NamedParameterStatement`` can bind values one name at a time.
"""

import contextlib
import datetime
import logging
import warnings
from typing import TYPE_CHECKING, Any, Callable, Optional

from namedsql.exceptions import GeneratedKeysError, ParameterBindingError, StatementClosedError
from namedsql.parameters import ParameterStyleConfig, count_markers
from namedsql.statement import NamedParameterStatement
from namedsql.typing import GeneratedKeys, SqlType
from namedsql.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from types import TracebackType

__all__ = ("DBAPIConnectionProvider", "DBAPIDriver", "DBAPIPreparedStatement")

logger = get_logger("adapters.dbapi")

_INTERPRETER_WARNINGS = (DeprecationWarning, PendingDeprecationWarning)


def _driver_warnings(caught: "list[warnings.WarningMessage]") -> tuple[warnings.WarningMessage, ...]:
    """Keep the warnings a driver raised while executing; deprecations are re-emitted untouched."""
    driver_warnings = []
    for message in caught:
        if issubclass(message.category, _INTERPRETER_WARNINGS):
            warnings.warn_explicit(message.message, message.category, message.filename, message.lineno)
        else:
            driver_warnings.append(message)
    return tuple(driver_warnings)


class DBAPIPreparedStatement:
    """Positional prepared statement backed by a DB-API connection."""

    __slots__ = (
        "_closed",
        "_connection",
        "_cursor",
        "_generated_keys",
        "_parameter_config",
        "_parameter_count",
        "_parameters",
        "_warnings",
        "sql",
    )

    def __init__(
        self,
        connection: Any,
        sql: str,
        parameter_config: ParameterStyleConfig,
        generated_keys: GeneratedKeys = GeneratedKeys.NO_GENERATED_KEYS,
        parameter_count: Optional[int] = None,
    ) -> None:
        self._connection = connection
        self.sql = sql
        self._parameter_config = parameter_config
        self._parameter_count = parameter_count
        self._generated_keys = generated_keys
        self._parameters: dict[int, Any] = {}
        self._warnings: tuple[warnings.WarningMessage, ...] = ()
        self._cursor: Optional[Any] = None
        self._closed = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(sql={self.sql!r}, closed={self._closed})"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def bound_parameters(self) -> tuple[Any, ...]:
        """The values that the next execution passes to the driver, in positional order."""
        count = max(self._parameters, default=0) if self._parameter_count is None else self._parameter_count
        missing = [index for index in range(1, count + 1) if index not in self._parameters]
        if missing:
            msg = f"Positional parameters {missing} are not bound"
            raise ParameterBindingError(msg, self.sql)
        return tuple(self._parameters[index] for index in range(1, count + 1))

    def execute_query(self) -> Any:
        """Execute and return the cursor; the caller owns and closes it."""
        return self._execute()

    def execute_update(self) -> int:
        cursor = self._execute()
        rowcount = cursor.rowcount if hasattr(cursor, "rowcount") else -1
        self._release_cursor()
        self._cursor = cursor
        return rowcount

    def get_generated_keys(self) -> Any:
        """Return the cursor of the last update; read ``lastrowid`` or fetch ``RETURNING`` rows from it."""
        self._ensure_open()
        if self._generated_keys is not GeneratedKeys.RETURN_GENERATED_KEYS:
            msg = "Generated keys were not requested when the statement was prepared."
            raise GeneratedKeysError(msg)
        if self._cursor is None:
            msg = "No update has been executed on this statement."
            raise GeneratedKeysError(msg)
        return self._cursor

    def get_warnings(self) -> Optional[tuple[warnings.WarningMessage, ...]]:
        self._ensure_open()
        return self._warnings or None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._release_cursor()
        self._parameters.clear()

    def set_int(self, index: int, value: int) -> None:
        self._set(index, value)

    def set_long(self, index: int, value: int) -> None:
        self._set(index, value)

    def set_boolean(self, index: int, value: bool) -> None:
        self._set(index, value)

    def set_double(self, index: int, value: float) -> None:
        self._set(index, value)

    def set_timestamp(self, index: int, value: datetime.datetime) -> None:
        self._set(index, value)

    def set_string(self, index: int, value: str) -> None:
        self._set(index, value)

    def set_null(self, index: int, sql_type: SqlType) -> None:
        # DB-API drivers bind None untyped.
        self._set(index, None)

    def _set(self, index: int, value: Any) -> None:
        self._ensure_open()
        if index < 1:
            msg = f"Parameter index must be 1 or greater, got {index}"
            raise ParameterBindingError(msg, self.sql)
        if self._parameter_count is not None and index > self._parameter_count:
            msg = f"Parameter index {index} is out of range, the statement takes {self._parameter_count}"
            raise ParameterBindingError(msg, self.sql)
        self._parameters[index] = self._parameter_config.coerce(value)

    def _execute(self) -> Any:
        self._ensure_open()
        parameters = self.bound_parameters
        cursor = self._connection.cursor()
        try:
            if self._parameter_config.capture_warnings:
                with warnings.catch_warnings(record=True) as caught:
                    warnings.simplefilter("always")
                    cursor.execute(self.sql, parameters)
                self._warnings = _driver_warnings(caught)
                if self._warnings:
                    log_with_context(logger, logging.DEBUG, "driver reported warnings", count=len(self._warnings))
            else:
                cursor.execute(self.sql, parameters)
        except Exception:
            with contextlib.suppress(Exception):
                cursor.close()
            raise
        return cursor

    def _release_cursor(self) -> None:
        cursor, self._cursor = self._cursor, None
        if cursor is not None:
            with contextlib.suppress(Exception):
                cursor.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise StatementClosedError


class DBAPIDriver:
    """Driver connection handle wrapping one live DB-API connection."""

    __slots__ = ("connection", "parameter_config")

    def __init__(self, connection: Any, parameter_config: ParameterStyleConfig) -> None:
        self.connection = connection
        self.parameter_config = parameter_config

    def prepare_statement(
        self, sql: str, generated_keys: GeneratedKeys = GeneratedKeys.NO_GENERATED_KEYS
    ) -> DBAPIPreparedStatement:
        return DBAPIPreparedStatement(
            self.connection,
            sql,
            self.parameter_config,
            generated_keys,
            parameter_count=count_markers(sql, self.parameter_config.parameter_style),
        )


class DBAPIConnectionProvider:
    """Owns a DB-API connection and replaces it on :meth:`reset`.

    Args:
        connect: Zero-argument factory returning a new DB-API connection.
        parameter_config: Parameter style and value coercions of the driver.
    """

    def __init__(
        self, connect: "Callable[[], Any]", *, parameter_config: Optional[ParameterStyleConfig] = None
    ) -> None:
        self._connect = connect
        self.parameter_config = parameter_config or ParameterStyleConfig()
        self._driver: Optional[DBAPIDriver] = None

    def __enter__(self) -> "DBAPIConnectionProvider":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        return self._driver is not None

    def get_instance(self) -> DBAPIDriver:
        """Return the current driver connection, connecting on first use."""
        if self._driver is None:
            self._driver = DBAPIDriver(self._connect(), self.parameter_config)
            log_with_context(logger, logging.DEBUG, "connection opened")
        return self._driver

    def reset(self) -> None:
        """Close the current connection, ignoring close errors, and open a new one."""
        driver, self._driver = self._driver, None
        if driver is not None:
            try:
                driver.connection.close()
            except Exception as error:
                log_with_context(
                    logger, logging.DEBUG, "ignoring error while closing connection", error_type=type(error).__name__
                )
        self.get_instance()
        log_with_context(logger, logging.DEBUG, "connection reset")

    def close(self) -> None:
        driver, self._driver = self._driver, None
        if driver is not None:
            driver.connection.close()

    def statement(self, query: str) -> NamedParameterStatement:
        """Create a named statement on this connection using the driver's parameter style."""
        return NamedParameterStatement(self, query, parameter_style=self.parameter_config.parameter_style)
