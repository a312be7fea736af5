"""Named-parameter statement over a positional prepared statement.

``NamedParameterStatement`` owns one query and at most one live
:class:`~namedsql.protocols.StatementHandle`. The handle moves through three
states:

* ``Absent``: nothing prepared yet.
* ``Prepared(handle)``: the handle can be bound and executed.
* ``Stale(handle | None)``: an execution failed, the driver reported warnings
  or a reset failed. The next :meth:`NamedParameterStatement.prepare`
  reconnects before preparing again.

Instances are not thread safe. A reset with ``reset_connection=True`` replaces
the shared connection, which invalidates handles held by sibling statements.
"""

import contextlib
import datetime
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Final, Optional, Union

from mypy_extensions import mypyc_attr

from namedsql.exceptions import PrepareError, ReconnectError, StatementClosedError, StatementNotPreparedError
from namedsql.parameters import ParameterStyle, parse
from namedsql.typing import GeneratedKeys, SqlType
from namedsql.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from types import TracebackType

    from namedsql.protocols import ConnectionProvider, StatementHandle
    from namedsql.typing import ParameterMap

__all__ = ("Absent", "HandleState", "NamedParameterStatement", "Prepared", "Stale", "StatementState")

logger = get_logger("statement")

_SETTERS: Final[dict[SqlType, str]] = {
    SqlType.INTEGER: "set_int",
    SqlType.BIGINT: "set_long",
    SqlType.BOOLEAN: "set_boolean",
    SqlType.DOUBLE: "set_double",
    SqlType.TIMESTAMP: "set_timestamp",
    SqlType.VARCHAR: "set_string",
}


class StatementState(str, Enum):
    ABSENT = "absent"
    PREPARED = "prepared"
    STALE = "stale"

    def __str__(self) -> str:
        return self.value


class Absent:
    """No handle has been prepared."""

    __slots__ = ()

    state: Final = StatementState.ABSENT
    handle: Final = None

    def __repr__(self) -> str:
        return "Absent()"


class Prepared:
    """A handle that may be bound and executed."""

    __slots__ = ("handle",)

    state: Final = StatementState.PREPARED

    def __init__(self, handle: "StatementHandle") -> None:
        self.handle = handle

    def __repr__(self) -> str:
        return f"Prepared({self.handle!r})"


class Stale:
    """A handle that must not be trusted; ``handle`` is None once it was discarded."""

    __slots__ = ("handle",)

    state: Final = StatementState.STALE

    def __init__(self, handle: "Optional[StatementHandle]" = None) -> None:
        self.handle = handle

    def __repr__(self) -> str:
        return f"Stale({self.handle!r})"


HandleState = Union[Absent, Prepared, Stale]

_ABSENT: Final = Absent()


@mypyc_attr(allow_interpreted_subclasses=False)
class NamedParameterStatement:
    """A prepared statement addressed by ``:name`` placeholders.

    Example:
        >>> statement = NamedParameterStatement(provider, "SELECT * FROM users WHERE id = :id")
        >>> statement.prepare()
        >>> statement.set_long("id", 42)
        >>> cursor = statement.execute_query()
    """

    __slots__ = ("_closed", "_connection", "_generated_keys", "_parsed", "_state")

    def __init__(
        self,
        connection: "ConnectionProvider",
        query: str,
        *,
        parameter_style: ParameterStyle = ParameterStyle.QMARK,
    ) -> None:
        """Parse ``query`` once; nothing is prepared until :meth:`prepare`.

        Args:
            connection: Shared provider of the driver connection.
            query: SQL with ``:name`` placeholders.
            parameter_style: Positional marker style the driver expects.
        """
        self._parsed = parse(query, parameter_style)
        self._connection = connection
        self._state: HandleState = _ABSENT
        self._generated_keys = GeneratedKeys.NO_GENERATED_KEYS
        self._closed = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(sql={self._parsed.sql!r}, state={self._state!r})"

    def __enter__(self) -> "NamedParameterStatement":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()

    @property
    def sql(self) -> str:
        """The query rewritten to positional markers."""
        return self._parsed.sql

    @property
    def parameters(self) -> "ParameterMap":
        return self._parsed.parameters

    @property
    def parameter_count(self) -> int:
        return self._parsed.parameter_count

    @property
    def state(self) -> StatementState:
        return self._state.state

    @property
    def failed(self) -> bool:
        """True when the current handle must be re-prepared with a connection reset."""
        return isinstance(self._state, Stale)

    @property
    def generated_keys(self) -> GeneratedKeys:
        return self._generated_keys

    @property
    def closed(self) -> bool:
        return self._closed

    def reset(self, reset_connection: bool = False) -> None:
        """Close the current handle and prepare a new one.

        Args:
            reset_connection: Ask the connection provider to reconnect before preparing.

        Raises:
            StatementClosedError: The statement was closed.
        """
        self._ensure_open()
        previous = self._state.handle
        try:
            if previous is not None:
                previous.close()
            if reset_connection:
                self._connection.reset()
            handle = self._connection.get_instance().prepare_statement(self._parsed.sql, self._generated_keys)
        except Exception as error:
            self._state = Stale()
            log_with_context(
                logger,
                logging.DEBUG,
                "statement reset failed",
                reset_connection=reset_connection,
                error_type=type(error).__name__,
            )
            raise
        self._state = Prepared(handle)
        log_with_context(logger, logging.DEBUG, "statement prepared", reset_connection=reset_connection)

    def prepare(self, generated_keys: GeneratedKeys = GeneratedKeys.NO_GENERATED_KEYS) -> None:
        """Make sure a valid handle exists, re-preparing it when stale.

        An absent handle is prepared on the current connection. A stale handle,
        or one the driver reported warnings on, is replaced after reconnecting.
        A valid handle prepared with the same ``generated_keys`` mode is kept.
        When the first attempt fails a single reconnect and re-prepare is tried.

        Args:
            generated_keys: Whether auto-generated keys should be retrievable.

        Raises:
            ReconnectError: The connection could not be reset during recovery.
            PrepareError: The statement could not be prepared after reconnecting.
            StatementClosedError: The statement was closed.
        """
        self._ensure_open()
        mode_changed = generated_keys != self._generated_keys
        self._generated_keys = generated_keys
        state = self._state
        try:
            if isinstance(state, Absent):
                self.reset(reset_connection=False)
            elif isinstance(state, Stale) or state.handle.get_warnings() is not None:
                self._state = Stale(state.handle)
                self.reset(reset_connection=True)
            elif mode_changed:
                self.reset(reset_connection=False)
        except Exception as error:
            self._recover(error)

    def _recover(self, original_error: Exception) -> None:
        log_with_context(
            logger, logging.DEBUG, "recovering statement", original_error_type=type(original_error).__name__
        )
        previous = self._state.handle
        self._state = Stale()
        if previous is not None:
            with contextlib.suppress(Exception):
                previous.close()
        try:
            self._connection.reset()
        except Exception as error:
            msg = "Connection reset failed while recovering statement"
            raise ReconnectError(msg, reconnect_error=error, original_error=original_error) from error
        try:
            handle = self._connection.get_instance().prepare_statement(self._parsed.sql, self._generated_keys)
        except Exception as error:
            msg = "Statement could not be prepared after reconnecting"
            raise PrepareError(msg, original_error=original_error) from error
        self._state = Prepared(handle)
        log_with_context(logger, logging.DEBUG, "statement recovered")

    def execute_query(self) -> Any:
        """Execute and return the driver cursor; a failure marks the statement stale."""
        handle = self._require_prepared()
        try:
            return handle.execute_query()
        except Exception as error:
            self._mark_failed(handle, error)
            raise

    def execute_update(self) -> int:
        """Execute and return the affected row count; a failure marks the statement stale."""
        handle = self._require_prepared()
        try:
            return handle.execute_update()
        except Exception as error:
            self._mark_failed(handle, error)
            raise

    def get_generated_keys(self) -> Any:
        return self._require_prepared().get_generated_keys()

    def close(self) -> None:
        """Close the handle. The statement cannot be used afterwards."""
        if self._closed:
            return
        self._closed = True
        handle = self._state.handle
        if handle is not None:
            handle.close()

    def set_int(self, name: str, value: Optional[int]) -> None:
        self._bind(name, value, SqlType.INTEGER)

    def set_long(self, name: str, value: Optional[int]) -> None:
        self._bind(name, value, SqlType.BIGINT)

    def set_boolean(self, name: str, value: Optional[bool]) -> None:
        self._bind(name, value, SqlType.BOOLEAN)

    def set_double(self, name: str, value: Optional[float]) -> None:
        self._bind(name, value, SqlType.DOUBLE)

    def set_timestamp(self, name: str, value: "Optional[Union[datetime.datetime, datetime.date]]") -> None:
        """Bind a timestamp; a plain ``date`` is bound as midnight of that day."""
        if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
            value = datetime.datetime.combine(value, datetime.time())
        self._bind(name, value, SqlType.TIMESTAMP)

    def set_string(self, name: str, value: Optional[str]) -> None:
        self._bind(name, value, SqlType.VARCHAR)

    def _bind(self, name: str, value: Any, sql_type: SqlType) -> None:
        # Unknown names are skipped so optional fragments can be bound unconditionally.
        indices = self._parsed.parameters.get(name)
        if indices is None:
            return
        handle = self._require_prepared()
        if value is None:
            for index in indices:
                handle.set_null(index, sql_type)
            return
        setter = getattr(handle, _SETTERS[sql_type])
        for index in indices:
            setter(index, value)

    def _mark_failed(self, handle: "StatementHandle", error: Exception) -> None:
        self._state = Stale(handle)
        log_with_context(logger, logging.DEBUG, "statement execution failed", error_type=type(error).__name__)

    def _require_prepared(self) -> "StatementHandle":
        self._ensure_open()
        state = self._state
        if not isinstance(state, Prepared):
            raise StatementNotPreparedError
        return state.handle

    def _ensure_open(self) -> None:
        if self._closed:
            raise StatementClosedError
