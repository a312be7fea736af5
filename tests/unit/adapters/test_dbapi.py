"""Unit tests for the DB-API prepared statement adapter."""

import datetime
import warnings
from typing import Optional
from unittest.mock import MagicMock

import pytest

from namedsql.adapters.dbapi import DBAPIConnectionProvider, DBAPIDriver, DBAPIPreparedStatement
from namedsql.exceptions import GeneratedKeysError, ParameterBindingError, StatementClosedError
from namedsql.parameters import ParameterStyle, ParameterStyleConfig
from namedsql.protocols import ConnectionProvider, DriverConnection, StatementHandle
from namedsql.statement import NamedParameterStatement, StatementState
from namedsql.typing import GeneratedKeys, SqlType


class DriverWarning(Warning):
    """Stand-in for a driver's DB-API ``Warning`` class."""


@pytest.fixture
def dbapi_connection() -> MagicMock:
    connection = MagicMock()
    connection.cursor.return_value.rowcount = 1
    return connection


def make_statement(
    connection: MagicMock, sql: str = "SELECT ?, ?", config: Optional[ParameterStyleConfig] = None, **kwargs: object
) -> DBAPIPreparedStatement:
    return DBAPIPreparedStatement(connection, sql, config or ParameterStyleConfig(), **kwargs)  # type: ignore[arg-type]


def test_adapter_types_satisfy_protocols(dbapi_connection: MagicMock) -> None:
    provider = DBAPIConnectionProvider(lambda: dbapi_connection)

    assert isinstance(provider, ConnectionProvider)
    assert isinstance(provider.get_instance(), DriverConnection)
    assert isinstance(make_statement(dbapi_connection), StatementHandle)


def test_execute_passes_parameters_in_positional_order(dbapi_connection: MagicMock) -> None:
    statement = make_statement(dbapi_connection)
    statement.set_string(2, "b")
    statement.set_int(1, 1)

    cursor = statement.execute_query()

    cursor.execute.assert_called_once_with("SELECT ?, ?", (1, "b"))
    assert statement.bound_parameters == (1, "b")


def test_set_null_binds_none(dbapi_connection: MagicMock) -> None:
    statement = make_statement(dbapi_connection, "SELECT ?")

    statement.set_null(1, SqlType.TIMESTAMP)

    assert statement.bound_parameters == (None,)


def test_bindings_persist_between_executions(dbapi_connection: MagicMock) -> None:
    statement = make_statement(dbapi_connection, "UPDATE t SET a = ?")
    statement.set_long(1, 5)

    statement.execute_update()
    statement.execute_update()

    assert dbapi_connection.cursor.return_value.execute.call_count == 2


def test_gap_in_bindings_raises(dbapi_connection: MagicMock) -> None:
    statement = make_statement(dbapi_connection, "SELECT ?, ?, ?")
    statement.set_int(1, 1)
    statement.set_int(3, 3)

    with pytest.raises(ParameterBindingError, match=r"\[2\]"):
        statement.execute_query()
    dbapi_connection.cursor.assert_not_called()


def test_index_must_be_positive(dbapi_connection: MagicMock) -> None:
    with pytest.raises(ParameterBindingError):
        make_statement(dbapi_connection).set_int(0, 1)


def test_type_coercion_map_applies_to_bound_values(dbapi_connection: MagicMock) -> None:
    config = ParameterStyleConfig(type_coercion_map={bool: int, datetime.datetime: lambda v: v.isoformat()})
    statement = DBAPIPreparedStatement(dbapi_connection, "SELECT ?, ?", config)

    statement.set_boolean(1, True)
    statement.set_timestamp(2, datetime.datetime(2024, 1, 2, 3, 4, 5))

    assert statement.bound_parameters == (1, "2024-01-02T03:04:05")


def test_execute_update_returns_rowcount(dbapi_connection: MagicMock) -> None:
    dbapi_connection.cursor.return_value.rowcount = 4

    assert make_statement(dbapi_connection, "DELETE FROM t").execute_update() == 4


def test_failed_execute_closes_cursor_and_reraises(dbapi_connection: MagicMock) -> None:
    cursor = dbapi_connection.cursor.return_value
    cursor.execute.side_effect = RuntimeError("syntax error")

    with pytest.raises(RuntimeError, match="syntax error"):
        make_statement(dbapi_connection, "SELEC 1").execute_query()

    cursor.close.assert_called_once()


def test_generated_keys_require_mode(dbapi_connection: MagicMock) -> None:
    statement = make_statement(dbapi_connection, "INSERT INTO t DEFAULT VALUES")
    statement.execute_update()

    with pytest.raises(GeneratedKeysError):
        statement.get_generated_keys()


def test_generated_keys_require_prior_update(dbapi_connection: MagicMock) -> None:
    statement = make_statement(
        dbapi_connection, "INSERT INTO t DEFAULT VALUES", generated_keys=GeneratedKeys.RETURN_GENERATED_KEYS
    )

    with pytest.raises(GeneratedKeysError):
        statement.get_generated_keys()

    statement.execute_update()
    assert statement.get_generated_keys() is dbapi_connection.cursor.return_value


def test_driver_warnings_are_recorded(dbapi_connection: MagicMock) -> None:
    def execute(sql: str, parameters: tuple[object, ...]) -> None:
        warnings.warn("Data truncated for column 'a'", DriverWarning, stacklevel=1)

    cursor = dbapi_connection.cursor.return_value
    cursor.execute.side_effect = execute
    statement = make_statement(dbapi_connection, "UPDATE t SET a = 1", ParameterStyleConfig(capture_warnings=True))

    assert statement.get_warnings() is None
    statement.execute_update()

    recorded = statement.get_warnings()
    assert recorded is not None
    assert [w.category for w in recorded] == [DriverWarning]

    cursor.execute.side_effect = None
    statement.execute_update()
    assert statement.get_warnings() is None


def test_warnings_pass_through_untouched_without_capture(dbapi_connection: MagicMock) -> None:
    active_filters: list[object] = []

    def execute(sql: str, parameters: tuple[object, ...]) -> None:
        active_filters.append(warnings.filters)
        warnings.warn("Data truncated for column 'a'", DriverWarning, stacklevel=1)

    dbapi_connection.cursor.return_value.execute.side_effect = execute
    statement = make_statement(dbapi_connection, "UPDATE t SET a = 1")

    with pytest.warns(DriverWarning, match="truncated"):
        filters = warnings.filters
        statement.execute_update()

    assert active_filters[0] is filters
    assert statement.get_warnings() is None


def test_deprecation_warnings_are_not_driver_warnings(dbapi_connection: MagicMock) -> None:
    def execute(sql: str, parameters: tuple[object, ...]) -> None:
        warnings.warn("old adapter", DeprecationWarning, stacklevel=1)

    dbapi_connection.cursor.return_value.execute.side_effect = execute
    statement = make_statement(dbapi_connection, "UPDATE t SET a = 1", ParameterStyleConfig(capture_warnings=True))

    with pytest.warns(DeprecationWarning, match="old adapter"):
        statement.execute_update()

    assert statement.get_warnings() is None


def test_closed_statement_rejects_every_operation(dbapi_connection: MagicMock) -> None:
    statement = make_statement(dbapi_connection)
    statement.close()
    statement.close()

    assert statement.closed
    for operation in (
        statement.execute_query,
        statement.execute_update,
        statement.get_generated_keys,
        statement.get_warnings,
        lambda: statement.set_int(1, 1),
    ):
        with pytest.raises(StatementClosedError):
            operation()


def test_close_releases_update_cursor(dbapi_connection: MagicMock) -> None:
    statement = make_statement(dbapi_connection, "UPDATE t SET a = 1")
    statement.execute_update()

    statement.close()

    dbapi_connection.cursor.return_value.close.assert_called_once()


def test_driver_prepares_with_its_config(dbapi_connection: MagicMock) -> None:
    config = ParameterStyleConfig(ParameterStyle.FORMAT)
    driver = DBAPIDriver(dbapi_connection, config)

    statement = driver.prepare_statement("SELECT %s", GeneratedKeys.RETURN_GENERATED_KEYS)

    assert statement.sql == "SELECT %s"
    assert driver.connection is dbapi_connection


def test_driver_statement_rejects_unbound_trailing_marker(dbapi_connection: MagicMock) -> None:
    statement = DBAPIDriver(dbapi_connection, ParameterStyleConfig()).prepare_statement(
        "SELECT * FROM t WHERE a = ? AND b = ? AND c = '?'"
    )
    statement.set_int(1, 1)

    with pytest.raises(ParameterBindingError, match=r"\[2\]"):
        statement.execute_query()
    dbapi_connection.cursor.assert_not_called()

    statement.set_int(2, 2)
    statement.execute_query()
    dbapi_connection.cursor.return_value.execute.assert_called_once_with(
        "SELECT * FROM t WHERE a = ? AND b = ? AND c = '?'", (1, 2)
    )


def test_driver_statement_rejects_index_beyond_markers(dbapi_connection: MagicMock) -> None:
    statement = DBAPIDriver(dbapi_connection, ParameterStyleConfig()).prepare_statement("SELECT ?")

    with pytest.raises(ParameterBindingError, match="out of range"):
        statement.set_int(2, 1)


class TestConnectionProvider:
    def test_connects_lazily_and_once(self) -> None:
        connect = MagicMock()
        provider = DBAPIConnectionProvider(connect)

        assert not provider.connected
        first = provider.get_instance()
        second = provider.get_instance()

        assert first is second
        connect.assert_called_once_with()

    def test_reset_replaces_connection(self) -> None:
        old, new = MagicMock(), MagicMock()
        provider = DBAPIConnectionProvider(MagicMock(side_effect=[old, new]))
        provider.get_instance()

        provider.reset()

        old.close.assert_called_once()
        assert provider.get_instance().connection is new

    def test_reset_ignores_close_errors(self) -> None:
        old, new = MagicMock(), MagicMock()
        old.close.side_effect = RuntimeError("already gone")
        provider = DBAPIConnectionProvider(MagicMock(side_effect=[old, new]))
        provider.get_instance()

        provider.reset()

        assert provider.get_instance().connection is new

    def test_reset_propagates_connect_errors(self) -> None:
        provider = DBAPIConnectionProvider(MagicMock(side_effect=[MagicMock(), OSError("refused")]))
        provider.get_instance()

        with pytest.raises(OSError, match="refused"):
            provider.reset()

        assert not provider.connected

    def test_context_manager_closes_connection(self) -> None:
        raw = MagicMock()

        with DBAPIConnectionProvider(lambda: raw) as provider:
            provider.get_instance()

        raw.close.assert_called_once()
        assert not provider.connected

    def test_statement_uses_provider_parameter_style(self) -> None:
        provider = DBAPIConnectionProvider(MagicMock(), parameter_config=ParameterStyleConfig(ParameterStyle.NUMERIC))

        statement = provider.statement("SELECT :a, :b, :a")

        assert isinstance(statement, NamedParameterStatement)
        assert statement.sql == "SELECT :1, :2, :3"
        assert statement.state is StatementState.ABSENT
