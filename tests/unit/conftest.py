from unittest.mock import MagicMock

import pytest

from namedsql.protocols import ConnectionProvider, DriverConnection, StatementHandle


def make_handle() -> MagicMock:
    handle = MagicMock(spec=StatementHandle)
    handle.get_warnings.return_value = None
    return handle


@pytest.fixture
def handles() -> list[MagicMock]:
    """Every handle the fake driver connection has prepared, in order."""
    return []


@pytest.fixture
def driver_connection(handles: list[MagicMock]) -> MagicMock:
    driver = MagicMock(spec=DriverConnection)

    def prepare_statement(sql: str, generated_keys: object = None) -> MagicMock:
        handle = make_handle()
        handles.append(handle)
        return handle

    driver.prepare_statement.side_effect = prepare_statement
    return driver


@pytest.fixture
def connection(driver_connection: MagicMock) -> MagicMock:
    provider = MagicMock(spec=ConnectionProvider)
    provider.get_instance.return_value = driver_connection
    return provider
