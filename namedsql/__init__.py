"""namedsql: named ``:placeholder`` parameters over positional database drivers."""

from namedsql import adapters, exceptions, parameters, protocols, typing, utils
from namedsql.__metadata__ import __version__
from namedsql.adapters import DBAPIConnectionProvider, SqliteConnectionProvider
from namedsql.exceptions import (
    NamedSQLError,
    PrepareError,
    ReconnectError,
    StatementClosedError,
    StatementError,
    StatementNotPreparedError,
)
from namedsql.parameters import ParameterStyle, ParameterStyleConfig, ParsedQuery, parse
from namedsql.protocols import ConnectionProvider, DriverConnection, StatementHandle
from namedsql.statement import NamedParameterStatement, StatementState
from namedsql.typing import GeneratedKeys, ParameterMap, SqlType

__all__ = (
    "ConnectionProvider",
    "DBAPIConnectionProvider",
    "DriverConnection",
    "GeneratedKeys",
    "NamedParameterStatement",
    "NamedSQLError",
    "ParameterMap",
    "ParameterStyle",
    "ParameterStyleConfig",
    "ParsedQuery",
    "PrepareError",
    "ReconnectError",
    "SqliteConnectionProvider",
    "SqlType",
    "StatementClosedError",
    "StatementError",
    "StatementHandle",
    "StatementNotPreparedError",
    "StatementState",
    "__version__",
    "adapters",
    "exceptions",
    "parameters",
    "protocols",
    "typing",
    "utils",
    "parse",
)
