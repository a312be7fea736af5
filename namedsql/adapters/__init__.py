"""Implementations of the collaborator protocols for DB-API drivers."""

from namedsql.adapters.dbapi import DBAPIConnectionProvider, DBAPIDriver, DBAPIPreparedStatement
from namedsql.adapters.sqlite import (
    SqliteConnectionParams,
    SqliteConnectionProvider,
    register_sqlite_converters,
    sqlite_parameter_config,
)

__all__ = (
    "DBAPIConnectionProvider",
    "DBAPIDriver",
    "DBAPIPreparedStatement",
    "SqliteConnectionParams",
    "SqliteConnectionProvider",
    "register_sqlite_converters",
    "sqlite_parameter_config",
)
