"""SQLite connection provider built on the standard ``sqlite3`` module."""

import datetime
import sqlite3
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional, TypedDict

from typing_extensions import NotRequired

from namedsql.adapters.dbapi import DBAPIConnectionProvider
from namedsql.parameters import ParameterStyle, ParameterStyleConfig
from namedsql.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = (
    "SqliteConnectionParams",
    "SqliteConnectionProvider",
    "register_sqlite_converters",
    "sqlite_parameter_config",
)

logger = get_logger("adapters.sqlite")


class SqliteConnectionParams(TypedDict, total=False):
    """SQLite connection parameters."""

    database: NotRequired[str]
    timeout: NotRequired[float]
    detect_types: NotRequired[int]
    isolation_level: "NotRequired[Optional[str]]"
    check_same_thread: NotRequired[bool]
    cached_statements: NotRequired[int]
    uri: NotRequired[bool]


sqlite_parameter_config = ParameterStyleConfig(
    parameter_style=ParameterStyle.QMARK,
    type_coercion_map={
        bool: int,
        datetime.datetime: lambda v: v.isoformat(),
        datetime.date: lambda v: v.isoformat(),
        Decimal: str,
    },
)


def _convert_boolean(value: bytes) -> bool:
    return bool(int(value))


def _convert_timestamp(value: bytes) -> datetime.datetime:
    return datetime.datetime.fromisoformat(value.decode())


def register_sqlite_converters() -> None:
    """Register ``BOOLEAN`` and ``TIMESTAMP`` column converters with :mod:`sqlite3`.

    They read back what :data:`sqlite_parameter_config` stores, on connections
    opened with ``detect_types=sqlite3.PARSE_DECLTYPES``. The registry is
    process-wide and replaces the built-in ``timestamp`` converter.
    """
    sqlite3.register_converter("BOOLEAN", _convert_boolean)
    sqlite3.register_converter("TIMESTAMP", _convert_timestamp)


def _is_shared_memory(database: str) -> bool:
    return (":memory:" in database or "mode=memory" in database) and "cache=shared" in database


class SqliteConnectionProvider(DBAPIConnectionProvider):
    """Connection provider for ``sqlite3``.

    Connections run in autocommit mode unless ``isolation_level`` is given, so
    writes survive :meth:`reset` and :meth:`close`. A missing database or
    ``":memory:"`` becomes a named shared-cache in-memory database. An extra
    connection keeps a shared in-memory database alive until :meth:`close`, so
    a reconnect finds the same tables.

    Passing ``detect_types`` with :data:`sqlite3.PARSE_DECLTYPES` registers the
    converters of :func:`register_sqlite_converters`.
    """

    def __init__(
        self,
        connection_config: "Optional[Mapping[str, Any]]" = None,
        *,
        parameter_config: Optional[ParameterStyleConfig] = None,
    ) -> None:
        """Initialize the SQLite provider.

        Args:
            connection_config: Keyword arguments for :func:`sqlite3.connect`
            parameter_config: Override of the default SQLite parameter handling
        """
        config: SqliteConnectionParams = dict(connection_config or {})  # type: ignore[assignment]
        if "database" not in config or config["database"] == ":memory:":
            config["database"] = f"file:memory_{uuid.uuid4().hex}?mode=memory&cache=shared"
            config["uri"] = True
        elif str(config["database"]).startswith("file:") and not config.get("uri"):
            logger.debug("Database URI detected (%s) but uri=True not set. Enabling URI mode.", config["database"])
            config["uri"] = True
        config.setdefault("isolation_level", None)
        if config.get("detect_types", 0) & sqlite3.PARSE_DECLTYPES:
            register_sqlite_converters()
        self.connection_config = config
        self._anchor: Optional[sqlite3.Connection] = None
        super().__init__(self._create_connection, parameter_config=parameter_config or sqlite_parameter_config)

    def _create_connection(self) -> sqlite3.Connection:
        if self._anchor is None and _is_shared_memory(str(self.connection_config["database"])):
            self._anchor = sqlite3.connect(**self.connection_config)
            logger.debug("Holding shared in-memory database %s open", self.connection_config["database"])
        return sqlite3.connect(**self.connection_config)

    def close(self) -> None:
        """Close the connection and release a shared in-memory database."""
        anchor, self._anchor = self._anchor, None
        try:
            super().close()
        finally:
            if anchor is not None:
                anchor.close()
