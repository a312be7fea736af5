from typing import Any, Optional

__all__ = (
    "GeneratedKeysError",
    "NamedSQLError",
    "ParameterBindingError",
    "PrepareError",
    "ReconnectError",
    "StatementClosedError",
    "StatementError",
    "StatementNotPreparedError",
)


class NamedSQLError(Exception):
    """Base exception class from which all namedsql exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``NamedSQLError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


# -- Statement lifecycle errors --
class StatementError(NamedSQLError):
    """Base class for statement lifecycle errors."""


class StatementNotPreparedError(StatementError):
    """Raised when a statement is used before ``prepare()`` produced a valid handle."""

    detail = "Statement is not prepared. Call prepare() before binding or executing."


class StatementClosedError(StatementError):
    """Raised when an operation is attempted on a closed statement."""

    detail = "Statement is closed."


class GeneratedKeysError(StatementError):
    """Raised when generated keys are requested but none are available."""


class ParameterBindingError(StatementError):
    """Raised when the bound positional parameters do not form a contiguous range."""

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        """Initialize with optional SQL context."""
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


# -- Recovery errors --
class PrepareError(NamedSQLError):
    """The statement could not be re-prepared during recovery.

    ``original_error`` is the failure that triggered the recovery attempt; the
    error raised by the re-prepare itself is chained as ``__cause__``.
    """

    original_error: Optional[BaseException]

    def __init__(self, message: str, original_error: Optional[BaseException] = None) -> None:
        detail_message = message
        if original_error is not None:
            detail_message = f"{message} (after: {original_error!r})"
        super().__init__(detail=detail_message)
        self.original_error = original_error


class ReconnectError(PrepareError):
    """The connection reset performed during recovery failed.

    Carries both the error that triggered recovery and the reconnect error, so
    the caller decides how to log or report them.
    """

    reconnect_error: BaseException

    def __init__(
        self, message: str, reconnect_error: BaseException, original_error: Optional[BaseException] = None
    ) -> None:
        super().__init__(f"{message}: {reconnect_error!r}", original_error=original_error)
        self.reconnect_error = reconnect_error
