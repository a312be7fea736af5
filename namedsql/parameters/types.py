"""Positional parameter styles a named query can be rewritten to."""

from enum import Enum

__all__ = ("ParameterStyle",)


class ParameterStyle(str, Enum):
    """Positional marker style, named after the PEP 249 ``paramstyle`` values."""

    QMARK = "qmark"
    NUMERIC = "numeric"
    FORMAT = "format"

    def __str__(self) -> str:
        """String representation for better error messages.

        Returns:
            The enum value as a string.
        """
        return self.value

    def marker(self, index: int) -> str:
        """Return the positional marker for the 1-based ``index``."""
        if self is ParameterStyle.NUMERIC:
            return f":{index}"
        if self is ParameterStyle.FORMAT:
            return "%s"
        return "?"
