"""Parameter configuration for database drivers."""

from typing import Any, Callable, Optional

from namedsql.parameters.types import ParameterStyle

__all__ = ("ParameterStyleConfig",)


class ParameterStyleConfig:
    """Declarative configuration for a driver's parameter handling."""

    __slots__ = ("capture_warnings", "parameter_style", "type_coercion_map")

    def __init__(
        self,
        parameter_style: ParameterStyle = ParameterStyle.QMARK,
        type_coercion_map: Optional[dict[type, Callable[[Any], Any]]] = None,
        capture_warnings: bool = False,
    ) -> None:
        """Initialize driver parameter configuration.

        Args:
            parameter_style: Positional marker style the driver accepts
            type_coercion_map: Mapping of exact Python types to the function converting them for the driver
            capture_warnings: Record Python warnings raised by the driver during execution as statement
                warnings. Capturing swaps the process-wide warning filters for the duration of each
                execution, so it is not thread safe. Enable it only for drivers that report through
                :mod:`warnings` and are used from a single thread.
        """
        self.parameter_style = parameter_style
        self.type_coercion_map = type_coercion_map or {}
        self.capture_warnings = capture_warnings

    def coerce(self, value: Any) -> Any:
        """Convert ``value`` with the coercion registered for its exact type, if any."""
        if value is None:
            return None
        converter = self.type_coercion_map.get(type(value))
        if converter is None:
            return value
        return converter(value)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(parameter_style={self.parameter_style!r}, "
            f"type_coercion_map={self.type_coercion_map!r}, capture_warnings={self.capture_warnings!r})"
        )
