"""Named placeholder parsing and positional parameter styles."""

from namedsql.parameters.config import ParameterStyleConfig
from namedsql.parameters.parser import ParsedQuery, count_markers, parse
from namedsql.parameters.types import ParameterStyle

__all__ = ("ParameterStyle", "ParameterStyleConfig", "ParsedQuery", "count_markers", "parse")
