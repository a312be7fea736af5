"""Single-pass rewriting of ``:name`` placeholders into positional markers.

The scan tracks three states: outside quotes, inside a single-quoted literal
and inside a double-quoted identifier. Quoted text is copied verbatim, so a
colon inside ``'12:30'`` or ``"a:b"`` is never taken for a placeholder.
"""

from types import MappingProxyType
from typing import Final, NamedTuple

from namedsql.parameters.types import ParameterStyle
from namedsql.typing import ParameterMap

__all__ = ("ParsedQuery", "count_markers", "parse")

SINGLE_QUOTE: Final = "'"
DOUBLE_QUOTE: Final = '"'
PLACEHOLDER_PREFIX: Final = ":"


class ParsedQuery(NamedTuple):
    """A query rewritten to positional markers and the name to index mapping."""

    sql: str
    parameters: ParameterMap

    @property
    def parameter_count(self) -> int:
        """Total number of placeholder occurrences (not unique names)."""
        return sum(len(indices) for indices in self.parameters.values())


def _is_identifier_start(char: str) -> bool:
    return char.isidentifier()


def _is_identifier_part(char: str) -> bool:
    return f"_{char}".isidentifier()


def parse(query: str, style: ParameterStyle = ParameterStyle.QMARK) -> ParsedQuery:
    """Rewrite the named placeholders of ``query`` to ``style`` markers.

    Every occurrence gets the next 1-based index, so a name used twice maps to
    two indices. A ``:`` that is not followed by an identifier start is kept
    as-is. With :attr:`ParameterStyle.FORMAT` every literal ``%`` is doubled so
    the driver does not read it as a directive.

    Args:
        query: SQL text with ``:name`` placeholders.
        style: Positional marker style of the output.

    Returns:
        The rewritten SQL and a read-only mapping of name to its indices.
    """
    length = len(query)
    escape_percent = style is ParameterStyle.FORMAT
    output: list[str] = []
    occurrences: dict[str, list[int]] = {}
    in_single_quote = False
    in_double_quote = False
    index = 1
    position = 0

    while position < length:
        char = query[position]

        if in_single_quote:
            if char == SINGLE_QUOTE:
                in_single_quote = False
        elif in_double_quote:
            if char == DOUBLE_QUOTE:
                in_double_quote = False
        elif char == SINGLE_QUOTE:
            in_single_quote = True
        elif char == DOUBLE_QUOTE:
            in_double_quote = True
        elif (
            char == PLACEHOLDER_PREFIX and position + 1 < length and _is_identifier_start(query[position + 1])
        ):
            end = position + 2
            while end < length and _is_identifier_part(query[end]):
                end += 1
            occurrences.setdefault(query[position + 1 : end], []).append(index)
            output.append(style.marker(index))
            index += 1
            position = end
            continue

        if escape_percent and char == "%":
            output.append("%%")
        else:
            output.append(char)
        position += 1

    parameters = MappingProxyType({name: tuple(indices) for name, indices in occurrences.items()})
    return ParsedQuery("".join(output), parameters)


def count_markers(sql: str, style: ParameterStyle = ParameterStyle.QMARK) -> int:
    """Return how many positional parameters ``sql`` expects in ``style``.

    ``?`` and ``:n`` markers inside quotes are not counted. For
    :attr:`ParameterStyle.NUMERIC` the highest index wins, so ``:1, :1`` expects
    one parameter. :attr:`ParameterStyle.FORMAT` drivers substitute everywhere,
    so every ``%s`` counts and ``%%`` is an escaped percent sign.
    """
    length = len(sql)
    position = 0
    count = 0

    if style is ParameterStyle.FORMAT:
        while position < length:
            if sql[position] == "%" and position + 1 < length:
                if sql[position + 1] == "s":
                    count += 1
                position += 2
                continue
            position += 1
        return count

    in_single_quote = False
    in_double_quote = False
    while position < length:
        char = sql[position]
        if in_single_quote:
            in_single_quote = char != SINGLE_QUOTE
        elif in_double_quote:
            in_double_quote = char != DOUBLE_QUOTE
        elif char == SINGLE_QUOTE:
            in_single_quote = True
        elif char == DOUBLE_QUOTE:
            in_double_quote = True
        elif style is ParameterStyle.QMARK and char == "?":
            count += 1
        elif style is ParameterStyle.NUMERIC and char == PLACEHOLDER_PREFIX:
            end = position + 1
            while end < length and sql[end].isdigit():
                end += 1
            if end > position + 1:
                count = max(count, int(sql[position + 1 : end]))
                position = end
                continue
        position += 1
    return count
