"""
Type-hinted placeholder engine.

Turns a query template with positional placeholders into a literal SQL
string. Supported placeholders:

    ?s  string literal (also DATE, FLOAT and DECIMAL values)
    ?i  integer literal
    ?n  identifier (table or field name)
    ?a  comma separated list for IN(), without parenthesis
    ?u  `field`='value' pairs for SET
    ?p  already parsed fragment, inserted as is

Placeholders are found by a plain split of the template. The splitter knows
nothing about quoted literals or comments, so a token-like sequence inside
a literal segment is still treated as a placeholder.
"""

import datetime
import logging
import re
from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Dict, List, Optional, Sequence

from .errors import (
    ArgumentCountError,
    EmptyIdentifierError,
    EmptyMapError,
    PlaceholderTypeError,
)


logger = logging.getLogger(__name__)

EscapeFunc = Callable[[str], str]

PLACEHOLDER_PATTERN = re.compile(r"(\?[nsiuap])")

# Loose numeric strings: optional whitespace, sign, digits, fraction, exponent.
# ASCII only, other digits and spaces are not numbers to the server.
NUMERIC_STRING = re.compile(
    r"\A[ \t\n\r\v\f]*[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?[ \t\n\r\v\f]*\Z"
)

# Wide enough for any float without an exponent
_ROUNDING = Context(prec=400, rounding=ROUND_HALF_UP)

_SCALAR_TYPES = (
    int,
    float,
    Decimal,
    datetime.date,
    datetime.time,
    datetime.timedelta,
)


class Placeholder(str, Enum):
    """The six recognized placeholder tokens."""
    STRING = "?s"
    INTEGER = "?i"
    IDENTIFIER = "?n"
    IN_LIST = "?a"
    SET_MAP = "?u"
    PARSED = "?p"

    def escape(self, value: Any, escape_string: EscapeFunc) -> str:
        """Render one argument according to this placeholder's rule."""
        return _RULES[self](value, escape_string)


def escape_string(value: Any, escape: EscapeFunc) -> str:
    """?s - quoted string literal, or NULL for None."""
    if value is None:
        return "NULL"

    if isinstance(value, str):
        text = value
    elif isinstance(value, bytes):
        try:
            text = value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PlaceholderTypeError(
                f"String (?s) placeholder expects UTF-8 text, binary bytes given ({e.reason})"
            ) from e
    elif isinstance(value, bool):
        text = "1" if value else "0"
    elif isinstance(value, _SCALAR_TYPES):
        text = str(value)
    else:
        raise PlaceholderTypeError(
            f"String (?s) placeholder expects scalar value, {type(value).__name__} given"
        )

    return "'" + escape(text) + "'"


def escape_int(value: Any, escape: Optional[EscapeFunc] = None) -> str:
    """
    ?i - unquoted integer literal, or NULL for None.

    Fractional numbers are rounded to zero decimal places instead of being
    rejected; big floats may lose precision. Numeric strings pass through
    unchanged.
    """
    if value is None:
        return "NULL"

    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)

    if isinstance(value, (float, Decimal)):
        number = Decimal(value)
        if not number.is_finite():
            raise PlaceholderTypeError(
                f"Integer (?i) placeholder expects finite number, {value!r} given"
            )
        try:
            rounded = _ROUNDING.quantize(number, Decimal(1))
        except InvalidOperation as e:
            raise PlaceholderTypeError(
                f"Integer (?i) placeholder value out of range: {value!r}"
            ) from e
        if rounded.is_zero():
            return "0"
        return format(rounded, "f")

    if isinstance(value, str) and NUMERIC_STRING.match(value):
        return value

    raise PlaceholderTypeError(
        f"Integer (?i) placeholder expects numeric value, {type(value).__name__} given"
    )


def escape_ident(value: Any, escape: Optional[EscapeFunc] = None) -> str:
    """?n - backtick-quoted identifier with embedded backticks doubled."""
    if not value:
        raise EmptyIdentifierError("Empty value for identifier (?n) placeholder")

    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise PlaceholderTypeError(
            f"Identifier (?n) placeholder expects string, {type(value).__name__} given"
        )

    return "`" + str(value).replace("`", "``") + "`"


def create_in(value: Any, escape: EscapeFunc) -> str:
    """?a - 'a','b','c' list for IN(), NULL when empty."""
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise PlaceholderTypeError(
            f"Array (?a) placeholder expects sequence, {type(value).__name__} given"
        )

    items = list(value.values()) if isinstance(value, Mapping) else list(value)
    if not items:
        return "NULL"

    return ",".join(escape_string(item, escape) for item in items)


def create_set(value: Any, escape: EscapeFunc) -> str:
    """?u - `field`='value' pairs for SET, in mapping order."""
    if not isinstance(value, Mapping):
        raise PlaceholderTypeError(
            f"SET (?u) placeholder expects mapping, {type(value).__name__} given"
        )

    if not value:
        raise EmptyMapError("Empty array for SET (?u) placeholder")

    return ",".join(
        escape_ident(key) + "=" + escape_string(item, escape)
        for key, item in value.items()
    )


def insert_parsed(value: Any, escape: Optional[EscapeFunc] = None) -> str:
    """?p - already parsed fragment, no escaping."""
    if not isinstance(value, str):
        raise PlaceholderTypeError(
            f"Parsed (?p) placeholder expects string, {type(value).__name__} given"
        )
    return value


_RULES: Dict[Placeholder, Callable[[Any, EscapeFunc], str]] = {
    Placeholder.STRING: escape_string,
    Placeholder.INTEGER: escape_int,
    Placeholder.IDENTIFIER: escape_ident,
    Placeholder.IN_LIST: create_in,
    Placeholder.SET_MAP: create_set,
    Placeholder.PARSED: insert_parsed,
}


def split_template(template: str) -> List[str]:
    """
    Split a template into literal and placeholder segments.

    Literal text sits at even indexes, placeholder tokens at odd ones.
    """
    return PLACEHOLDER_PATTERN.split(template)


def prepare(template: str, args: Sequence[Any], escape: EscapeFunc) -> str:
    """
    Substitute placeholders in a template with escaped arguments.

    Args:
        template: Query or query part containing placeholders
        args: One positional value per placeholder, in order
        escape: Connection-bound string escaping primitive (no quotes added)

    Returns:
        Final query string

    Raises:
        ArgumentCountError: If len(args) differs from the placeholder count
        PlaceholderTypeError: If a value does not suit its placeholder
        EmptyIdentifierError: If ?n gets an empty value
        EmptyMapError: If ?u gets an empty mapping
    """
    if isinstance(args, (str, bytes)):
        raise PlaceholderTypeError(
            f"Arguments must be a sequence of values, {type(args).__name__} given"
        )
    args = list(args)
    parts = split_template(template)
    placeholders = len(parts) // 2

    if len(args) != placeholders:
        raise ArgumentCountError(len(args), placeholders, template)

    values = iter(args)
    prepared = []
    for i, part in enumerate(parts):
        if i % 2 == 0:
            prepared.append(part)
            continue
        prepared.append(Placeholder(part).escape(next(values), escape))

    query = "".join(prepared)
    logger.debug(f"Prepared {placeholders} placeholder(s): {query}")
    return query
