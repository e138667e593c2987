"""Exception hierarchy for template preparation, connection and query failures."""

from typing import Optional


class SafeMySQLError(Exception):
    """Base class for every error raised by safemysql."""


class ArgumentCountError(SafeMySQLError, ValueError):
    """Number of arguments does not match number of placeholders."""

    def __init__(self, arguments: int, placeholders: int, template: str):
        self.arguments = arguments
        self.placeholders = placeholders
        self.template = template
        super().__init__(
            f"Number of args ({arguments}) doesn't match number of "
            f"placeholders ({placeholders}) in [{template}]"
        )


class PlaceholderTypeError(SafeMySQLError, TypeError):
    """Value of the wrong type bound to a placeholder."""


class EmptyIdentifierError(SafeMySQLError, ValueError):
    """Empty value bound to the identifier (?n) placeholder."""


class EmptyMapError(SafeMySQLError, ValueError):
    """Empty mapping bound to the SET (?u) placeholder."""


class InvalidOptionError(SafeMySQLError, ValueError):
    """Connection options or an injected connection are unusable."""


class DatabaseConnectionError(SafeMySQLError):
    """Connection to the server could not be established."""

    def __init__(self, code: Optional[int], message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code} {message}" if code is not None else message)


class CharsetError(SafeMySQLError):
    """Connection character set could not be applied."""

    def __init__(self, charset: str, message: str):
        self.charset = charset
        super().__init__(f"Cannot set charset '{charset}': {message}")


class QueryError(SafeMySQLError):
    """Server rejected a query. Carries the full query text."""

    def __init__(self, error: str, query: str):
        self.error = error
        self.query = query
        super().__init__(f"{error}; Full query: [{query}]")
