"""MySQL helper with type-hinted placeholders and client-side escaping."""
from .client import SafeMySQL
from .config import ConnectionOptions, load_options, setup_logging
from .errors import (
    SafeMySQLError,
    ArgumentCountError,
    PlaceholderTypeError,
    EmptyIdentifierError,
    EmptyMapError,
    InvalidOptionError,
    DatabaseConnectionError,
    CharsetError,
    QueryError,
)
from .helpers import choose_allowed, keep_allowed_keys
from .models import ExecutionRecord, FetchMode, QueryStats
from .placeholders import Placeholder, prepare, split_template

__all__ = [
    "SafeMySQL",
    "ConnectionOptions",
    "load_options",
    "setup_logging",
    "SafeMySQLError",
    "ArgumentCountError",
    "PlaceholderTypeError",
    "EmptyIdentifierError",
    "EmptyMapError",
    "InvalidOptionError",
    "DatabaseConnectionError",
    "CharsetError",
    "QueryError",
    "choose_allowed",
    "keep_allowed_keys",
    "ExecutionRecord",
    "FetchMode",
    "QueryStats",
    "Placeholder",
    "prepare",
    "split_template",
]
