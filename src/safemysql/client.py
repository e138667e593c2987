"""MySQL client running placeholder templates through pymysql."""

import time
import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Union

import pymysql
from pymysql.charset import charset_by_name
from pymysql.connections import Connection
from pymysql.constants import SERVER_STATUS
from pymysql.converters import escape_string
from pymysql.cursors import Cursor, DictCursor

from .config import ConnectionOptions
from .errors import CharsetError, DatabaseConnectionError, InvalidOptionError, QueryError
from .helpers import choose_allowed, keep_allowed_keys
from .models import ExecutionRecord, FetchMode, QueryStats
from .placeholders import EscapeFunc, prepare


logger = logging.getLogger(__name__)
query_logger = logging.getLogger("safemysql_queries")

Row = Union[Dict[str, Any], tuple]


def _error_text(error: pymysql.MySQLError) -> str:
    """Server message without the (code, message) tuple wrapping."""
    if len(error.args) > 1:
        return str(error.args[1])
    return str(error)


def _error_code(error: pymysql.MySQLError) -> Optional[int]:
    if error.args and isinstance(error.args[0], int):
        return error.args[0]
    return None


def string_escaper(connection: Connection) -> EscapeFunc:
    """
    Escaping primitive bound to a connection.

    Follows the server's NO_BACKSLASH_ESCAPES mode, which is re-read on
    every call since the session can change it.
    """
    def escape(value: str) -> str:
        status = getattr(connection, "server_status", 0) or 0
        if status & SERVER_STATUS.SERVER_STATUS_NO_BACKSLASH_ESCAPES:
            return value.replace("'", "''")
        return escape_string(value)
    return escape


class SafeMySQL:
    """
    Safe and convenient MySQL access through type-hinted placeholders.

    Queries are built client-side: every placeholder is replaced by a value
    escaped according to its type, then the literal query is sent to the
    server. Use parse() to build query parts conditionally and insert them
    through ?p.

    Examples:
        db = SafeMySQL(load_options())
        name = db.get_one("SELECT name FROM users WHERE id = ?i", [user_id])
        rows = db.get_all("SELECT * FROM ?n WHERE id IN (?a)", ["users", ids])
        db.query("UPDATE users SET ?u WHERE id = ?i", [fields, user_id])

    One instance owns one connection and is not safe for concurrent use.
    """

    def __init__(
        self,
        options: Optional[ConnectionOptions] = None,
        connection: Optional[Connection] = None,
    ):
        """
        Open a new connection or wrap an existing one.

        Args:
            options: Connection settings; defaults when omitted
            connection: Already open pymysql connection to use as is

        Raises:
            InvalidOptionError: If connection is not a pymysql Connection
            DatabaseConnectionError: If the server cannot be reached
            CharsetError: If the configured charset cannot be applied
        """
        self.options = options or ConnectionOptions()
        self.stats = QueryStats()

        if connection is not None:
            if not isinstance(connection, Connection):
                raise InvalidOptionError(
                    "connection must be a pymysql Connection instance, "
                    f"{type(connection).__name__} given"
                )
            self._connection = connection
            self._owns_connection = False
            return

        self._connection = self._connect()
        self._owns_connection = True
        try:
            self._set_charset(self.options.charset)
        except CharsetError:
            self._connection.close()
            raise

    def _connect(self) -> Connection:
        kwargs = self.options.connect_kwargs()
        logger.debug(f"Connecting to MySQL: {self.options.user}@{self.options.host}")
        try:
            return pymysql.connect(**kwargs)
        except pymysql.MySQLError as e:
            logger.error(f"Connection to {self.options.host} failed: {e}")
            raise DatabaseConnectionError(_error_code(e), _error_text(e)) from e

    def _set_charset(self, charset: str):
        if charset_by_name(charset) is None:
            raise CharsetError(charset, "unknown character set")
        try:
            self._connection.set_character_set(charset)
        except pymysql.MySQLError as e:
            logger.error(f"Failed to set charset {charset}: {e}")
            raise CharsetError(charset, _error_text(e)) from e

    @property
    def connection(self) -> Connection:
        return self._connection

    def close(self):
        """Close the connection if it was opened by this instance."""
        if self._owns_connection and self._connection.open:
            self._connection.close()
            logger.debug("Closed MySQL connection")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def parse(self, template: str, args: Sequence[Any] = ()) -> str:
        """
        Substitute placeholders without running the query.

        Useful for debugging and for building query parts conditionally.
        Parsed parts go into the final query through ?p:

            part = db.parse(" AND foo = ?s", [foo]) if foo else ""
            db.get_all("SELECT * FROM t WHERE bar = ?s ?p", [bar, part])
        """
        return prepare(template, args, string_escaper(self._connection))

    def query(self, template: str, args: Sequence[Any] = ()) -> Cursor:
        """Run a query with placeholders and return its result cursor."""
        return self.raw_query(self.parse(template, args))

    def raw_query(self, query: str) -> Cursor:
        """
        Run an already prepared query and record its timing.

        Raises:
            QueryError: If the server rejected the query
        """
        cursor = self._connection.cursor(DictCursor)
        start = time.time()
        try:
            cursor.execute(query)
        except pymysql.MySQLError as e:
            error = _error_text(e)
            self._record_failure(cursor, query, start, error)
            raise QueryError(error, query) from e
        except Exception as e:
            self._record_failure(cursor, query, start, f"{type(e).__name__}: {e}")
            raise

        timer = time.time() - start
        self.stats.add(ExecutionRecord(query=query, start=start, timer=timer))
        query_logger.info(f"query={query!r} timer={timer:.4f}s rows={cursor.rowcount}")
        return cursor

    def _record_failure(self, cursor: Cursor, query: str, start: float, error: str):
        timer = time.time() - start
        try:
            cursor.close()
        finally:
            self.stats.add(ExecutionRecord(query=query, start=start, timer=timer, error=error))
            query_logger.info(f"query={query!r} timer={timer:.4f}s error={error}")
            logger.error(f"Query failed: {error}")

    def fetch(self, result: Cursor, mode: FetchMode = FetchMode.ASSOC) -> Optional[Row]:
        """Fetch the next row as a dict (ASSOC) or a tuple (NUM); None when exhausted."""
        row = result.fetchone()
        if row is None or mode is FetchMode.ASSOC:
            return row
        return tuple(row.values())

    def free(self, result: Cursor):
        result.close()

    def num_rows(self, result: Cursor) -> int:
        return result.rowcount

    def affected_rows(self) -> int:
        return self._connection.affected_rows()

    def insert_id(self) -> int:
        return self._connection.insert_id()

    def _rows(self, template: str, args: Sequence[Any]) -> Iterator[Dict[str, Any]]:
        result = self.query(template, args)
        try:
            while True:
                row = self.fetch(result)
                if row is None:
                    break
                yield row
        finally:
            self.free(result)

    def get_one(self, template: str, args: Sequence[Any] = ()) -> Any:
        """
        First column of the first row, or None if no row was found.

        Example:
            name = db.get_one("SELECT name FROM table WHERE id = ?i", [id])
        """
        row = self.get_row(template, args)
        if row is None:
            return None
        return next(iter(row.values()))

    def get_row(self, template: str, args: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        """First row as a dict, or None if no row was found."""
        result = self.query(template, args)
        try:
            return self.fetch(result)
        finally:
            self.free(result)

    def get_col(self, template: str, args: Sequence[Any] = ()) -> List[Any]:
        """First column of every row."""
        return [next(iter(row.values())) for row in self._rows(template, args)]

    def get_all(self, template: str, args: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """All rows as dicts. Empty list if none found."""
        return list(self._rows(template, args))

    def get_ind(self, index: str, template: str, args: Sequence[Any] = ()) -> Dict[Any, Dict[str, Any]]:
        """
        All rows keyed by the value of the index column.

        Example:
            users = db.get_ind("id", "SELECT * FROM users WHERE id IN (?a)", [ids])
        """
        return {row[index]: row for row in self._rows(template, args)}

    def get_ind_col(self, index: str, template: str, args: Sequence[Any] = ()) -> Dict[Any, Any]:
        """
        Dictionary of index column value -> first remaining column value.

        Example:
            cities = db.get_ind_col("name", "SELECT name, id FROM cities")
        """
        ret = {}
        for row in self._rows(template, args):
            key = row.pop(index)
            ret[key] = next(iter(row.values()), None)
        return ret

    def white_list(self, candidate: Any, allowed: Iterable[Any], default: Any = False) -> Any:
        """See helpers.choose_allowed."""
        return choose_allowed(candidate, allowed, default)

    def filter_array(self, data: Mapping, allowed: Iterable[Any]) -> Dict[Any, Any]:
        """See helpers.keep_allowed_keys."""
        return keep_allowed_keys(data, allowed)

    def last_query(self) -> Optional[str]:
        """Most recently executed query, or None if there were none."""
        last = self.stats.last()
        return last.query if last else None

    def get_stats(self) -> List[ExecutionRecord]:
        """Executed queries with timings and errors, oldest first."""
        return self.stats.all()
