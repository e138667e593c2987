"""
Value objects for query execution.
Keeps per-query timing history and row fetch modes.
"""
from collections import deque
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Deque, Dict, List, Optional


class FetchMode(Enum):
    """Row shape returned by SafeMySQL.fetch()."""
    ASSOC = "assoc"  # dict keyed by column name
    NUM = "num"      # tuple in column order


@dataclass
class ExecutionRecord:
    """
    One submitted query with its timing.
    Error is filled in only when the server rejected the query.
    """
    query: str
    start: float
    timer: float
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict, dropping the error key for successful queries."""
        d = asdict(self)
        if d["error"] is None:
            d.pop("error")
        return d


class QueryStats:
    """
    Bounded history of executed queries.

    Keeps only the most recent MAX_ENTRIES records; the oldest entry is
    evicted first. Not synchronized: one instance per connection.
    """

    MAX_ENTRIES = 100

    def __init__(self, max_entries: int = MAX_ENTRIES):
        self._records: Deque[ExecutionRecord] = deque(maxlen=max_entries)

    def add(self, record: ExecutionRecord) -> None:
        self._records.append(record)

    def last(self) -> Optional[ExecutionRecord]:
        return self._records[-1] if self._records else None

    def all(self) -> List[ExecutionRecord]:
        """Records in execution order, oldest first."""
        return list(self._records)

    def clear(self) -> int:
        count = len(self._records)
        self._records.clear()
        return count

    def __len__(self) -> int:
        return len(self._records)
