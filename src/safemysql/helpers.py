"""
Whitelisting helpers for values that cannot go through a placeholder.

Operators, sort directions and field lists chosen by a user should be
checked against a fixed list before they reach a query.
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterable


def choose_allowed(candidate: Any, allowed: Iterable[Any], default: Any = False) -> Any:
    """
    Return the allowed variant equal to candidate, or default.

    Example:
        direction = choose_allowed(request_dir, ["ASC", "DESC"])
        if not direction:
            raise NotFound()
        db.get_all("SELECT * FROM t ORDER BY ?n ?p", ["name", direction])

    Args:
        candidate: User-supplied value to test
        allowed: Permitted variants
        default: Returned when no variant matches

    Returns:
        The matching element of allowed (not the candidate itself)
    """
    for variant in allowed:
        if variant == candidate:
            return variant
    return default


def keep_allowed_keys(data: Mapping, allowed: Iterable[Any]) -> Dict[Any, Any]:
    """Copy of data with only the allowed keys, in the original key order."""
    allowed = set(allowed)
    return {key: value for key, value in data.items() if key in allowed}
