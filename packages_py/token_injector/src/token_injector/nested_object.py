"""
Build nested JSON objects from flat dotted-path credential pairs.

Example:
    [user.name=john, user.pass=secret, tenant=acme]
    -> {"user": {"name": "john", "pass": "secret"}, "tenant": "acme"}
"""
import logging
from typing import Any, Dict, Iterable, List

from .errors import EmptyKeyError, PathConflictError
from .types import CredentialPair

logger = logging.getLogger(__name__)

NestedObject = Dict[str, Any]


def split_path(key: str) -> List[str]:
    """Split a dotted key into segments, rejecting empty segments."""
    segments = key.split(".")
    if not key or any(not segment for segment in segments):
        raise EmptyKeyError(key)
    return segments


def set_nested_value(obj: NestedObject, key: str, value: str) -> None:
    """
    Bind ``value`` at the dotted path ``key`` inside ``obj``.

    Intermediate segments are created as objects on first use. Descending
    into a segment bound to a string, or binding a leaf over an existing
    object, raises PathConflictError. Rebinding an existing leaf replaces it.
    """
    segments = split_path(key)
    current = obj
    for segment in segments[:-1]:
        existing = current.get(segment)
        if existing is None:
            existing = current[segment] = {}
        elif not isinstance(existing, dict):
            raise PathConflictError(key, segment)
        current = existing

    leaf = segments[-1]
    if isinstance(current.get(leaf), dict):
        raise PathConflictError(key, leaf)
    current[leaf] = value


def build_nested_object(pairs: Iterable[CredentialPair]) -> NestedObject:
    """Merge credential pairs into one nested object."""
    result: NestedObject = {}
    count = 0
    for pair in pairs:
        set_nested_value(result, pair.key, pair.value)
        count += 1
    logger.debug(f"build_nested_object: merged {count} pairs, top_level_keys={sorted(result)}")
    return result
