"""
State copy, freeze and encoding utilities.
"""

import copy
import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import orjson

from .errors import SyncError, CLONE_FAILED

logger = logging.getLogger(__name__)

_SCALARS = (str, int, float, bool, bytes)


def clone_state(value: Any) -> Any:
    """
    Deep copy a state value so the result shares no mutable references with it.

    Frozen snapshot views (read-only mappings, tuples and frozensets) come
    back as plain dicts, lists and sets. Values the structural copy cannot handle fall back to a
    JSON round trip.

    Raises:
        SyncError: CLONE_FAILED when neither strategy can copy the value
    """
    if value is None or isinstance(value, _SCALARS):
        return value

    try:
        return _structural_copy(value)
    except (TypeError, copy.Error) as e:
        logger.debug(f"Structural copy failed ({e}), falling back to JSON clone")

    try:
        return orjson.loads(dumps(value))
    except (TypeError, orjson.JSONEncodeError) as e:
        raise SyncError(CLONE_FAILED, f"Failed to clone value: {e}") from e


def _structural_copy(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _structural_copy(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_structural_copy(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return set(value)
    if value is None or isinstance(value, _SCALARS):
        return value
    # functions and classes come back as-is from deepcopy
    return copy.deepcopy(value)


def freeze_snapshot(value: Any) -> Any:
    """
    Recursively turn a cloned state into a read-only view.

    Dicts become MappingProxyType, lists become tuples and sets become
    frozensets, so no container in the result can be mutated. Read-only
    mappings are returned untouched.
    """
    if isinstance(value, MappingProxyType):
        return value
    if isinstance(value, dict):
        return MappingProxyType({key: freeze_snapshot(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze_snapshot(item) for item in value)
    if isinstance(value, set):
        return frozenset(value)
    return value


def is_frozen(value: Any) -> bool:
    """Check whether every container node of a value is read-only."""
    if isinstance(value, (dict, list, set)):
        return False
    if isinstance(value, Mapping):
        return all(is_frozen(item) for item in value.values())
    if isinstance(value, tuple):
        return all(is_frozen(item) for item in value)
    return True


def _json_default(value: Any) -> Any:
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


def dumps(value: Any) -> bytes:
    """Encode state or an event for the wire. Frozen snapshots are accepted."""
    return orjson.dumps(value, default=_json_default, option=orjson.OPT_NON_STR_KEYS)


def loads(raw: Any) -> Any:
    return orjson.loads(raw)
