"""Encoding of value records and index entries for string-only stores.

Every persisted value is wrapped in a JSON object carrying its absolute
expiration deadline in epoch milliseconds:

    {"expiresAtMse": 1700000000000, "value": "42"}

A deadline of ``null`` means the record never expires. Records never judge
their own expiry; readers compare the deadline against the current clock with
``is_expired``.

Usage:
    data = encode_record("42", expires_at_mse=None)
    record = decode_record(data)
    if not is_expired(record.expires_at_mse, now_mse()):
        ...
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from namespaced_cache.exceptions import RecordParseError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

_EXPIRES_AT_FIELD = "expiresAtMse"
_VALUE_FIELD = "value"
_KEY_FIELD = "key"


@dataclass(frozen=True, slots=True)
class Record:
    """A decoded value record."""

    value: str
    expires_at_mse: int | None


@dataclass(frozen=True, slots=True)
class KeyWithMetadata:
    """One entry of the valid-key index.

    Attributes:
        key: The caller's (un-namespaced) cache key.
        expires_at_mse: Epoch-millisecond deadline, or None for never.
    """

    key: str
    expires_at_mse: int | None


def now_mse(clock: Callable[[], float] = time.time) -> int:
    """Return the clock's current time in epoch milliseconds."""
    return int(clock() * 1000)


def is_expired(expires_at_mse: int | None, now: int) -> bool:
    """Return True if a deadline has passed at ``now`` (epoch ms)."""
    if expires_at_mse is None:
        return False
    return expires_at_mse < now


def encode_record(value: str, expires_at_mse: int | None) -> str:
    return json.dumps({_EXPIRES_AT_FIELD: expires_at_mse, _VALUE_FIELD: value})


def decode_record(data: str, raw_key: str | None = None) -> Record:
    """Decode a value record, raising RecordParseError if it is malformed."""
    raw = _loads(data, raw_key)
    if not isinstance(raw, dict):
        raise RecordParseError("record is not a JSON object", raw_key)
    value = raw.get(_VALUE_FIELD)
    if not isinstance(value, str):
        raise RecordParseError(f"record field {_VALUE_FIELD!r} must be a string", raw_key)
    return Record(value=value, expires_at_mse=_read_deadline(raw, raw_key))


def encode_entries(entries: Iterable[KeyWithMetadata]) -> str:
    return json.dumps([{_KEY_FIELD: e.key, _EXPIRES_AT_FIELD: e.expires_at_mse} for e in entries])


def decode_entries(data: str, raw_key: str | None = None) -> list[KeyWithMetadata]:
    """Decode the payload of the valid-key index."""
    raw = _loads(data, raw_key)
    if not isinstance(raw, list):
        raise RecordParseError("index payload is not a JSON array", raw_key)
    entries: list[KeyWithMetadata] = []
    for item in raw:
        if not isinstance(item, dict) or not isinstance(item.get(_KEY_FIELD), str):
            raise RecordParseError(f"malformed index entry: {item!r}", raw_key)
        entries.append(KeyWithMetadata(key=item[_KEY_FIELD], expires_at_mse=_read_deadline(item, raw_key)))
    return entries


def _loads(data: str, raw_key: str | None) -> Any:
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        raise RecordParseError(f"invalid JSON: {e}", raw_key) from e


def _read_deadline(raw: dict[str, Any], raw_key: str | None) -> int | None:
    if _EXPIRES_AT_FIELD not in raw:
        raise RecordParseError(f"missing field {_EXPIRES_AT_FIELD!r}", raw_key)
    deadline = raw[_EXPIRES_AT_FIELD]
    if deadline is None:
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(deadline, bool) or not isinstance(deadline, int | float):
        raise RecordParseError(f"field {_EXPIRES_AT_FIELD!r} must be a number or null", raw_key)
    return int(deadline)
