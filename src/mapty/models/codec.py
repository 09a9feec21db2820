"""Persistence codec for the activity log.

The persisted form is a JSON array of base-field objects, one per record, in
log order. Each object carries its ``kind`` so decoding can rebuild the right
variant; pace, speed and description are recomputed rather than stored.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mapty.models.activity import VARIANTS, ActivityKind, ActivityRecord, InvalidActivityInput
from mapty.models.log import ActivityLog

logger = logging.getLogger("mapty.codec")


class CorruptPersistedData(ValueError):
    """Raised when persisted activity data cannot be decoded."""


def encode(log: ActivityLog) -> str:
    """Serialize an activity log.

    Args:
        log: Log to serialize.

    Returns:
        JSON text preserving every base field and the kind of each record.
    """
    return json.dumps([record.to_dict() for record in log.all()], ensure_ascii=False)


def record_from_dict(data: Any, index: int = 0) -> ActivityRecord:
    """Rebuild one record from its persisted dictionary.

    Args:
        data: Persisted dictionary for one record.
        index: Position in the persisted array (for error messages).

    Returns:
        Running or Cycling instance.

    Raises:
        CorruptPersistedData: If the entry is malformed.
    """
    if not isinstance(data, dict):
        raise CorruptPersistedData(f"Entry {index} is not an object")
    if "kind" not in data:
        raise CorruptPersistedData(f"Entry {index} has no kind")

    try:
        kind = ActivityKind(data["kind"])
    except ValueError as e:
        raise CorruptPersistedData(f"Entry {index} has unknown kind {data['kind']!r}") from e

    try:
        return VARIANTS[kind].from_dict(data)
    except KeyError as e:
        raise CorruptPersistedData(f"Entry {index} ({kind.value}) is missing field {e}") from e
    except (InvalidActivityInput, TypeError, ValueError) as e:
        raise CorruptPersistedData(f"Entry {index} ({kind.value}) is invalid: {e}") from e


def decode(text: str | None) -> ActivityLog:
    """Deserialize an activity log.

    Args:
        text: Persisted JSON text. Empty text or ``null`` decode to an
            empty log.

    Returns:
        ActivityLog with each record restored as its proper variant.

    Raises:
        CorruptPersistedData: If the text does not parse or any entry is
            malformed.
    """
    if text is None or not text.strip():
        return ActivityLog()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CorruptPersistedData(f"Persisted data is not valid JSON: {e}") from e
    except RecursionError as e:
        raise CorruptPersistedData("Persisted data is nested too deeply") from e

    if data is None:
        return ActivityLog()
    if not isinstance(data, list):
        raise CorruptPersistedData(f"Persisted data must be a list, got {type(data).__name__}")

    log = ActivityLog()
    for index, entry in enumerate(data):
        record = record_from_dict(entry, index)
        try:
            log.append(record)
        except ValueError as e:
            raise CorruptPersistedData(str(e)) from e

    logger.debug("Decoded %d activities", len(log))
    return log
