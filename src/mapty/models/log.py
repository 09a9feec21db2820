"""In-memory ordered activity log."""

from __future__ import annotations

from collections.abc import Iterator

from mapty.models.activity import ActivityRecord


class StaleSelection(LookupError):
    """Raised when an activity id is not present in the log."""


class ActivityLog:
    """Append-only, insertion-ordered collection of activity records.

    Insertion order is creation order and also list display order.
    Ids are unique within one log.
    """

    def __init__(self, records: list[ActivityRecord] | None = None) -> None:
        self._records: list[ActivityRecord] = []
        self._by_id: dict[str, ActivityRecord] = {}
        for record in records or []:
            self.append(record)

    def append(self, record: ActivityRecord) -> None:
        """Add a record to the end of the log.

        Args:
            record: Record to add.

        Raises:
            ValueError: If a record with the same id is already logged.
        """
        if record.id in self._by_id:
            raise ValueError(f"Duplicate activity id: {record.id}")
        self._records.append(record)
        self._by_id[record.id] = record

    def find(self, activity_id: str) -> ActivityRecord | None:
        """Get a record by id.

        Args:
            activity_id: Activity id.

        Returns:
            Record or None.
        """
        return self._by_id.get(activity_id)

    def get(self, activity_id: str) -> ActivityRecord:
        """Get a record by id, raising if it is absent.

        Raises:
            StaleSelection: If no record has this id.
        """
        record = self._by_id.get(activity_id)
        if record is None:
            raise StaleSelection(activity_id)
        return record

    def all(self) -> tuple[ActivityRecord, ...]:
        """Return the records in insertion order."""
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ActivityRecord]:
        return iter(tuple(self._records))

    def __contains__(self, activity_id: object) -> bool:
        return activity_id in self._by_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ActivityLog):
            return NotImplemented
        return self._records == other._records

    def __repr__(self) -> str:
        return f"ActivityLog({self._records!r})"
