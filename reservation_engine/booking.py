from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Mapping

from .timeutil import DEFAULT_OFFSET, InvalidRange, parse_instant

RESOURCE_FIELD = "equipment_id"
START_FIELD = "start_datetime"
END_FIELD = "end_datetime"


@dataclass(frozen=True)
class TimeRange:
    """Half-open interval ``[start, end)`` of timezone-aware instants."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidRange("TimeRange bounds must carry a UTC offset.")
        if self.start >= self.end:
            raise InvalidRange("Reservation start time must be earlier than end time.")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


def make_range(start_raw: str | None, end_raw: str | None, default_offset: str = DEFAULT_OFFSET) -> TimeRange:
    start = parse_instant(start_raw, default_offset)
    end = parse_instant(end_raw, default_offset)
    return TimeRange(start, end)


def has_time_overlap(first_start: datetime, first_end: datetime, second_start: datetime, second_end: datetime) -> bool:
    """Overlap test on raw ``[start, end)`` bounds; shared endpoints do not count."""
    if first_start >= first_end or second_start >= second_end:
        raise InvalidRange("Each interval must start before it ends.")
    return first_start < second_end and second_start < first_end


def overlaps(a: TimeRange, b: TimeRange) -> bool:
    return has_time_overlap(a.start, a.end, b.start, b.end)


@dataclass(frozen=True)
class Reservation:
    id: int | None
    resource_id: int
    range: TimeRange
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @property
    def start(self) -> datetime:
        return self.range.start

    @property
    def end(self) -> datetime:
        return self.range.end

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.id is not None:
            payload["id"] = self.id
        payload[RESOURCE_FIELD] = self.resource_id
        payload[START_FIELD] = self.start.isoformat()
        payload[END_FIELD] = self.end.isoformat()
        payload.update(self.metadata)
        return payload

    @staticmethod
    def from_dict(data: Mapping[str, Any], default_offset: str = DEFAULT_OFFSET) -> "Reservation":
        reserved = {"id", RESOURCE_FIELD, START_FIELD, END_FIELD}
        raw_id = data.get("id")
        return Reservation(
            id=int(raw_id) if raw_id is not None else None,
            resource_id=int(data[RESOURCE_FIELD]),
            range=make_range(_as_text(data.get(START_FIELD)), _as_text(data.get(END_FIELD)), default_offset),
            metadata={key: value for key, value in data.items() if key not in reserved},
        )


def _as_text(value: Any) -> Any:
    # YAML loaders may hand back datetime objects for unquoted timestamps.
    if isinstance(value, datetime):
        return value.isoformat()
    return value
