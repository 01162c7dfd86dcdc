from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

TEXT_FIELDS = ("title", "purpose")
POSITIVE_ID_FIELDS = ("equipment_id", "employee_id")
DATETIME_FIELDS = ("start_datetime", "end_datetime")
NULLABLE_TEXT_FIELDS = ("color",)
KNOWN_FIELDS = TEXT_FIELDS + POSITIVE_ID_FIELDS + DATETIME_FIELDS + NULLABLE_TEXT_FIELDS

MIN_DATETIME_LENGTH = 10


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class ReservationValidationError(ValueError):
    def __init__(self, errors: Iterable[FieldError]) -> None:
        self.errors = tuple(errors)
        details = "; ".join(f"{error.field}: {error.message}" for error in self.errors)
        super().__init__(f"Invalid reservation payload ({details})")

    @property
    def fields(self) -> list[str]:
        return [error.field for error in self.errors]


def collect_field_errors(payload: Any) -> list[FieldError]:
    """Return every field constraint violated by ``payload``.

    All fields are optional; a field is only checked when its key is present.
    """
    if not isinstance(payload, Mapping):
        return [FieldError("payload", "must be a mapping of reservation fields")]

    errors: list[FieldError] = []
    for name in TEXT_FIELDS:
        if name in payload and not _is_text(payload[name], min_length=1):
            errors.append(FieldError(name, "must be a non-empty string"))

    for name in POSITIVE_ID_FIELDS:
        if name in payload and not _is_positive_int(payload[name]):
            errors.append(FieldError(name, "must be a positive integer"))

    for name in DATETIME_FIELDS:
        if name in payload and not _is_text(payload[name], min_length=MIN_DATETIME_LENGTH):
            errors.append(FieldError(name, f"must be a string of at least {MIN_DATETIME_LENGTH} characters"))

    for name in NULLABLE_TEXT_FIELDS:
        if name in payload and payload[name] is not None and not isinstance(payload[name], str):
            errors.append(FieldError(name, "must be a string or null"))

    return errors


def validate_reservation_payload(payload: Any) -> dict[str, Any]:
    """Check the shape of a (partial) reservation payload.

    Returns a copy restricted to the known fields. Raises
    ``ReservationValidationError`` naming every offending field.
    """
    errors = collect_field_errors(payload)
    if errors:
        raise ReservationValidationError(errors)
    return {name: payload[name] for name in KNOWN_FIELDS if name in payload}


def require_fields(payload: Mapping[str, Any], names: Iterable[str]) -> None:
    missing = [FieldError(name, "is required") for name in names if payload.get(name) is None]
    if missing:
        raise ReservationValidationError(missing)


def merge_update(current: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay a validated partial update on the stored reservation fields.

    ``title`` doubles as ``purpose`` when the update names only a title.
    """
    merged = dict(current)
    merged.update(changes)
    if "purpose" not in changes and changes.get("title") is not None:
        merged["purpose"] = changes["title"]
    return merged


def _is_text(value: Any, min_length: int) -> bool:
    return isinstance(value, str) and len(value) >= min_length


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0
