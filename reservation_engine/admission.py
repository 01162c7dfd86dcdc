from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Iterable, Mapping

from .booking import END_FIELD, RESOURCE_FIELD, START_FIELD, Reservation, make_range
from .config import EngineConfig, resolve_config
from .conflicts import ConflictReport, check_conflicts
from .validation import require_fields, validate_reservation_payload

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (RESOURCE_FIELD, START_FIELD, END_FIELD)


@dataclass(frozen=True)
class AdmissionResult:
    candidate: Reservation
    report: ConflictReport

    @property
    def admitted(self) -> bool:
        return self.report.admitted


def build_candidate(
    payload: Mapping[str, Any],
    reservation_id: int | None = None,
    config: EngineConfig | None = None,
) -> Reservation:
    """Turn a full reservation payload into a candidate Reservation.

    Shape is validated before any datetime parsing happens.
    """
    cleaned = validate_reservation_payload(payload)
    require_fields(cleaned, REQUIRED_FIELDS)

    offset = resolve_config(config).default_offset
    time_range = make_range(cleaned[START_FIELD], cleaned[END_FIELD], offset)
    metadata = {key: value for key, value in cleaned.items() if key not in REQUIRED_FIELDS}
    return Reservation(
        id=reservation_id,
        resource_id=cleaned[RESOURCE_FIELD],
        range=time_range,
        metadata=metadata,
    )


def admit_reservation(
    payload: Mapping[str, Any],
    existing: Iterable[Reservation],
    exclude_id: int | None = None,
    config: EngineConfig | None = None,
) -> AdmissionResult:
    """Run the write-path checks for ``payload`` against ``existing``.

    Pass the id of the record being updated as ``exclude_id``. The caller must
    hold whatever lock serializes writes for the resource until it has acted on
    the result.
    """
    candidate = build_candidate(payload, reservation_id=exclude_id, config=config)
    report = check_conflicts(candidate, existing, exclude_id=exclude_id)
    if report.rejected:
        logger.info(
            "Rejected reservation on resource %s: conflicts with %s",
            candidate.resource_id,
            report.conflict_ids,
        )
    return AdmissionResult(candidate=candidate, report=report)
