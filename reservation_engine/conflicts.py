from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable, Sequence

from .booking import Reservation, overlaps

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConflictReport:
    """Admission decision for one candidate.

    ``conflicts`` keeps the order in which the colliding reservations were
    supplied; it is empty exactly when the candidate is admitted.
    """

    conflicts: tuple[Reservation, ...] = ()

    @classmethod
    def admit(cls) -> "ConflictReport":
        return cls()

    @classmethod
    def reject(cls, conflicts: Iterable[Reservation]) -> "ConflictReport":
        collected = tuple(conflicts)
        if not collected:
            raise ValueError("A rejected report needs at least one conflicting reservation.")
        return cls(collected)

    @property
    def admitted(self) -> bool:
        return not self.conflicts

    @property
    def rejected(self) -> bool:
        return bool(self.conflicts)

    @property
    def conflict_ids(self) -> list[int | None]:
        return [reservation.id for reservation in self.conflicts]


def check_conflicts(
    candidate: Reservation,
    existing: Iterable[Reservation],
    exclude_id: int | None = None,
) -> ConflictReport:
    """Check ``candidate`` against ``existing`` reservations of the same resource.

    The entry whose id equals ``exclude_id`` is skipped so that an update does
    not collide with the record it replaces.
    """
    colliding = [
        reservation
        for reservation in existing
        if reservation.resource_id == candidate.resource_id
        and not (exclude_id is not None and reservation.id == exclude_id)
        and overlaps(candidate.range, reservation.range)
    ]
    if not colliding:
        return ConflictReport.admit()

    logger.debug(
        "Candidate on resource %s collides with reservations %s",
        candidate.resource_id,
        [reservation.id for reservation in colliding],
    )
    return ConflictReport.reject(colliding)


def audit_conflicts(reservations: Sequence[Reservation]) -> list[tuple[Reservation, Reservation]]:
    """Return every overlapping pair within each resource.

    Resources are visited in order of first appearance and pairs are reported
    as ``(earlier, later)`` in input order, so the result is reproducible.
    Quadratic per resource; meant for audits, not for admission.
    """
    partitions: dict[int, list[Reservation]] = {}
    for reservation in reservations:
        partitions.setdefault(reservation.resource_id, []).append(reservation)

    pairs: list[tuple[Reservation, Reservation]] = []
    for rows in partitions.values():
        for i in range(len(rows)):
            for j in range(i + 1, len(rows)):
                if overlaps(rows[i].range, rows[j].range):
                    pairs.append((rows[i], rows[j]))

    if pairs:
        logger.warning("Audit found %d overlapping reservation pair(s)", len(pairs))
    return pairs


def overlapping_ids(reservations: Sequence[Reservation]) -> set[int | None]:
    """Ids of reservations that take part in at least one overlapping pair."""
    flagged: set[int | None] = set()
    for first, second in audit_conflicts(reservations):
        flagged.add(first.id)
        flagged.add(second.id)
    return flagged
