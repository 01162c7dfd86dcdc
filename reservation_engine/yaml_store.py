from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path
import shutil
import threading
from typing import Any, Mapping

import yaml

from .admission import AdmissionResult, admit_reservation
from .booking import END_FIELD, RESOURCE_FIELD, START_FIELD, Reservation
from .config import DEFAULT_COLOR, EngineConfig, resolve_config
from .conflicts import ConflictReport, audit_conflicts
from .validation import FieldError, ReservationValidationError, merge_update, validate_reservation_payload

logger = logging.getLogger(__name__)


class ReservationStorageError(RuntimeError):
    pass


class ReservationNotFoundError(ValueError):
    def __init__(self, reservation_id: int) -> None:
        self.reservation_id = reservation_id
        super().__init__(f"Reservation {reservation_id} not found")


class ReservationConflictError(ValueError):
    def __init__(self, candidate: Reservation, report: ConflictReport) -> None:
        self.candidate = candidate
        self.report = report
        super().__init__(
            f"Resource {candidate.resource_id} is already reserved in the requested time range "
            f"(conflicting reservations: {report.conflict_ids})"
        )


class ReservationYamlRepository:
    """Reservation store backed by YAML files.

    Admission and the write that follows it run under one lock, so two threads
    sharing a repository cannot both admit overlapping ranges for a resource.
    Separate processes writing the same directory are not coordinated.
    """

    def __init__(self, base_dir: str | Path = "data", config: EngineConfig | None = None) -> None:
        self.base_dir = Path(base_dir)
        self.config = resolve_config(config)
        self.reservations_file = self.base_dir / "reservations.yaml"
        self.log_file = self.base_dir / "reservation_events.yaml"
        self._lock = threading.RLock()
        self._ensure_files()

    def _ensure_files(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in (self.reservations_file, self.log_file):
            if not path.exists():
                path.write_text("[]\n", encoding="utf-8")

    def _read_yaml_list(self, path: Path) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            path.write_text("[]\n", encoding="utf-8")
            return []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            self._recover_corrupted_yaml(path, error)
            return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            self._recover_corrupted_yaml(path, ValueError("top-level YAML is not a list"))
            return []

        sanitized: list[dict[str, Any]] = []
        for index, row in enumerate(payload):
            if isinstance(row, dict):
                sanitized.append(row)
            else:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {"file": str(path.name), "index": index, "reason": "row is not a mapping"},
                )
        return sanitized

    def _write_yaml_list(self, path: Path, rows: list[dict[str, Any]]) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as error:
            raise ReservationStorageError(f"Failed to write YAML file: {path}") from error
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _recover_corrupted_yaml(self, path: Path, error: Exception) -> None:
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup_path = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
        try:
            if path.exists():
                shutil.copy2(path, backup_path)
        except OSError as copy_error:
            logger.warning("Could not back up corrupted %s: %s", path, copy_error)

        logger.warning("Resetting corrupted YAML file %s (%s)", path, error)
        path.write_text("[]\n", encoding="utf-8")
        if path != self.log_file:
            self._log_event(
                "YAML_RECOVERED",
                {"file": str(path.name), "backup": str(backup_path.name), "reason": str(error)},
            )

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        events = self._read_yaml_list(self.log_file)
        events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
        self._write_yaml_list(self.log_file, events)

    def _load_rows(self) -> list[Reservation]:
        reservations: list[Reservation] = []
        for index, row in enumerate(self._read_yaml_list(self.reservations_file)):
            try:
                reservations.append(Reservation.from_dict(row, self.config.default_offset))
            except (KeyError, TypeError, ValueError) as error:
                # InvalidRange is a ValueError; such rows cannot take part in a check.
                logger.warning("Skipping unreadable reservation row %d: %s", index, error)
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {"file": self.reservations_file.name, "index": index, "reason": str(error)},
                )
        return reservations

    def get_reservations(self, resource_id: int | None = None) -> list[Reservation]:
        with self._lock:
            rows = self._load_rows()
        return [row for row in rows if resource_id is None or row.resource_id == resource_id]

    def get_reservation(self, reservation_id: int) -> Reservation:
        """Return one stored reservation.

        A row that exists but cannot be read raises ``ReservationStorageError``
        rather than ``ReservationNotFoundError``; such rows can still be removed
        with :meth:`delete_reservation`.
        """
        with self._lock:
            rows = self._read_yaml_list(self.reservations_file)
        found_index = _find_row(rows, reservation_id)
        if found_index < 0:
            raise ReservationNotFoundError(reservation_id)
        return self._parse_stored_row(rows[found_index])

    def _parse_stored_row(self, row: Mapping[str, Any]) -> Reservation:
        try:
            return Reservation.from_dict(row, self.config.default_offset)
        except (KeyError, TypeError, ValueError) as error:
            raise ReservationStorageError(f"Stored reservation {row.get('id')!r} is unreadable: {error}") from error

    def check_conflict(
        self,
        resource_id: int,
        start: str,
        end: str,
        exclude_id: int | None = None,
    ) -> ConflictReport:
        """Report what admitting ``[start, end)`` on ``resource_id`` would collide with, without writing."""
        payload = {RESOURCE_FIELD: resource_id, START_FIELD: start, END_FIELD: end}
        with self._lock:
            existing = self._load_rows()
        return admit_reservation(payload, existing, exclude_id=exclude_id, config=self.config).report

    def add_reservation(self, payload: Mapping[str, Any], now: datetime | None = None) -> Reservation:
        effective_now = now or datetime.now()
        cleaned = validate_reservation_payload(payload)
        fields = merge_update({"color": DEFAULT_COLOR}, cleaned)

        with self._lock:
            existing = self._load_rows()
            result = admit_reservation(fields, existing, config=self.config)
            self._raise_if_rejected(result, effective_now)

            rows = self._read_yaml_list(self.reservations_file)
            new_id = _next_id(rows)
            record = _stamp(result.candidate, new_id, created_at=effective_now, updated_at=effective_now)
            rows.append(record.to_dict())
            self._write_yaml_list(self.reservations_file, rows)

            self._log_event("RESERVATION_CREATED", _event_payload(record), effective_now)
        return record

    def update_reservation(
        self,
        reservation_id: int,
        changes: Mapping[str, Any],
        now: datetime | None = None,
    ) -> Reservation:
        effective_now = now or datetime.now()
        cleaned = validate_reservation_payload(changes)
        if not cleaned:
            raise ReservationValidationError([FieldError("payload", "no fields to update")])

        with self._lock:
            rows = self._read_yaml_list(self.reservations_file)
            found_index = _find_row(rows, reservation_id)
            if found_index < 0:
                raise ReservationNotFoundError(reservation_id)

            current = rows[found_index]
            stored = self._parse_stored_row(current).to_dict()
            merged = merge_update(stored, cleaned)
            result = admit_reservation(merged, self._load_rows(), exclude_id=reservation_id, config=self.config)
            self._raise_if_rejected(result, effective_now)

            created_at = current.get("created_at")
            updated = _stamp(
                result.candidate,
                reservation_id,
                created_at=created_at if created_at is not None else effective_now,
                updated_at=effective_now,
            )
            rows[found_index] = updated.to_dict()
            self._write_yaml_list(self.reservations_file, rows)

            self._log_event("RESERVATION_UPDATED", _event_payload(updated), effective_now)
        return updated

    def delete_reservation(self, reservation_id: int, now: datetime | None = None) -> dict[str, Any]:
        """Remove a stored row, readable or not, and return it as stored."""
        effective_now = now or datetime.now()
        with self._lock:
            rows = self._read_yaml_list(self.reservations_file)
            found_index = _find_row(rows, reservation_id)
            if found_index < 0:
                raise ReservationNotFoundError(reservation_id)

            removed = rows.pop(found_index)
            self._write_yaml_list(self.reservations_file, rows)
            self._log_event(
                "RESERVATION_DELETED",
                {"id": reservation_id, RESOURCE_FIELD: removed.get(RESOURCE_FIELD)},
                effective_now,
            )

        return removed

    def audit(self, now: datetime | None = None) -> list[tuple[Reservation, Reservation]]:
        with self._lock:
            pairs = audit_conflicts(self._load_rows())
            self._log_event(
                "AUDIT_COMPLETED",
                {"conflict_count": len(pairs), "pairs": [[first.id, second.id] for first, second in pairs]},
                now,
            )
        return pairs

    def _raise_if_rejected(self, result: AdmissionResult, event_time: datetime) -> None:
        if result.admitted:
            return
        self._log_event(
            "RESERVATION_REJECTED",
            {
                RESOURCE_FIELD: result.candidate.resource_id,
                START_FIELD: result.candidate.start.isoformat(timespec="seconds"),
                END_FIELD: result.candidate.end.isoformat(timespec="seconds"),
                "conflicting_ids": result.report.conflict_ids,
            },
            event_time,
        )
        raise ReservationConflictError(result.candidate, result.report)


def _next_id(rows: list[dict[str, Any]]) -> int:
    ids = [row["id"] for row in rows if isinstance(row.get("id"), int) and not isinstance(row.get("id"), bool)]
    return max(ids, default=0) + 1


def _find_row(rows: list[dict[str, Any]], reservation_id: int) -> int:
    for index, row in enumerate(rows):
        if row.get("id") == reservation_id:
            return index
    return -1


def _stamp(candidate: Reservation, reservation_id: int, created_at: Any, updated_at: datetime) -> Reservation:
    metadata = dict(candidate.metadata)
    metadata["created_at"] = created_at.isoformat(timespec="seconds") if isinstance(created_at, datetime) else str(created_at)
    metadata["updated_at"] = updated_at.isoformat(timespec="seconds")
    return Reservation(id=reservation_id, resource_id=candidate.resource_id, range=candidate.range, metadata=metadata)


def _event_payload(record: Reservation) -> dict[str, Any]:
    return {
        "id": record.id,
        RESOURCE_FIELD: record.resource_id,
        START_FIELD: record.start.isoformat(timespec="seconds"),
        END_FIELD: record.end.isoformat(timespec="seconds"),
        "purpose": record.metadata.get("purpose"),
    }
