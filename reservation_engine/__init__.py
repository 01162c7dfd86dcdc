from .admission import AdmissionResult, admit_reservation, build_candidate
from .booking import Reservation, TimeRange, has_time_overlap, make_range, overlaps
from .config import DEFAULT_COLOR, EngineConfig
from .conflicts import ConflictReport, audit_conflicts, check_conflicts, overlapping_ids
from .timeutil import DEFAULT_OFFSET, InvalidRange, normalize_datetime, parse_instant
from .validation import (
	FieldError,
	ReservationValidationError,
	collect_field_errors,
	merge_update,
	require_fields,
	validate_reservation_payload,
)
from .yaml_store import (
	ReservationConflictError,
	ReservationNotFoundError,
	ReservationStorageError,
	ReservationYamlRepository,
)

__all__ = [
	"AdmissionResult",
	"admit_reservation",
	"build_candidate",
	"Reservation",
	"TimeRange",
	"has_time_overlap",
	"make_range",
	"overlaps",
	"DEFAULT_COLOR",
	"EngineConfig",
	"ConflictReport",
	"audit_conflicts",
	"check_conflicts",
	"overlapping_ids",
	"DEFAULT_OFFSET",
	"InvalidRange",
	"normalize_datetime",
	"parse_instant",
	"FieldError",
	"ReservationValidationError",
	"collect_field_errors",
	"merge_update",
	"require_fields",
	"validate_reservation_payload",
	"ReservationConflictError",
	"ReservationNotFoundError",
	"ReservationStorageError",
	"ReservationYamlRepository",
]
