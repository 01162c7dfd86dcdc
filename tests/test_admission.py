import unittest

from reservation_engine import (
    EngineConfig,
    InvalidRange,
    ReservationValidationError,
    admit_reservation,
    build_candidate,
)


def _payload(**overrides):
    payload = {
        "equipment_id": 5,
        "employee_id": 12,
        "purpose": "Projector",
        "start_datetime": "2025-09-24T09:30:00",
        "end_datetime": "2025-09-24T10:30:00",
    }
    payload.update(overrides)
    return payload


class TestBuildCandidate(unittest.TestCase):
    def test_builds_reservation_with_metadata(self) -> None:
        candidate = build_candidate(_payload())

        self.assertIsNone(candidate.id)
        self.assertEqual(candidate.resource_id, 5)
        self.assertEqual(candidate.start.isoformat(), "2025-09-24T09:30:00+09:00")
        self.assertEqual(candidate.metadata, {"employee_id": 12, "purpose": "Projector"})

    def test_uses_configured_offset(self) -> None:
        candidate = build_candidate(_payload(), config=EngineConfig(default_offset="+02:00"))
        self.assertEqual(candidate.start.isoformat(), "2025-09-24T09:30:00+02:00")

    def test_shape_errors_win_over_time_errors(self) -> None:
        with self.assertRaises(ReservationValidationError) as caught:
            build_candidate(_payload(equipment_id=0, start_datetime="2025-09-24T11:00:00"))

        self.assertEqual(caught.exception.fields, ["equipment_id"])

    def test_missing_required_fields_are_reported(self) -> None:
        with self.assertRaises(ReservationValidationError) as caught:
            build_candidate({"purpose": "Projector"})

        self.assertEqual(caught.exception.fields, ["equipment_id", "start_datetime", "end_datetime"])

    def test_inverted_range_raises_invalid_range(self) -> None:
        with self.assertRaises(InvalidRange):
            build_candidate(_payload(start_datetime="2025-09-24T11:00:00"))

    def test_unparseable_datetime_raises_invalid_range(self) -> None:
        with self.assertRaises(InvalidRange):
            build_candidate(_payload(end_datetime="2025-09-24 at noon"))


class TestAdmitReservation(unittest.TestCase):
    def setUp(self) -> None:
        self.existing = [
            build_candidate(
                _payload(start_datetime="2025-09-24T09:00:00", end_datetime="2025-09-24T10:00:00"),
                reservation_id=1,
            )
        ]

    def test_rejects_overlap(self) -> None:
        result = admit_reservation(_payload(), self.existing)

        self.assertFalse(result.admitted)
        self.assertEqual(result.report.conflict_ids, [1])

    def test_admits_other_resource(self) -> None:
        self.assertTrue(admit_reservation(_payload(equipment_id=6), self.existing).admitted)

    def test_update_excludes_own_record(self) -> None:
        result = admit_reservation(
            _payload(start_datetime="2025-09-24T09:15:00", end_datetime="2025-09-24T10:15:00"),
            self.existing,
            exclude_id=1,
        )

        self.assertTrue(result.admitted)
        self.assertEqual(result.candidate.id, 1)

    def test_utc_candidate_is_compared_as_instant(self) -> None:
        # 00:30Z is 09:30 in +09:00, inside the existing booking.
        result = admit_reservation(
            _payload(start_datetime="2025-09-24T00:30:00Z", end_datetime="2025-09-24T01:30:00Z"),
            self.existing,
        )

        self.assertEqual(result.report.conflict_ids, [1])


if __name__ == "__main__":
    unittest.main()
