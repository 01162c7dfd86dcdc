import contextlib
import importlib.util
import io
import tempfile
import unittest
from pathlib import Path

import yaml

SCRIPT_PATH = Path(__file__).resolve().parent.parent / "scripts" / "audit_reservations.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("audit_reservations", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestAuditScript(unittest.TestCase):
    def _run(self, rows) -> tuple[int, str]:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            data_dir.mkdir()
            (data_dir / "reservations.yaml").write_text(yaml.safe_dump(rows), encoding="utf-8")
            output = io.StringIO()
            with contextlib.redirect_stdout(output):
                code = _load_script().main([str(data_dir)])
        return code, output.getvalue()

    def test_clean_data_exits_zero(self) -> None:
        code, output = self._run(
            [
                {"id": 1, "equipment_id": 5, "start_datetime": "2025-09-24T09:00:00", "end_datetime": "2025-09-24T10:00:00"},
                {"id": 2, "equipment_id": 5, "start_datetime": "2025-09-24T10:00:00", "end_datetime": "2025-09-24T11:00:00"},
            ]
        )

        self.assertEqual(code, 0)
        self.assertIn("No overlapping reservations", output)

    def test_conflicts_exit_one_and_are_listed(self) -> None:
        code, output = self._run(
            [
                {"id": 1, "equipment_id": 5, "start_datetime": "2025-09-24T09:00:00", "end_datetime": "2025-09-24T10:00:00"},
                {"id": 2, "equipment_id": 5, "start_datetime": "2025-09-24T09:30:00", "end_datetime": "2025-09-24T11:00:00"},
            ]
        )

        self.assertEqual(code, 1)
        self.assertIn("[CONFLICT] resource 5: #1", output)
        self.assertIn("reservations involved: [1, 2]", output)


if __name__ == "__main__":
    unittest.main()
