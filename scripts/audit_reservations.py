from __future__ import annotations

import logging
from pathlib import Path
import sys
import traceback

from reservation_engine import EngineConfig, ReservationYamlRepository, overlapping_ids


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    data_dir = Path(args[0]) if args else Path("data")

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    print(f"[INFO] Auditing reservations in {data_dir.resolve()}")

    repo = ReservationYamlRepository(data_dir, config=EngineConfig.from_env())
    reservations = repo.get_reservations()
    pairs = repo.audit()

    print(f"[OK] Reservations scanned: {len(reservations)}")
    for first, second in pairs:
        print(
            f"[CONFLICT] resource {first.resource_id}: "
            f"#{first.id} {first.start.isoformat()}~{first.end.isoformat()} "
            f"overlaps #{second.id} {second.start.isoformat()}~{second.end.isoformat()}"
        )

    if not pairs:
        print("[DONE] No overlapping reservations.")
        return 0

    flagged = sorted(overlapping_ids(reservations), key=lambda value: (value is None, value))
    print(f"[DONE] {len(pairs)} conflicting pair(s); reservations involved: {flagged}")
    return 1


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception:
        print("[ERROR] Audit failed.")
        traceback.print_exc()
        raise SystemExit(2)
