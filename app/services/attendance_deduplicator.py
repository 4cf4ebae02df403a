# app/services/attendance_deduplicator.py
from __future__ import annotations

from typing import Dict, Iterable, List

from app.schemas.attendance import AttendanceRecord
from app.services.identity import identity_key


def deduplicate_attendance(records: Iterable[AttendanceRecord]) -> List[AttendanceRecord]:
    """
    Collapse repeated join records of one meeting into one record per person.

    Rules
    -----
    - Records are keyed by `identity_key` (email, else "name:" + name).
    - Within a key, the record with the strictly longest `duration` wins;
      on a tie the first-seen record is kept.
    - Output keeps the order in which each key was first seen.
    """
    best: Dict[str, AttendanceRecord] = {}

    for record in records:
        key = identity_key(record)
        current = best.get(key)
        if current is None or record.duration > current.duration:
            # Re-assigning an existing key keeps its original dict position.
            best[key] = record

    return list(best.values())
