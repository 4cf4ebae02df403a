# app/services/registrant_matcher.py
from __future__ import annotations

from typing import Sequence

from app.schemas.attendance import AttendanceRecord, MatchResult
from app.schemas.calendly import Registrant
from app.services.identity import normalize_email, normalize_name


class RegistrantMatcher:
    """
    Partitions deduplicated attendance into records that resolve to a known
    registrant and external ones.

    Rules
    -----
    1) Email match first: if the record's normalized email is one of the
       registrants' emails, it is matched and that email is consumed.
    2) Else name match: same, against normalized registrant names.
    3) Else the record is external.

    Matching is greedy and follows attendance order, so one registrant is
    attributed to at most one attendance record: when two records collide on
    the same identity, the earlier one wins.
    """

    @staticmethod
    def match(
        attendance: Sequence[AttendanceRecord],
        registrants: Sequence[Registrant],
    ) -> MatchResult:
        emails = {normalize_email(r.email) for r in registrants} - {""}
        names = {normalize_name(r.name) for r in registrants} - {""}

        matched: list[AttendanceRecord] = []
        external: list[AttendanceRecord] = []

        for record in attendance:
            email = normalize_email(record.email)
            name = normalize_name(record.name)

            if email and email in emails:
                emails.discard(email)
                matched.append(record)
            elif name and name in names:
                names.discard(name)
                matched.append(record)
            else:
                external.append(record)

        return MatchResult(matched=matched, external=external)
