# app/services/identity.py
from __future__ import annotations

from app.schemas.attendance import AttendanceRecord


def normalize_email(value: str | None) -> str:
    """
    Lower-case and trim an email for equality comparison.
    """
    if not value:
        return ""
    return value.strip().lower()


def normalize_name(value: str | None) -> str:
    """
    Lower-case a display name and collapse every whitespace run to one space.
    """
    if not value:
        return ""
    return " ".join(value.lower().split())


def identity_key(record: AttendanceRecord) -> str:
    """
    Key used to recognise the same participant across join records.

    Guests without an email are keyed by name alone, so two anonymous guests
    with the same name collapse into one.
    """
    email = normalize_email(record.email)
    if email:
        return email
    return f"name:{normalize_name(record.name)}"
