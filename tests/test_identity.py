# tests/test_identity.py
from app.schemas.attendance import AttendanceRecord
from app.services.identity import identity_key, normalize_email, normalize_name


def test_normalize_email_lowercases_and_trims():
    assert normalize_email("  Alice@Example.COM ") == "alice@example.com"


def test_normalize_name_collapses_whitespace():
    assert normalize_name("  Bob   Lee ") == "bob lee"
    assert normalize_name("Bob\t\nLee") == "bob lee"


def test_normalizers_are_total_on_empty_input():
    assert normalize_email(None) == ""
    assert normalize_email("") == ""
    assert normalize_name(None) == ""
    assert normalize_name("   ") == ""


def test_identity_key_prefers_email_then_name():
    with_email = AttendanceRecord(name="Bob Lee", email=" BOB@x.com")
    guest = AttendanceRecord(name="  Bob  Lee", email="")

    assert identity_key(with_email) == "bob@x.com"
    assert identity_key(guest) == "name:bob lee"
