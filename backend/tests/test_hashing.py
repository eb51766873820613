import hashlib
from datetime import datetime, timedelta, timezone

from conftest import make_entry
from lifesync.utils.hashing import generate_time_entry_hash, hash_external_entry

START = datetime(2026, 10, 15, 9, 0, tzinfo=timezone.utc)
END = datetime(2026, 10, 15, 10, 0, tzinfo=timezone.utc)


def test_hash_is_sha256_of_joined_fields():
    expected = hashlib.sha256(b"Work|2026-10-15T09:00:00Z|2026-10-15T10:00:00Z|p-1").hexdigest()
    assert generate_time_entry_hash("Work", START, END, "p-1") == expected


def test_missing_values_hash_as_empty_strings():
    expected = hashlib.sha256(b"|2026-10-15T09:00:00Z||").hexdigest()
    assert generate_time_entry_hash(None, START, None, None) == expected
    assert generate_time_entry_hash("", START, None, "") == expected


def test_each_field_changes_the_hash():
    base = generate_time_entry_hash("Work", START, END, "p-1")
    assert generate_time_entry_hash("Work!", START, END, "p-1") != base
    assert generate_time_entry_hash("Work", START + timedelta(minutes=1), END, "p-1") != base
    assert generate_time_entry_hash("Work", START, END + timedelta(minutes=1), "p-1") != base
    assert generate_time_entry_hash("Work", START, END, "p-2") != base


def test_equivalent_timestamps_hash_alike():
    local = START.astimezone(timezone(timedelta(hours=2)))
    assert generate_time_entry_hash("Work", local, END, None) == generate_time_entry_hash("Work", START, END, None)


def test_external_entry_hash_uses_its_fields():
    entry = make_entry("e-1", "2026-10-15T09:00:00Z", "2026-10-15T10:00:00Z", project_id="p-1")
    assert hash_external_entry(entry) == generate_time_entry_hash("Work", START, END, "p-1")
