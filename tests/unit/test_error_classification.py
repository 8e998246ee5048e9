import pytest

from siteops.persistence.errors import ErrorKind, StoreError, classify_error_message


@pytest.mark.parametrize(
    ("message", "column"),
    [
        ('column "work_content" of relation "daily_reports" does not exist', "work_content"),
        ('column daily_reports.location_info does not exist', "location_info"),
        ("Could not find the 'npc1000_used' column of 'daily_reports' in the schema cache", "npc1000_used"),
        ("table daily_reports has no column named additional_before_photos", "additional_before_photos"),
        ("no such column: shipping_cost", "shipping_cost"),
    ],
)
def test_missing_column_messages_name_the_column(message, column):
    result = classify_error_message(message)
    assert result.kind is ErrorKind.MISSING_COLUMN
    assert result.column == column


@pytest.mark.parametrize(
    ("message", "column"),
    [
        (
            'null value in column "member_name" of relation "daily_reports" violates not-null constraint',
            "member_name",
        ),
        ("NOT NULL constraint failed: daily_reports.process_type", "process_type"),
    ],
)
def test_not_null_messages_name_the_column(message, column):
    result = classify_error_message(message)
    assert result.kind is ErrorKind.NOT_NULL_VIOLATION
    assert result.column == column


def test_unique_violation_dialects():
    pg = 'duplicate key value violates unique constraint "daily_reports_site_id_work_date_key"'
    sqlite = "UNIQUE constraint failed: daily_reports.site_id, daily_reports.work_date"
    assert classify_error_message(pg).kind is ErrorKind.UNIQUE_VIOLATION
    assert classify_error_message(sqlite).kind is ErrorKind.UNIQUE_VIOLATION


def test_missing_column_wins_over_schema_cache_wording():
    # PostgREST also mentions the schema cache for missing columns.
    result = classify_error_message("Could not find the 'work_content' column of 'daily_reports' in the schema cache")
    assert result.kind is ErrorKind.MISSING_COLUMN


def test_bare_schema_cache_message_is_stale_cache():
    result = classify_error_message("Failed to reload schema cache for relation daily_reports")
    assert result.kind is ErrorKind.STALE_SCHEMA_CACHE
    assert result.column is None


@pytest.mark.parametrize("message", ["", None, "connection reset by peer", "permission denied for table sites"])
def test_unknown_messages_are_unclassified(message):
    assert classify_error_message(message).kind is ErrorKind.UNCLASSIFIED


def test_store_error_carries_classification():
    error = StoreError("NOT NULL constraint failed: daily_reports.member_name")
    assert error.kind is ErrorKind.NOT_NULL_VIOLATION
    assert error.column == "member_name"
    assert str(error) == error.message
