from siteops.persistence.errors import ErrorKind
from siteops.persistence.store import SQLiteStore


def _site(store, name="Riverside"):
    return store.insert("sites", {"name": name}).data


def test_insert_returns_row_with_generated_id_and_defaults(store):
    site = _site(store)
    assert site["name"] == "Riverside"
    assert len(site["id"]) == 32
    assert site["status"] == "active"


def test_json_columns_round_trip_as_structures(store):
    site = _site(store)
    report = store.insert(
        "daily_reports",
        {
            "site_id": site["id"],
            "work_date": "2024-05-01",
            "member_name": "Kim",
            "process_type": "rebar",
            "work_content": {"tasks": ["slab"], "floors": [3]},
        },
    ).data
    assert report["work_content"] == {"tasks": ["slab"], "floors": [3]}
    assert report["location_info"] is None


def test_errors_are_returned_with_classification(legacy_store):
    site = _site(legacy_store)
    result = legacy_store.insert(
        "daily_reports",
        {"site_id": site["id"], "work_date": "2024-05-01", "member_name": "Kim", "process_type": "x", "work_content": {}},
    )
    assert result.data is None
    assert result.error.kind is ErrorKind.MISSING_COLUMN
    assert result.error.column == "work_content"

    missing = legacy_store.insert("daily_reports", {"site_id": site["id"], "work_date": "2024-05-02"})
    assert missing.error.kind is ErrorKind.NOT_NULL_VIOLATION
    assert missing.error.column == "member_name"


def test_unique_site_and_date(store):
    site = _site(store)
    row = {"site_id": site["id"], "work_date": "2024-05-01", "member_name": "Kim", "process_type": "x"}
    assert store.insert("daily_reports", row).ok
    duplicate = store.insert("daily_reports", row)
    assert duplicate.error.kind is ErrorKind.UNIQUE_VIOLATION


def test_update_by_match_returns_row_or_none(store):
    site = _site(store)
    updated = store.update("sites", {"address": "12 River Rd"}, match={"id": site["id"]})
    assert updated.data["address"] == "12 River Rd"

    nothing = store.update("sites", {"address": "x"}, match={"id": "missing"})
    assert nothing.ok
    assert nothing.data is None


def test_update_unknown_column_is_missing_column(legacy_store):
    site = _site(legacy_store)
    shipment = legacy_store.insert(
        "shipment_records", {"site_id": site["id"], "shipment_date": "2024-05-01", "quantity_shipped": 1}
    ).data
    result = legacy_store.update("shipment_records", {"shipping_cost": 10}, match={"id": shipment["id"]})
    assert result.error.kind is ErrorKind.MISSING_COLUMN
    assert result.error.column == "shipping_cost"


def test_select_filters_ranges_and_ordering(store):
    site = _site(store)
    for day in ("2024-05-01", "2024-05-02", "2024-05-03"):
        store.insert(
            "daily_reports",
            {"site_id": site["id"], "work_date": day, "member_name": "Kim", "process_type": "x"},
        )

    window = store.select(
        "daily_reports",
        filters={"site_id": site["id"]},
        gte={"work_date": "2024-05-02"},
        order_by="work_date",
        descending=True,
    )
    assert [row["work_date"] for row in window.data] == ["2024-05-03", "2024-05-02"]

    paged = store.select("daily_reports", order_by="work_date", limit=1, offset=1)
    assert [row["work_date"] for row in paged.data] == ["2024-05-02"]

    none = store.select("daily_reports", in_={"work_date": []})
    assert none.data == []


def test_invalid_identifier_is_an_error_not_an_injection(store):
    result = store.select("sites; DROP TABLE sites")
    assert not result.ok
    assert store.select("sites").ok


def test_delete_requires_match_and_reports_count(store):
    site = _site(store)
    refused = store.delete("sites", match={})
    assert not refused.ok

    deleted = store.delete("sites", match={"id": site["id"]})
    assert deleted.data == 1
    assert store.select("sites").data == []


def test_reopening_database_keeps_schema(tmp_path):
    path = tmp_path / "reopen.sqlite3"
    first = SQLiteStore(path)
    _site(first, "A")
    second = SQLiteStore(path)
    assert [row["name"] for row in second.select("sites").data] == ["A"]
