from siteops.services.shipments import build_shipment_analytics

RECORDS = [
    {"shipment_date": "2024-03-02", "quantity_shipped": 10},
    {"shipment_date": "2024-03-02", "quantity_shipped": 5},
    {"shipment_date": "2024-04-15", "quantity_shipped": 7.5},
    {"shipment_date": "2023-12-31", "quantity_shipped": 1},
    {"shipment_date": None, "quantity_shipped": 99},
]


def test_month_buckets_newest_first():
    result = build_shipment_analytics(RECORDS, "month")
    assert [item["period"] for item in result] == ["2024-04", "2024-03", "2023-12"]
    assert result[1] == {"period": "2024-03", "total_quantity": 15, "shipments": 2}


def test_year_buckets():
    result = build_shipment_analytics(RECORDS, "year")
    assert result == [
        {"period": "2024", "total_quantity": 22.5, "shipments": 3},
        {"period": "2023", "total_quantity": 1, "shipments": 1},
    ]


def test_week_view_buckets_by_day():
    result = build_shipment_analytics(RECORDS, "week")
    assert result[0]["period"] == "2024-04-15"
    assert {item["period"] for item in result} == {"2024-04-15", "2024-03-02", "2023-12-31"}


def test_empty_input():
    assert build_shipment_analytics([], "month") == []
