"""
test_query_service.py — Tests for rfq_tracker/services/query_service.py

Owner scoping, every filter, sorting, list annotation and statistics.

Called by: pytest
Depends on: rfq_tracker/services/query_service.py, conftest.py
"""

from datetime import datetime, timezone

import pytest

from rfq_tracker.exceptions import ValidationFailed
from rfq_tracker.services import query_service, rfq_service
from rfq_tracker.services.query_service import RfqFilters, compute_stats, confidence_bucket


def _ids(rfqs):
    return [r.rfq_id for r in rfqs]


@pytest.fixture()
def pipeline(db_session, make_rfq, sales_user):
    """Four RFQs for sales_user covering each filter dimension."""
    techcorp = make_rfq(
        customer_name="TechCorp Industries",
        customer_email="procurement@techcorp.com",
        part_number="PCB-4L-001",
        quantity=1000,
        margin=7,
        urgency="high",
        confidence=60,
    )
    electro = make_rfq(
        customer_name="ElectroWorks Ltd",
        customer_email="buyer@electroworks.com",
        part_number="PCB-2L-045",
        quantity=5000,
        margin=5.5,
        confidence=75,
    )
    rfq_service.record_supplier_quote(db_session, electro, sales_user, 2.45)
    hdi = make_rfq(
        customer_name="Innovative Electronics",
        customer_email="rd@innovative-elec.com",
        part_number="PCB-HDI-006",
        quantity=200,
        margin=12,
        urgency="urgent",
        confidence=29,
    )
    flex = make_rfq(
        customer_name="Global Tech Solutions",
        customer_email="sourcing@globaltech.com",
        part_number="PCB-FLEX-012",
        quantity=500,
        margin=8,
        confidence=85,
    )
    rfq_service.record_supplier_quote(db_session, flex, sales_user, 5.75)
    rfq_service.mark_complete(db_session, flex, sales_user)

    for rfq, day in ((techcorp, 1), (electro, 2), (hdi, 3), (flex, 4)):
        rfq.created_at = datetime(2026, 3, day, 10, 0, tzinfo=timezone.utc)
    db_session.commit()
    return {"techcorp": techcorp, "electro": electro, "hdi": hdi, "flex": flex}


def _list(db, user, **kw):
    return query_service.list_rfqs(db, user, RfqFilters(**kw))


# ── Scoping & search ────────────────────────────────────────────────


def test_only_owner_rfqs_listed(db_session, pipeline, make_rfq, other_user, sales_user):
    make_rfq(owner=other_user, customer_name="Someone Else")
    assert len(_list(db_session, sales_user)) == 4
    assert _ids(_list(db_session, other_user)) == ["RFQ-005"]


def test_default_sort_newest_first(db_session, pipeline, sales_user):
    assert _ids(_list(db_session, sales_user)) == ["RFQ-004", "RFQ-003", "RFQ-002", "RFQ-001"]


@pytest.mark.parametrize("term, expected", [
    ("techcorp", ["RFQ-001"]),            # customer name, case-insensitive
    ("hdi", ["RFQ-003"]),                 # part number
    ("RFQ-002", ["RFQ-002"]),             # display id
    ("globaltech.com", ["RFQ-004"]),      # email
    ("pcb-", ["RFQ-004", "RFQ-003", "RFQ-002", "RFQ-001"]),
    ("nothing-like-this", []),
])
def test_search(db_session, pipeline, sales_user, term, expected):
    assert _ids(_list(db_session, sales_user, search=term)) == expected


def test_search_treats_wildcards_literally(db_session, pipeline, sales_user):
    assert _list(db_session, sales_user, search="%") == []
    assert _list(db_session, sales_user, search="_") == []


def test_blank_search_ignored(db_session, pipeline, sales_user):
    assert len(_list(db_session, sales_user, search="   ")) == 4


# ── Choice filters ──────────────────────────────────────────────────


def test_status_filter(db_session, pipeline, sales_user):
    assert _ids(_list(db_session, sales_user, status="quote_received")) == ["RFQ-002"]
    assert _ids(_list(db_session, sales_user, status="completed")) == ["RFQ-004"]


def test_all_means_no_filter(db_session, pipeline, sales_user):
    rfqs = _list(db_session, sales_user, status="all", urgency="all", confidence="all", stage="all")
    assert len(rfqs) == 4


def test_urgency_filter(db_session, pipeline, sales_user):
    assert _ids(_list(db_session, sales_user, urgency="urgent")) == ["RFQ-003"]


def test_stage_filter(db_session, pipeline, sales_user):
    assert _ids(_list(db_session, sales_user, stage="delivered")) == ["RFQ-004"]


@pytest.mark.parametrize("field, value", [
    ("status", "archived"),
    ("urgency", "asap"),
    ("stage", "limbo"),
    ("confidence", "certain"),
])
def test_invalid_choice_rejected(db_session, sales_user, field, value):
    with pytest.raises(ValidationFailed):
        _list(db_session, sales_user, **{field: value})


@pytest.mark.parametrize("bucket, expected", [
    ("low", ["RFQ-003"]),
    ("medium", ["RFQ-001"]),
    ("high", ["RFQ-004", "RFQ-002"]),
])
def test_confidence_bucket_filter(db_session, pipeline, sales_user, bucket, expected):
    assert _ids(_list(db_session, sales_user, confidence=bucket)) == expected


@pytest.mark.parametrize("value, bucket", [
    (0, "low"), (29, "low"), (30, "medium"), (69, "medium"), (70, "high"), (100, "high"),
])
def test_confidence_bucket_boundaries(value, bucket):
    assert confidence_bucket(value) == bucket


# ── Ranges ──────────────────────────────────────────────────────────


def test_date_range_inclusive_of_whole_end_day(db_session, pipeline, sales_user):
    rfqs = _list(db_session, sales_user, date_from="2026-03-02", date_to="2026-03-03")
    assert _ids(rfqs) == ["RFQ-003", "RFQ-002"]


def test_date_range_accepts_datetimes(db_session, pipeline, sales_user):
    rfqs = _list(db_session, sales_user, date_from="2026-03-03T10:00:00Z")
    assert _ids(rfqs) == ["RFQ-004", "RFQ-003"]


def test_bad_date_rejected(db_session, sales_user):
    with pytest.raises(ValidationFailed, match="Invalid date"):
        _list(db_session, sales_user, date_from="last tuesday")


def test_quantity_range(db_session, pipeline, sales_user):
    rfqs = _list(db_session, sales_user, min_quantity=500, max_quantity=1000)
    assert _ids(rfqs) == ["RFQ-004", "RFQ-001"]


def test_margin_range(db_session, pipeline, sales_user):
    assert _ids(_list(db_session, sales_user, min_margin=8)) == ["RFQ-004", "RFQ-003"]
    assert _ids(_list(db_session, sales_user, max_margin=5.5)) == ["RFQ-002"]


def test_confidence_range(db_session, pipeline, sales_user):
    rfqs = _list(db_session, sales_user, min_confidence=60, max_confidence=80)
    assert _ids(rfqs) == ["RFQ-002", "RFQ-001"]


def test_has_supplier_quote(db_session, pipeline, sales_user):
    assert _ids(_list(db_session, sales_user, has_supplier_quote=True)) == ["RFQ-004", "RFQ-002"]
    assert _ids(_list(db_session, sales_user, has_supplier_quote=False)) == ["RFQ-003", "RFQ-001"]


def test_has_customer_quote(db_session, pipeline, sales_user):
    assert _ids(_list(db_session, sales_user, has_customer_quote=True)) == ["RFQ-004", "RFQ-002"]


# ── Sorting ─────────────────────────────────────────────────────────


def test_sort_by_quantity_ascending(db_session, pipeline, sales_user):
    rfqs = _list(db_session, sales_user, sort_by="quantity", sort_order="asc")
    assert [r.quantity for r in rfqs] == [200, 500, 1000, 5000]


def test_sort_by_customer_name_descending(db_session, pipeline, sales_user):
    rfqs = _list(db_session, sales_user, sort_by="customer_name", sort_order="desc")
    assert rfqs[0].customer_name == "TechCorp Industries"


@pytest.mark.parametrize("sort_by, sort_order", [("sales_person_id", "asc"), ("quantity", "up")])
def test_invalid_sort_rejected(db_session, sales_user, sort_by, sort_order):
    with pytest.raises(ValidationFailed):
        _list(db_session, sales_user, sort_by=sort_by, sort_order=sort_order)


def test_list_by_stage(db_session, pipeline, sales_user):
    rfqs = query_service.list_by_stage(db_session, sales_user, "rfq_received")
    assert sorted(_ids(rfqs)) == ["RFQ-001", "RFQ-002", "RFQ-003"]
    assert _ids(query_service.list_by_stage(db_session, sales_user, "delivered")) == ["RFQ-004"]
    with pytest.raises(ValidationFailed):
        query_service.list_by_stage(db_session, sales_user, "nowhere")


# ── Annotation ──────────────────────────────────────────────────────


def test_annotate_quoted(pipeline):
    data = query_service.annotate(pipeline["electro"])
    assert data["calculated_price"] == {"per_unit": 2.58, "total": 12900.00}
    assert data["formatted_total"] == "₹12,900.00"
    assert data["formatted_date"] != "N/A"
    assert data["activity_count"] == 2
    assert data["communication_count"] == 0
    assert "activity_log" not in data


def test_annotate_unquoted_has_null_price(pipeline):
    data = query_service.annotate(pipeline["techcorp"])
    assert data["calculated_price"] == {"per_unit": None, "total": None}
    assert data["formatted_total"] is None
    assert data["customer_quote"] is None


def test_annotate_uses_live_margin(db_session, pipeline):
    electro = pipeline["electro"]
    electro.margin = 0
    assert query_service.annotate(electro)["calculated_price"]["per_unit"] == 2.45


# ── Statistics ──────────────────────────────────────────────────────


def test_stats_empty():
    stats = compute_stats([])
    assert stats["total"] == 0
    assert stats["active"] == 0
    assert stats["avg_quantity"] == 0
    assert stats["avg_margin"] == 0
    assert stats["avg_confidence"] == 0
    assert stats["potential_revenue"] == 0
    assert set(stats["by_status"].values()) == {0}


def test_stats_over_pipeline(db_session, pipeline, sales_user):
    stats = query_service.get_stats(db_session, sales_user)

    assert stats["total"] == 4
    assert stats["by_status"]["new"] == 2
    assert stats["by_status"]["quote_received"] == 1
    assert stats["by_status"]["completed"] == 1
    assert stats["by_urgency"] == {"low": 0, "medium": 2, "high": 1, "urgent": 1}
    assert stats["by_confidence"] == {"low": 1, "medium": 1, "high": 2}
    assert stats["by_stage"]["delivered"] == 1
    assert stats["by_stage"]["rfq_received"] == 3
    # 12900.00 (ElectroWorks) + 3105.00 (Global Tech, completed)
    assert stats["potential_revenue"] == 16005.00
    assert stats["completed_revenue"] == 3105.00
    assert stats["avg_quantity"] == pytest.approx(1675)
    assert stats["avg_margin"] == pytest.approx(8.125)
    assert stats["avg_confidence"] == pytest.approx(62.25)
    assert stats["active"] == 3


def test_active_excludes_completed_and_cancelled(db_session, pipeline, sales_user):
    rfq_service.update_rfq(db_session, pipeline["hdi"], sales_user, {"status": "cancelled"})
    stats = query_service.get_stats(db_session, sales_user)
    assert stats["active"] == stats["total"] - stats["by_status"]["completed"] - stats["by_status"]["cancelled"]
    assert stats["active"] == 2


def test_stats_scoped_to_owner(db_session, pipeline, other_user):
    assert query_service.get_stats(db_session, other_user)["total"] == 0


def test_stats_with_huge_quotes(db_session, make_rfq, sales_user):
    rfq = make_rfq(quantity=1000)
    rfq_service.record_supplier_quote(db_session, rfq, sales_user, "1" + "0" * 27)
    stats = query_service.get_stats(db_session, sales_user)
    assert stats["potential_revenue"] == pytest.approx(1.15e30)
    assert query_service.annotate(rfq)["calculated_price"]["total"] == rfq.customer_quote_total
