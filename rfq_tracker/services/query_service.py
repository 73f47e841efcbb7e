"""
query_service.py — Filtered RFQ lists and per-owner statistics

Read-only: nothing here mutates an RFQ or writes activity.

Business Rules:
- Every query is scoped to the caller's own RFQs
- "all" (or empty) for status/urgency/stage/confidence means no filter
- Confidence buckets: low < 30, medium 30–69, high ≥ 70
- Date range applies to created_at; a date-only upper bound covers the whole day
- Default ordering: created_at descending
- active = total − completed − cancelled

Called by: routers/rfqs.py
Depends on: models, dependencies.user_rfqs_query, pricing
"""

from dataclasses import asdict, dataclass
from datetime import datetime, time, timezone

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ..dependencies import user_rfqs_query
from ..exceptions import ValidationFailed
from ..models import STAGES, STATUSES, URGENCIES, Rfq, User
from ..pricing import CustomerPrice, calculate_final_price, format_currency, round2
from ..utils.formatting import format_time
from .rfq_service import rfq_summary

CONFIDENCE_BUCKETS = ("low", "medium", "high")

SORT_FIELDS = {
    "created_at": Rfq.created_at,
    "updated_at": Rfq.updated_at,
    "date_received": Rfq.date_received,
    "quantity": Rfq.quantity,
    "margin": Rfq.margin,
    "confidence": Rfq.confidence,
    "customer_name": Rfq.customer_name,
    "part_number": Rfq.part_number,
    "rfq_id": Rfq.rfq_id,
    "urgency": Rfq.urgency,
    "status": Rfq.status,
    "stage": Rfq.stage,
}


@dataclass
class RfqFilters:
    search: str | None = None
    customer_name: str | None = None
    part_number: str | None = None
    status: str | None = None
    urgency: str | None = None
    confidence: str | None = None  # bucket: low | medium | high
    stage: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    min_quantity: int | None = None
    max_quantity: int | None = None
    min_margin: float | None = None
    max_margin: float | None = None
    min_confidence: int | None = None
    max_confidence: int | None = None
    has_supplier_quote: bool | None = None
    has_customer_quote: bool | None = None
    sort_by: str = "created_at"
    sort_order: str = "desc"

    def to_dict(self) -> dict:
        return asdict(self)


# ═══════════════════════════════════════════════════════════════════════
#  FILTERING
# ═══════════════════════════════════════════════════════════════════════


def _choice(value: str | None, allowed: tuple, label: str) -> str | None:
    if not value or value == "all":
        return None
    if value not in allowed:
        raise ValidationFailed(f"Invalid {label}. Must be one of: {', '.join(allowed)}")
    return value


def _parse_date(raw: str | None, end_of_day: bool = False) -> datetime | None:
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValidationFailed(f"Invalid date: {raw}")
    if end_of_day and len(raw.strip()) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def apply_filters(query, filters: RfqFilters):
    """Narrow an RFQ query by every filter that is set."""
    if filters.search and filters.search.strip():
        pattern = _like(filters.search.strip())
        query = query.filter(
            or_(
                Rfq.customer_name.ilike(pattern, escape="\\"),
                Rfq.part_number.ilike(pattern, escape="\\"),
                Rfq.rfq_id.ilike(pattern, escape="\\"),
                Rfq.customer_email.ilike(pattern, escape="\\"),
            )
        )
    if filters.customer_name:
        query = query.filter(Rfq.customer_name.ilike(_like(filters.customer_name), escape="\\"))
    if filters.part_number:
        query = query.filter(Rfq.part_number.ilike(_like(filters.part_number), escape="\\"))

    status = _choice(filters.status, STATUSES, "status")
    if status:
        query = query.filter(Rfq.status == status)
    urgency = _choice(filters.urgency, URGENCIES, "urgency")
    if urgency:
        query = query.filter(Rfq.urgency == urgency)
    stage = _choice(filters.stage, STAGES, "stage")
    if stage:
        query = query.filter(Rfq.stage == stage)

    bucket = _choice(filters.confidence, CONFIDENCE_BUCKETS, "confidence bucket")
    if bucket == "high":
        query = query.filter(Rfq.confidence >= 70)
    elif bucket == "medium":
        query = query.filter(Rfq.confidence >= 30, Rfq.confidence < 70)
    elif bucket == "low":
        query = query.filter(Rfq.confidence < 30)

    date_from = _parse_date(filters.date_from)
    date_to = _parse_date(filters.date_to, end_of_day=True)
    if date_from:
        query = query.filter(Rfq.created_at >= date_from)
    if date_to:
        query = query.filter(Rfq.created_at <= date_to)

    for column, low, high in (
        (Rfq.quantity, filters.min_quantity, filters.max_quantity),
        (Rfq.margin, filters.min_margin, filters.max_margin),
        (Rfq.confidence, filters.min_confidence, filters.max_confidence),
    ):
        if low is not None:
            query = query.filter(column >= low)
        if high is not None:
            query = query.filter(column <= high)

    if filters.has_supplier_quote is True:
        query = query.filter(Rfq.supplier_quote.isnot(None))
    elif filters.has_supplier_quote is False:
        query = query.filter(Rfq.supplier_quote.is_(None))

    if filters.has_customer_quote is True:
        query = query.filter(Rfq.customer_quote_total.isnot(None))
    elif filters.has_customer_quote is False:
        query = query.filter(Rfq.customer_quote_total.is_(None))

    return query


def apply_sort(query, sort_by: str = "created_at", sort_order: str = "desc"):
    column = SORT_FIELDS.get(sort_by or "created_at")
    if column is None:
        raise ValidationFailed(
            f"Invalid sort field. Must be one of: {', '.join(SORT_FIELDS)}"
        )
    order = (sort_order or "desc").lower()
    if order not in ("asc", "desc"):
        raise ValidationFailed("Invalid sort order. Must be asc or desc")
    if order == "desc":
        return query.order_by(column.desc(), Rfq.id.desc())
    return query.order_by(column.asc(), Rfq.id.asc())


def list_rfqs(db: Session, user: User, filters: RfqFilters | None = None) -> list[Rfq]:
    filters = filters or RfqFilters()
    query = apply_filters(user_rfqs_query(db, user), filters)
    query = apply_sort(query, filters.sort_by, filters.sort_order)
    return query.options(
        selectinload(Rfq.activity_log), selectinload(Rfq.communications)
    ).all()


def list_by_stage(db: Session, user: User, stage: str) -> list[Rfq]:
    if stage not in STAGES:
        raise ValidationFailed(f"Invalid stage. Must be one of: {', '.join(STAGES)}")
    return list_rfqs(db, user, RfqFilters(stage=stage, sort_by="updated_at"))


# ═══════════════════════════════════════════════════════════════════════
#  ANNOTATION
# ═══════════════════════════════════════════════════════════════════════


def current_price(rfq: Rfq) -> CustomerPrice:
    """Price recomputed from the live supplier quote; empty when unquoted."""
    if rfq.supplier_quote is None:
        return CustomerPrice()
    return calculate_final_price(rfq.supplier_quote, rfq.margin, rfq.quantity)


def annotate(rfq: Rfq) -> dict:
    """List-view representation: summary plus computed price and counts."""
    data = rfq_summary(rfq)
    price = current_price(rfq)
    data["calculated_price"] = price.to_dict()
    data["formatted_total"] = None if price.is_empty else format_currency(price.total)
    data["formatted_date"] = format_time(rfq.date_received)
    data["activity_count"] = len(rfq.activity_log)
    data["communication_count"] = len(rfq.communications)
    return data


# ═══════════════════════════════════════════════════════════════════════
#  STATISTICS
# ═══════════════════════════════════════════════════════════════════════


def confidence_bucket(confidence: int | None) -> str:
    value = confidence or 0
    if value >= 70:
        return "high"
    if value >= 30:
        return "medium"
    return "low"


def compute_stats(rfqs: list[Rfq]) -> dict:
    """Aggregate counts, revenue and averages over a set of RFQs."""
    total = len(rfqs)
    by_status = {s: 0 for s in STATUSES}
    by_urgency = {u: 0 for u in URGENCIES}
    by_stage = {s: 0 for s in STAGES}
    by_confidence = {b: 0 for b in CONFIDENCE_BUCKETS}
    potential = 0.0
    completed_revenue = 0.0

    for rfq in rfqs:
        if rfq.status in by_status:
            by_status[rfq.status] += 1
        if rfq.urgency in by_urgency:
            by_urgency[rfq.urgency] += 1
        if rfq.stage in by_stage:
            by_stage[rfq.stage] += 1
        by_confidence[confidence_bucket(rfq.confidence)] += 1
        if rfq.customer_quote_total:
            potential += rfq.customer_quote_total
            if rfq.status == "completed":
                completed_revenue += rfq.customer_quote_total

    def _avg(attr: str) -> float:
        if not total:
            return 0
        return sum(getattr(r, attr) or 0 for r in rfqs) / total

    return {
        "total": total,
        "by_status": by_status,
        "by_urgency": by_urgency,
        "by_confidence": by_confidence,
        "by_stage": by_stage,
        "potential_revenue": round2(potential),
        "completed_revenue": round2(completed_revenue),
        "avg_quantity": _avg("quantity"),
        "avg_margin": _avg("margin"),
        "avg_confidence": _avg("confidence"),
        "active": total - by_status["completed"] - by_status["cancelled"],
    }


def get_stats(db: Session, user: User) -> dict:
    """Statistics over every RFQ the user owns."""
    return compute_stats(user_rfqs_query(db, user).all())

