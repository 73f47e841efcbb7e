"""
rfq_service.py — RFQ creation and lifecycle transitions

Every operation here assumes the caller already passed the ownership
guard (dependencies.get_owned_rfq). Each mutation writes exactly one
activity entry, refreshes updated_at and commits.

Business Rules:
- Display ids come from an atomic counter row, never from "last RFQ + 1"
- Recording a supplier quote forces status=quote_received and reprices
- Margin / quantity changes reprice only when a supplier quote exists
- stage=delivered always forces status=completed
- Sending to the customer requires a supplier quote
- Status and stage are otherwise unrestricted; any value may follow any other

Called by: routers/rfqs.py
Depends on: models, pricing, services/activity_service
"""

import logging
import math
import re

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..database import utcnow
from ..exceptions import ValidationFailed
from ..models import STAGES, URGENCIES, Rfq, RfqCounter, User
from ..pricing import calculate_final_price, format_currency, parse_price
from ..schemas.rfqs import RfqCreate
from ..utils.formatting import isoformat
from .activity_service import (
    activity_to_dict,
    append_communication,
    append_note,
    communication_to_dict,
    log_activity,
    note_to_dict,
)

log = logging.getLogger("rfq_tracker.rfq")

RFQ_COUNTER = "rfq"
_RFQ_NUMBER_RE = re.compile(r"(\d+)$")

# Fields the generic update may touch; identity and ownership are excluded
MUTABLE_FIELDS = (
    "customer_name",
    "customer_email",
    "part_number",
    "pcb_specs",
    "notes",
    "quantity",
    "margin",
    "supplier_quote",
    "urgency",
    "confidence",
    "status",
    "stage",
    "date_received",
)
_PRICING_FIELDS = {"supplier_quote", "margin", "quantity"}


# ═══════════════════════════════════════════════════════════════════════
#  DISPLAY ID
# ═══════════════════════════════════════════════════════════════════════


def format_rfq_id(number: int) -> str:
    return f"{settings.rfq_id_prefix}-{number:0{settings.rfq_id_width}d}"


def _highest_assigned_number(db: Session) -> int:
    highest = 0
    for (rfq_id,) in db.query(Rfq.rfq_id).all():
        m = _RFQ_NUMBER_RE.search(rfq_id or "")
        if m:
            highest = max(highest, int(m.group(1)))
    return highest


def next_rfq_number(db: Session) -> int:
    """Atomically reserve the next display number inside the current transaction.

    The UPDATE takes a row lock that is held until commit, so concurrent
    creators serialize on the counter row. The first call seeds the counter
    from any RFQs that already exist, so call this before adding anything
    else to the session.
    """
    result = db.execute(
        update(RfqCounter)
        .where(RfqCounter.name == RFQ_COUNTER)
        .values(value=RfqCounter.value + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        return db.execute(
            select(RfqCounter.value).where(RfqCounter.name == RFQ_COUNTER)
        ).scalar_one()

    seed = _highest_assigned_number(db) + 1
    db.add(RfqCounter(name=RFQ_COUNTER, value=seed))
    try:
        db.flush()
    except IntegrityError:
        # Another transaction seeded the counter first
        db.rollback()
        return next_rfq_number(db)
    return seed


# ═══════════════════════════════════════════════════════════════════════
#  HELPERS
# ═══════════════════════════════════════════════════════════════════════


def reprice(rfq: Rfq) -> None:
    """Recompute the customer quote from the stored supplier quote."""
    if rfq.supplier_quote is None:
        rfq.customer_quote_per_unit = None
        rfq.customer_quote_total = None
        return
    price = calculate_final_price(rfq.supplier_quote, rfq.margin, rfq.quantity)
    rfq.customer_quote_per_unit = price.per_unit
    rfq.customer_quote_total = price.total


def apply_stage(rfq: Rfq, stage: str) -> None:
    if stage not in STAGES:
        raise ValidationFailed(f"Invalid stage. Must be one of: {', '.join(STAGES)}")
    rfq.stage = stage
    if stage == "delivered":
        rfq.status = "completed"


def _pct(value) -> str:
    return f"{value:g}%" if isinstance(value, (int, float)) else f"{value}%"


def _save(db: Session, rfq: Rfq) -> Rfq:
    rfq.updated_at = utcnow()
    db.commit()
    db.refresh(rfq)
    return rfq


# ═══════════════════════════════════════════════════════════════════════
#  CREATE / DELETE
# ═══════════════════════════════════════════════════════════════════════


def create_rfq(db: Session, user: User, payload: RfqCreate) -> Rfq:
    now = utcnow()
    rfq = Rfq(
        customer_name=payload.customer_name,
        customer_email=payload.customer_email.lower(),
        part_number=payload.part_number,
        pcb_specs=payload.pcb_specs or "",
        notes=payload.notes or "",
        quantity=payload.quantity,
        margin=payload.margin if payload.margin is not None else settings.default_margin,
        urgency=payload.urgency or "medium",
        confidence=(
            payload.confidence if payload.confidence is not None else settings.default_confidence
        ),
        status="new",
        stage="rfq_received",
        sales_person_id=user.id,
        date_received=payload.date_received or now,
        created_at=now,
        updated_at=now,
    )
    rfq.rfq_id = format_rfq_id(next_rfq_number(db))
    db.add(rfq)
    log_activity(db, rfq, user, "RFQ Created", f"New RFQ from {rfq.customer_name}")
    db.commit()
    db.refresh(rfq)
    log.info(f"RFQ {rfq.rfq_id} created by user {user.id} for {rfq.customer_name}")
    return rfq


def delete_rfq(db: Session, rfq: Rfq, user: User) -> None:
    rfq_id = rfq.rfq_id
    db.delete(rfq)
    db.commit()
    log.info(f"RFQ {rfq_id} deleted by user {user.id}")


# ═══════════════════════════════════════════════════════════════════════
#  TRANSITIONS
# ═══════════════════════════════════════════════════════════════════════


def view_rfq(db: Session, rfq: Rfq, user: User) -> Rfq:
    """Record that the owner opened the RFQ."""
    log_activity(db, rfq, user, "RFQ Viewed", f"Viewed RFQ {rfq.rfq_id}")
    db.commit()
    db.refresh(rfq)
    return rfq


def record_supplier_quote(
    db: Session, rfq: Rfq, user: User, quote, notes: str | None = None
) -> Rfq:
    price = parse_price(quote)
    if price is None or price <= 0:
        raise ValidationFailed("Supplier quote must be a positive number")

    rfq.supplier_quote = price
    rfq.status = "quote_received"
    reprice(rfq)
    if notes:
        append_note(db, rfq, user, "supplier", notes)
    log_activity(
        db, rfq, user, "Supplier Quote", f"Received supplier quote: {format_currency(price)}"
    )
    return _save(db, rfq)


def update_margin(db: Session, rfq: Rfq, user: User, margin: float) -> Rfq:
    if margin is None or margin < 0:
        raise ValidationFailed("Margin cannot be negative")
    if not math.isfinite(margin):
        raise ValidationFailed("Margin must be a finite number")
    old = rfq.margin
    rfq.margin = float(margin)
    if rfq.supplier_quote is not None:
        reprice(rfq)
    log_activity(
        db, rfq, user, "Margin Updated", f"Changed from {_pct(old)} to {_pct(rfq.margin)}"
    )
    return _save(db, rfq)


def update_stage(db: Session, rfq: Rfq, user: User, stage: str) -> Rfq:
    old = rfq.stage
    apply_stage(rfq, stage)
    log_activity(db, rfq, user, "Stage Updated", f"Changed from {old} to {stage}")
    return _save(db, rfq)


def update_urgency(db: Session, rfq: Rfq, user: User, urgency: str) -> Rfq:
    if urgency not in URGENCIES:
        raise ValidationFailed(f"Invalid urgency. Must be one of: {', '.join(URGENCIES)}")
    old = rfq.urgency
    rfq.urgency = urgency
    log_activity(db, rfq, user, "Urgency Updated", f"Changed from {old} to {urgency}")
    return _save(db, rfq)


def update_confidence(db: Session, rfq: Rfq, user: User, confidence: int) -> Rfq:
    if confidence is None or not 0 <= confidence <= 100:
        raise ValidationFailed("Confidence must be between 0 and 100")
    old = rfq.confidence
    rfq.confidence = int(confidence)
    log_activity(
        db, rfq, user, "Confidence Updated", f"Changed from {_pct(old)} to {_pct(rfq.confidence)}"
    )
    return _save(db, rfq)


def send_to_customer(db: Session, rfq: Rfq, user: User, message: str | None = None) -> Rfq:
    if rfq.supplier_quote is None:
        raise ValidationFailed("Supplier quote is required before sending to customer")

    rfq.status = "sent_to_customer"
    if rfq.customer_quote_total is None:
        reprice(rfq)
    rfq.customer_quote_sent = True
    rfq.customer_quote_sent_at = utcnow()

    append_communication(
        db,
        rfq,
        user,
        "email",
        f"Quote sent to customer: {message or 'No additional message'}",
        direction="outgoing",
    )
    if message:
        append_note(db, rfq, user, "customer", f"Quote sent with message: {message}")
    log_activity(db, rfq, user, "Sent to Customer", "Quote sent to customer")
    return _save(db, rfq)


def mark_complete(db: Session, rfq: Rfq, user: User) -> Rfq:
    """Jump straight to the terminal state regardless of the current stage."""
    rfq.status = "completed"
    rfq.stage = "delivered"
    rfq.actual_delivery_date = utcnow()
    log_activity(db, rfq, user, "Completed", "RFQ marked as completed")
    return _save(db, rfq)


def update_rfq(db: Session, rfq: Rfq, user: User, changes: dict) -> Rfq:
    """Generic update of any subset of MUTABLE_FIELDS in one call."""
    unknown = set(changes) - set(MUTABLE_FIELDS)
    if unknown:
        raise ValidationFailed(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
    if "supplier_quote" in changes and changes["supplier_quote"] is None:
        raise ValidationFailed("Supplier quote cannot be cleared")
    for field in ("customer_name", "customer_email", "part_number", "quantity", "margin",
                  "urgency", "confidence", "status", "stage"):
        if field in changes and changes[field] is None:
            raise ValidationFailed(f"{field} cannot be empty")

    old_status = rfq.status
    summary = []
    for field in MUTABLE_FIELDS:
        if field not in changes:
            continue
        new = changes[field]
        if field == "customer_email":
            new = new.lower()
        old = getattr(rfq, field)
        if field == "stage":
            apply_stage(rfq, new)
        else:
            setattr(rfq, field, new)
        if old != new:
            summary.append(f"{field}: {old} → {new}")

    requested_status = changes.get("status", old_status)
    if rfq.stage == "delivered":
        rfq.status = "completed"
    if rfq.status != requested_status:
        summary.append(f"status: {requested_status} → {rfq.status} (delivered)")

    if _PRICING_FIELDS & set(changes) and rfq.supplier_quote is not None:
        reprice(rfq)

    log_activity(db, rfq, user, "RFQ Updated", "; ".join(summary) or "RFQ details updated")
    return _save(db, rfq)


# ═══════════════════════════════════════════════════════════════════════
#  SERIALIZATION
# ═══════════════════════════════════════════════════════════════════════


def customer_quote_dict(rfq: Rfq) -> dict | None:
    if rfq.supplier_quote is None:
        return None
    return {
        "per_unit": rfq.customer_quote_per_unit,
        "total": rfq.customer_quote_total,
        "sent": bool(rfq.customer_quote_sent),
        "sent_at": isoformat(rfq.customer_quote_sent_at),
    }


def rfq_summary(rfq: Rfq) -> dict:
    """Flat RFQ fields without the sub-record lists."""
    return {
        "id": rfq.id,
        "rfq_id": rfq.rfq_id,
        "customer_name": rfq.customer_name,
        "customer_email": rfq.customer_email,
        "part_number": rfq.part_number,
        "pcb_specs": rfq.pcb_specs,
        "notes": rfq.notes,
        "quantity": rfq.quantity,
        "margin": rfq.margin,
        "supplier_quote": rfq.supplier_quote,
        "customer_quote": customer_quote_dict(rfq),
        "urgency": rfq.urgency,
        "confidence": rfq.confidence,
        "status": rfq.status,
        "stage": rfq.stage,
        "sales_person_id": rfq.sales_person_id,
        "date_received": isoformat(rfq.date_received),
        "actual_delivery_date": isoformat(rfq.actual_delivery_date),
        "created_at": isoformat(rfq.created_at),
        "updated_at": isoformat(rfq.updated_at),
    }


def rfq_to_dict(rfq: Rfq) -> dict:
    """Full RFQ including communications, notes and the activity log."""
    data = rfq_summary(rfq)
    data["communications"] = [communication_to_dict(c) for c in rfq.communications]
    data["internal_notes"] = [note_to_dict(n) for n in rfq.internal_notes]
    data["customer_notes"] = [note_to_dict(n) for n in rfq.customer_notes]
    data["supplier_notes"] = [note_to_dict(n) for n in rfq.supplier_notes]
    data["activity_log"] = [activity_to_dict(a) for a in rfq.activity_log]
    return data
