"""
rfqs.py — RFQ CRUD, Lifecycle Actions, Activity & Statistics Router

Business Rules:
- Every route requires a bearer credential (require_user)
- Single-RFQ routes resolve the RFQ through get_owned_rfq, so a caller
  who does not own it gets 403 before anything is read or written
- Static paths (stats, stage, search) are declared before /{rfq_pk}
- Responses use the {"status", "data", "message"} envelope

Called by: main.py (router mount)
Depends on: dependencies, schemas/rfqs, services/rfq_service,
            services/activity_service, services/query_service
"""

from fastapi import APIRouter, Depends, Query
from loguru import logger
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_owned_rfq, require_user
from ..models import Rfq, User
from ..schemas.responses import ok
from ..schemas.rfqs import (
    CommunicationIn,
    ConfidenceIn,
    MarginIn,
    NoteIn,
    RfqCreate,
    RfqUpdate,
    SendToCustomerIn,
    StageIn,
    SupplierQuoteIn,
    UrgencyIn,
)
from ..services import activity_service, query_service, rfq_service
from ..services.query_service import RfqFilters
from .auth import user_to_dict

router = APIRouter(prefix="/api/rfqs", tags=["rfqs"])


# ── Lists & Statistics ──────────────────────────────────────────────────


@router.get("")
async def list_rfqs(
    search: str | None = Query(None, description="Customer, part number, RFQ id or email"),
    status: str | None = Query(None),
    urgency: str | None = Query(None),
    confidence: str | None = Query(None, description="low | medium | high"),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    filters = RfqFilters(search=search, status=status, urgency=urgency, confidence=confidence)
    rfqs = query_service.list_rfqs(db, user, filters)
    return ok(
        {
            "rfqs": [query_service.annotate(r) for r in rfqs],
            "stats": query_service.compute_stats(rfqs),
            "user": user_to_dict(user),
        }
    )


@router.get("/stats/overview")
async def stats_overview(user: User = Depends(require_user), db: Session = Depends(get_db)):
    return ok({"stats": query_service.get_stats(db, user)})


@router.get("/stage/{stage}")
async def rfqs_by_stage(
    stage: str, user: User = Depends(require_user), db: Session = Depends(get_db)
):
    rfqs = query_service.list_by_stage(db, user, stage)
    return ok(
        {
            "rfqs": [query_service.annotate(r) for r in rfqs],
            "stage": stage,
            "count": len(rfqs),
        }
    )


@router.get("/search/advanced")
async def advanced_search(
    customer_name: str | None = None,
    part_number: str | None = None,
    date_from: str | None = Query(None, description="ISO date or datetime"),
    date_to: str | None = Query(None, description="ISO date or datetime"),
    min_quantity: int | None = None,
    max_quantity: int | None = None,
    min_margin: float | None = None,
    max_margin: float | None = None,
    min_confidence: int | None = None,
    max_confidence: int | None = None,
    status: str | None = None,
    urgency: str | None = None,
    stage: str | None = None,
    has_supplier_quote: bool | None = None,
    has_customer_quote: bool | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    filters = RfqFilters(
        customer_name=customer_name,
        part_number=part_number,
        date_from=date_from,
        date_to=date_to,
        min_quantity=min_quantity,
        max_quantity=max_quantity,
        min_margin=min_margin,
        max_margin=max_margin,
        min_confidence=min_confidence,
        max_confidence=max_confidence,
        status=status,
        urgency=urgency,
        stage=stage,
        has_supplier_quote=has_supplier_quote,
        has_customer_quote=has_customer_quote,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    rfqs = query_service.list_rfqs(db, user, filters)
    return ok(
        {
            "rfqs": [query_service.annotate(r) for r in rfqs],
            "total": len(rfqs),
            "filters": filters.to_dict(),
        }
    )


# ── CRUD ────────────────────────────────────────────────────────────────


@router.post("", status_code=201)
async def create_rfq(
    payload: RfqCreate, user: User = Depends(require_user), db: Session = Depends(get_db)
):
    rfq = rfq_service.create_rfq(db, user, payload)
    return ok({"rfq": rfq_service.rfq_to_dict(rfq)}, "RFQ created successfully")


@router.get("/{rfq_pk}")
async def get_rfq(
    rfq: Rfq = Depends(get_owned_rfq),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    rfq = rfq_service.view_rfq(db, rfq, user)
    data = rfq_service.rfq_to_dict(rfq)
    data["calculated_price"] = query_service.current_price(rfq).to_dict()
    return ok({"rfq": data})


@router.put("/{rfq_pk}")
async def update_rfq(
    payload: RfqUpdate,
    rfq: Rfq = Depends(get_owned_rfq),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    rfq = rfq_service.update_rfq(db, rfq, user, payload.model_dump(exclude_unset=True))
    return ok({"rfq": rfq_service.rfq_to_dict(rfq)}, "RFQ updated successfully")


@router.delete("/{rfq_pk}")
async def delete_rfq(
    rfq: Rfq = Depends(get_owned_rfq),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    rfq_service.delete_rfq(db, rfq, user)
    return ok(message="RFQ deleted successfully")


# ── Lifecycle Actions ───────────────────────────────────────────────────


@router.put("/{rfq_pk}/supplier-quote")
async def record_supplier_quote(
    payload: SupplierQuoteIn,
    rfq: Rfq = Depends(get_owned_rfq),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    rfq = rfq_service.record_supplier_quote(db, rfq, user, payload.quote, payload.notes)
    return ok(
        {
            "rfq": rfq_service.rfq_to_dict(rfq),
            "calculated_price": rfq_service.customer_quote_dict(rfq),
        },
        "Supplier quote updated successfully",
    )


@router.put("/{rfq_pk}/margin")
async def update_margin(
    payload: MarginIn,
    rfq: Rfq = Depends(get_owned_rfq),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    rfq = rfq_service.update_margin(db, rfq, user, payload.margin)
    return ok(
        {
            "rfq": rfq_service.rfq_to_dict(rfq),
            "calculated_price": rfq_service.customer_quote_dict(rfq),
        },
        "Margin updated successfully",
    )


@router.put("/{rfq_pk}/stage")
async def update_stage(
    payload: StageIn,
    rfq: Rfq = Depends(get_owned_rfq),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    rfq = rfq_service.update_stage(db, rfq, user, payload.stage)
    return ok({"rfq": rfq_service.rfq_to_dict(rfq)}, "Stage updated successfully")


@router.put("/{rfq_pk}/urgency")
async def update_urgency(
    payload: UrgencyIn,
    rfq: Rfq = Depends(get_owned_rfq),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    rfq = rfq_service.update_urgency(db, rfq, user, payload.urgency)
    return ok({"rfq": rfq_service.rfq_to_dict(rfq)}, "Urgency updated successfully")


@router.put("/{rfq_pk}/confidence")
async def update_confidence(
    payload: ConfidenceIn,
    rfq: Rfq = Depends(get_owned_rfq),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    rfq = rfq_service.update_confidence(db, rfq, user, payload.confidence)
    return ok({"rfq": rfq_service.rfq_to_dict(rfq)}, "Confidence score updated successfully")


@router.post("/{rfq_pk}/send-to-customer")
async def send_to_customer(
    payload: SendToCustomerIn | None = None,
    rfq: Rfq = Depends(get_owned_rfq),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    message = payload.message if payload else None
    rfq = rfq_service.send_to_customer(db, rfq, user, message)
    return ok({"rfq": rfq_service.rfq_to_dict(rfq)}, "Quote sent to customer successfully")


@router.put("/{rfq_pk}/complete")
async def mark_complete(
    rfq: Rfq = Depends(get_owned_rfq),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    rfq = rfq_service.mark_complete(db, rfq, user)
    return ok({"rfq": rfq_service.rfq_to_dict(rfq)}, "RFQ marked as completed successfully")


# ── Communications, Notes & Activity ────────────────────────────────────


@router.post("/{rfq_pk}/communication")
async def add_communication(
    payload: CommunicationIn,
    rfq: Rfq = Depends(get_owned_rfq),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    record = activity_service.add_communication(
        db, rfq, user, payload.type, payload.message, payload.direction
    )
    return ok(
        {
            "rfq": rfq_service.rfq_to_dict(rfq),
            "communication": activity_service.communication_to_dict(record),
        },
        "Communication added successfully",
    )


@router.post("/{rfq_pk}/note")
async def add_note(
    payload: NoteIn,
    rfq: Rfq = Depends(get_owned_rfq),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    note = activity_service.add_note(db, rfq, user, payload.type, payload.message)
    logger.debug("Note added", rfq_id=rfq.rfq_id, note_type=payload.type)
    return ok(
        {"rfq": rfq_service.rfq_to_dict(rfq), "note": activity_service.note_to_dict(note)},
        f"{payload.type} note added successfully",
    )


@router.get("/{rfq_pk}/activity")
async def get_activity(rfq: Rfq = Depends(get_owned_rfq)):
    return ok(activity_service.get_activity_feed(rfq))
