"""Activity service — the append-only record trail attached to each RFQ.

Every mutating RFQ operation writes exactly one RfqActivity row through
``log_activity``. Communications and categorized notes are separate
append-only lists; insertion order is chronological order.

Usage:
    from rfq_tracker.services.activity_service import log_activity, add_note
"""

import logging

from sqlalchemy.orm import Session

from ..exceptions import ValidationFailed
from ..models import (
    COMMUNICATION_TYPES,
    DIRECTIONS,
    NOTE_TYPES,
    Rfq,
    RfqActivity,
    RfqCommunication,
    RfqNote,
    User,
)
from ..utils.formatting import format_time, isoformat, shorten

log = logging.getLogger("rfq_tracker.activity")


# ═══════════════════════════════════════════════════════════════════════
#  RECORD CREATION
# ═══════════════════════════════════════════════════════════════════════


def log_activity(db: Session, rfq: Rfq, user: User, action: str, details: str) -> RfqActivity:
    """Append one audit entry to the RFQ's activity log."""
    entry = RfqActivity(
        author=user.display_name,
        action=action,
        details=details,
        customer_name=rfq.customer_name,
        part_number=rfq.part_number,
    )
    rfq.activity_log.append(entry)
    db.add(entry)
    log.info(f"Activity: {action} on {rfq.rfq_id} by user {user.id} — {details}")
    return entry


def append_communication(
    db: Session,
    rfq: Rfq,
    user: User,
    comm_type: str,
    message: str,
    direction: str = "outgoing",
) -> RfqCommunication:
    """Append a communication record without logging activity."""
    if comm_type not in COMMUNICATION_TYPES:
        raise ValidationFailed(
            f"Invalid communication type. Must be one of: {', '.join(COMMUNICATION_TYPES)}"
        )
    if direction not in DIRECTIONS:
        raise ValidationFailed("Invalid direction. Must be incoming or outgoing")
    record = RfqCommunication(
        comm_type=comm_type,
        direction=direction,
        message=message,
        author=user.display_name,
    )
    rfq.communications.append(record)
    db.add(record)
    return record


def append_note(db: Session, rfq: Rfq, user: User, note_type: str, message: str) -> RfqNote:
    """Append a categorized note without logging activity."""
    if note_type not in NOTE_TYPES:
        raise ValidationFailed("Invalid note type. Must be internal, customer, or supplier")
    note = RfqNote(note_type=note_type, message=message, author=user.display_name)
    rfq.notes_list.append(note)
    db.add(note)
    return note


# ═══════════════════════════════════════════════════════════════════════
#  USER-FACING OPERATIONS
# ═══════════════════════════════════════════════════════════════════════


def add_communication(
    db: Session,
    rfq: Rfq,
    user: User,
    comm_type: str,
    message: str,
    direction: str = "outgoing",
) -> RfqCommunication:
    """Record a call, email, meeting or note exchanged with the customer."""
    record = append_communication(db, rfq, user, comm_type, message, direction)
    log_activity(
        db, rfq, user, "Communication Added", f"{direction} {comm_type}: {shorten(message)}"
    )
    db.commit()
    db.refresh(rfq)
    return record


def add_note(db: Session, rfq: Rfq, user: User, note_type: str, message: str) -> RfqNote:
    note = append_note(db, rfq, user, note_type, message)
    log_activity(db, rfq, user, "Note Added", f"{note_type} note: {shorten(message)}")
    db.commit()
    db.refresh(rfq)
    return note


# ═══════════════════════════════════════════════════════════════════════
#  SERIALIZATION
# ═══════════════════════════════════════════════════════════════════════


def activity_to_dict(entry: RfqActivity) -> dict:
    return {
        "id": entry.id,
        "timestamp": isoformat(entry.timestamp),
        "formatted_timestamp": format_time(entry.timestamp),
        "user": entry.author,
        "action": entry.action,
        "details": entry.details,
        "customer_name": entry.customer_name,
        "part_number": entry.part_number,
    }


def communication_to_dict(record: RfqCommunication) -> dict:
    return {
        "id": record.id,
        "timestamp": isoformat(record.timestamp),
        "type": record.comm_type,
        "direction": record.direction,
        "message": record.message,
        "user": record.author,
    }


def note_to_dict(note: RfqNote) -> dict:
    return {
        "id": note.id,
        "timestamp": isoformat(note.timestamp),
        "type": note.note_type,
        "message": note.message,
        "user": note.author,
    }


def get_activity_feed(rfq: Rfq) -> dict:
    """Formatted activity log for one RFQ, oldest first."""
    return {
        "activity_log": [activity_to_dict(a) for a in rfq.activity_log],
        "rfq_id": rfq.rfq_id,
        "customer_name": rfq.customer_name,
        "part_number": rfq.part_number,
    }
