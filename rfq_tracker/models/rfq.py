"""RFQ aggregate and its append-only sub-records."""

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ..database import UTCDateTime, utcnow
from .base import Base

STATUSES = (
    "new",
    "awaiting_supplier",
    "quote_received",
    "sent_to_customer",
    "completed",
    "cancelled",
)
STAGES = (
    "rfq_received",
    "quote_submitted",
    "price_accepted",
    "waiting_for_po",
    "po_received",
    "in_production",
    "shipped",
    "delivered",
)
URGENCIES = ("low", "medium", "high", "urgent")
NOTE_TYPES = ("internal", "customer", "supplier")
COMMUNICATION_TYPES = ("email", "phone", "meeting", "note")
DIRECTIONS = ("incoming", "outgoing")


class Rfq(Base):
    """One customer's request for a PCB quote, owned by a single salesperson."""

    __tablename__ = "rfqs"
    id = Column(Integer, primary_key=True)
    rfq_id = Column(String(32), nullable=False, unique=True)  # RFQ-001, RFQ-002, ...

    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False)
    part_number = Column(String(255), nullable=False)
    pcb_specs = Column(Text, default="")
    notes = Column(Text, default="")

    quantity = Column(Integer, nullable=False)
    margin = Column(Float, nullable=False, default=15.0)
    supplier_quote = Column(Float)
    customer_quote_per_unit = Column(Float)
    customer_quote_total = Column(Float)
    customer_quote_sent = Column(Boolean, default=False)
    customer_quote_sent_at = Column(UTCDateTime)

    urgency = Column(String(20), nullable=False, default="medium")
    confidence = Column(Integer, nullable=False, default=50)

    status = Column(String(30), nullable=False, default="new")
    stage = Column(String(30), nullable=False, default="rfq_received")

    sales_person_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    date_received = Column(UTCDateTime, default=utcnow)
    actual_delivery_date = Column(UTCDateTime)
    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    sales_person = relationship("User", back_populates="rfqs")
    communications = relationship(
        "RfqCommunication",
        back_populates="rfq",
        cascade="all, delete-orphan",
        order_by="RfqCommunication.id",
    )
    notes_list = relationship(
        "RfqNote",
        back_populates="rfq",
        cascade="all, delete-orphan",
        order_by="RfqNote.id",
    )
    activity_log = relationship(
        "RfqActivity",
        back_populates="rfq",
        cascade="all, delete-orphan",
        order_by="RfqActivity.id",
    )

    __table_args__ = (
        Index("ix_rfqs_sales_person", "sales_person_id"),
        Index("ix_rfqs_status", "status"),
        Index("ix_rfqs_stage", "stage"),
        Index("ix_rfqs_created_at", "created_at"),
    )

    def notes_of(self, note_type: str) -> list["RfqNote"]:
        return [n for n in self.notes_list if n.note_type == note_type]

    @property
    def internal_notes(self) -> list["RfqNote"]:
        return self.notes_of("internal")

    @property
    def customer_notes(self) -> list["RfqNote"]:
        return self.notes_of("customer")

    @property
    def supplier_notes(self) -> list["RfqNote"]:
        return self.notes_of("supplier")

    def __repr__(self) -> str:
        return f"<Rfq {self.rfq_id} status={self.status} stage={self.stage}>"


class RfqCommunication(Base):
    __tablename__ = "rfq_communications"
    id = Column(Integer, primary_key=True)
    rfq_pk = Column(
        Integer, ForeignKey("rfqs.id", ondelete="CASCADE"), nullable=False
    )
    timestamp = Column(UTCDateTime, default=utcnow, nullable=False)
    comm_type = Column(String(20), nullable=False)  # email | phone | meeting | note
    direction = Column(String(20), nullable=False, default="outgoing")
    message = Column(Text, nullable=False)
    author = Column(String(255), nullable=False)

    rfq = relationship("Rfq", back_populates="communications")

    __table_args__ = (Index("ix_rfq_communications_rfq", "rfq_pk"),)


class RfqNote(Base):
    __tablename__ = "rfq_notes"
    id = Column(Integer, primary_key=True)
    rfq_pk = Column(
        Integer, ForeignKey("rfqs.id", ondelete="CASCADE"), nullable=False
    )
    timestamp = Column(UTCDateTime, default=utcnow, nullable=False)
    note_type = Column(String(20), nullable=False)  # internal | customer | supplier
    message = Column(Text, nullable=False)
    author = Column(String(255), nullable=False)

    rfq = relationship("Rfq", back_populates="notes_list")

    __table_args__ = (Index("ix_rfq_notes_rfq_type", "rfq_pk", "note_type"),)


class RfqActivity(Base):
    """Audit trail entry written by every mutating RFQ operation."""

    __tablename__ = "rfq_activity"
    id = Column(Integer, primary_key=True)
    rfq_pk = Column(
        Integer, ForeignKey("rfqs.id", ondelete="CASCADE"), nullable=False
    )
    timestamp = Column(UTCDateTime, default=utcnow, nullable=False)
    author = Column(String(255), nullable=False)
    action = Column(String(100), nullable=False)
    details = Column(Text, nullable=False)
    customer_name = Column(String(255))
    part_number = Column(String(255))

    rfq = relationship("Rfq", back_populates="activity_log")

    __table_args__ = (Index("ix_rfq_activity_rfq", "rfq_pk"),)


class RfqCounter(Base):
    """Named monotonically increasing counter for display identifiers."""

    __tablename__ = "rfq_counters"
    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False, default=0)
