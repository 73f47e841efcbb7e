"""
schemas/rfqs.py — Pydantic models for RFQ endpoints

Validates request bodies for RFQ creation, generic updates and each
lifecycle action.

Business Rules:
- Customer name, email and part number are required and non-empty
- Customer email is lower-cased and must look like an address
- Quantity ≥ 1, margin ≥ 0, confidence 0–100; Infinity and NaN are refused
- Urgency, status, stage and communication type are closed sets
- Note type is checked by the service so the caller gets a specific message
- Identity and ownership fields (rfq_id, sales person, created_at) are
  never accepted by the generic update

Called by: routers/rfqs.py
Depends on: pydantic
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

Urgency = Literal["low", "medium", "high", "urgent"]
Status = Literal[
    "new", "awaiting_supplier", "quote_received", "sent_to_customer", "completed", "cancelled"
]
Stage = Literal[
    "rfq_received",
    "quote_submitted",
    "price_accepted",
    "waiting_for_po",
    "po_received",
    "in_production",
    "shipped",
    "delivered",
]


def _clean_email(v: str) -> str:
    v = v.strip().lower()
    if not _EMAIL_RE.match(v):
        raise ValueError("Customer email is not a valid address")
    return v


# ── Create / Update ──────────────────────────────────────────────────


class RfqCreate(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    customer_name: str
    customer_email: str
    part_number: str
    pcb_specs: str = ""
    quantity: int = Field(ge=1)
    margin: float | None = Field(default=None, ge=0)
    notes: str = ""
    urgency: Urgency = "medium"
    confidence: int | None = Field(default=None, ge=0, le=100)
    date_received: datetime | None = None

    @field_validator("customer_name", "part_number")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("customer_email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _clean_email(v)


class RfqUpdate(BaseModel):
    """Any subset of the mutable RFQ fields; unknown keys are dropped."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    customer_name: str | None = None
    customer_email: str | None = None
    part_number: str | None = None
    pcb_specs: str | None = None
    notes: str | None = None
    quantity: int | None = Field(default=None, ge=1)
    margin: float | None = Field(default=None, ge=0)
    supplier_quote: float | None = Field(default=None, gt=0)
    urgency: Urgency | None = None
    confidence: int | None = Field(default=None, ge=0, le=100)
    status: Status | None = None
    stage: Stage | None = None
    date_received: datetime | None = None

    @field_validator("customer_name", "part_number")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("customer_email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _clean_email(v)


# ── Lifecycle actions ────────────────────────────────────────────────


class SupplierQuoteIn(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    quote: float | str
    notes: str | None = None


class MarginIn(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    margin: float = Field(ge=0)


class StageIn(BaseModel):
    stage: Stage


class UrgencyIn(BaseModel):
    urgency: Urgency


class ConfidenceIn(BaseModel):
    confidence: int = Field(ge=0, le=100)


class SendToCustomerIn(BaseModel):
    message: str | None = None


# ── Communications & Notes ───────────────────────────────────────────


class CommunicationIn(BaseModel):
    type: Literal["email", "phone", "meeting", "note"]
    message: str
    direction: Literal["incoming", "outgoing"] = "outgoing"

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message is required")
        return v


class NoteIn(BaseModel):
    type: str
    message: str

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message is required")
        return v
