"""
dependencies.py — Shared FastAPI Dependencies

Authentication from the bearer credential and the single ownership guard
applied to every route that reads or mutates one RFQ.

Business Rules:
- require_user raises 401 if no valid bearer token, 403 if deactivated
- get_owned_rfq raises 404 if the RFQ does not exist, 403 if the caller
  is not its salesperson; it runs before the route body, so a rejected
  caller never reaches a mutation
- user_rfqs_query scopes list queries to the caller's own RFQs

Called by: routers/rfqs.py, routers/auth.py
Depends on: models, database, security
"""

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger
from sqlalchemy.orm import Session

from .database import get_db
from .exceptions import NotAuthorized, RfqNotFound
from .models import Rfq, User
from .security import decode_access_token

_bearer = HTTPBearer(auto_error=False)


# ── Authentication ────────────────────────────────────────────────────


def get_user(
    credentials: HTTPAuthorizationCredentials | None, db: Session
) -> User | None:
    """Return the user named by the bearer token, or None."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    uid = decode_access_token(credentials.credentials)
    if uid is None:
        return None
    return db.get(User, uid)


def require_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: Session = Depends(get_db),
) -> User:
    """Dependency: raises 401 if no authenticated user, 403 if deactivated."""
    user = get_user(credentials, db)
    if not user:
        raise HTTPException(401, "Not authenticated")
    if not getattr(user, "is_active", True):
        raise HTTPException(403, "Account deactivated — contact admin")
    return user


# ── Ownership ─────────────────────────────────────────────────────────


def ensure_owner(rfq: Rfq, user: User) -> Rfq:
    """Raise NotAuthorized unless user is the RFQ's salesperson."""
    if rfq.sales_person_id != user.id:
        logger.warning(
            "Ownership check failed",
            rfq_id=rfq.rfq_id,
            user_id=user.id,
            owner_id=rfq.sales_person_id,
        )
        raise NotAuthorized("Not authorized to access this RFQ")
    return rfq


def load_owned_rfq(db: Session, user: User, rfq_pk: int) -> Rfq:
    rfq = db.get(Rfq, rfq_pk)
    if rfq is None:
        raise RfqNotFound()
    return ensure_owner(rfq, user)


def get_owned_rfq(
    rfq_pk: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> Rfq:
    """Dependency: the RFQ at /rfqs/{rfq_pk}, guaranteed to belong to the caller."""
    return load_owned_rfq(db, user, rfq_pk)


# ── Query Helpers ─────────────────────────────────────────────────────


def user_rfqs_query(db: Session, user: User):
    """Base RFQ query limited to the caller's own RFQs."""
    return db.query(Rfq).filter(Rfq.sales_person_id == user.id)
