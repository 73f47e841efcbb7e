"""
routers/auth.py — Caller identity

Business Rules:
- Token issuance happens upstream; this router only reports who the
  bearer credential belongs to

Called by: main.py (router mount)
Depends on: dependencies, models
"""

from fastapi import APIRouter, Depends

from ..dependencies import require_user
from ..models import User
from ..schemas.responses import ok

router = APIRouter(tags=["auth"])


def user_to_dict(user: User) -> dict:
    return {"id": user.id, "name": user.name, "email": user.email, "role": user.role}


@router.get("/api/auth/me")
async def me(user: User = Depends(require_user)):
    return ok({"user": user_to_dict(user)})
