"""
schemas/responses.py — Response envelope shared by every endpoint

All responses are ``{"status": "success"|"error", "data"?, "message"?}``.
Routers build success envelopes with ``ok()``; main.py builds the error
envelope from exceptions.

Called by: routers/*.py, main.py
Depends on: pydantic
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    message: str
    status_code: int
    request_id: str = ""
    detail: list | None = None
    trace: str | None = None


def ok(data: Any = None, message: str | None = None) -> dict:
    """Success envelope; omits empty keys the way the frontend expects."""
    body: dict[str, Any] = {"status": "success"}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body
