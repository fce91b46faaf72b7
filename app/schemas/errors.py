"""
schemas/errors.py — Structured error response model

Shared by every exception handler in main.py. `error` is the HTTP reason
phrase, `type` names the failure (RouteNotFound, MethodNotAllowed,
NotFoundResult, HandlerFailure, ...), `message` is human readable.
"""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    type: str
    message: str = ""
    status_code: int
    request_id: str = ""
    detail: list | None = None
