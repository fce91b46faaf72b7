"""
dependencies.py — Shared FastAPI Dependencies

Reusable dependency functions for the journal routers. Routers import
from here instead of reaching into app.state themselves.

Business Rules:
- get_journal_service returns the instance built in the app lifespan
- Requests before initialization finished get 503, never a half-loaded index
- Boolean query flags are parsed leniently: only "true"/"false" count

Called by: routers/journals.py
Depends on: services/journal_service.py, exceptions.py
"""

from fastapi import Request

from .exceptions import ServiceNotReadyError
from .services.journal_service import JournalService


def get_journal_service(request: Request) -> JournalService:
    """Dependency: the process-wide JournalService, once it is ready."""
    service = getattr(request.app.state, "journal_service", None)
    if service is None or not service.ready:
        raise ServiceNotReadyError("Journal database is still loading")
    return service


def query_flag(value: str | None) -> bool | None:
    """Map a query string flag to True/False, or None when absent/unrecognized."""
    if value is None:
        return None
    value = value.strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return None
