"""
exceptions.py — Journal lookup error hierarchy

Each error carries the HTTP status it maps to and a public message. The
exception handlers in main.py turn these into ErrorResponse bodies, so
routers and services just raise.

Called by: services/, connectors/, routers/, main.py
Depends on: nothing
"""


class JournalLookupError(Exception):
    status_code = 500
    error = "Internal Server Error"
    kind = "HandlerFailure"

    def __init__(self, message: str = "", detail: list | None = None):
        super().__init__(message or self.error)
        self.message = message or self.error
        self.detail = detail


class InvalidRequestError(JournalLookupError):
    status_code = 400
    error = "Bad Request"
    kind = "InvalidRequest"


class InvalidISSNError(InvalidRequestError):
    def __init__(self, issn: str):
        super().__init__(f"Invalid ISSN format: {issn}")
        self.issn = issn


class JournalNotFoundError(JournalLookupError):
    status_code = 404
    error = "Not Found"
    kind = "NotFoundResult"


class ServiceNotReadyError(JournalLookupError):
    status_code = 503
    error = "Service Unavailable"
    kind = "ServiceNotReady"


class CatalogError(JournalLookupError):
    """NLM Catalog / E-utilities request or response failure."""

    status_code = 502
    error = "Bad Gateway"
    kind = "CatalogError"


class DatabaseError(JournalLookupError):
    """Journal database could not be read or written."""

    kind = "DatabaseError"
