# legaldocs/errors.py
"""
Error taxonomy shared by the orchestrators and the HTTP layer.

Every error carries the HTTP status the API answers with; the message is
surfaced to the caller verbatim.
"""


class LegalDocsError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(LegalDocsError):
    """Rejected before any network call (missing field, wrong type, same document twice)."""
    status_code = 400


class NotAuthenticated(LegalDocsError):
    status_code = 401


class NotFound(LegalDocsError):
    status_code = 404


class Busy(LegalDocsError):
    """The same operation is already in flight for this session."""
    status_code = 409


class PayloadTooLarge(LegalDocsError):
    status_code = 413


class TransportError(LegalDocsError):
    """Network unreachable or non-2xx response from an external endpoint."""
    status_code = 502

    def __init__(self, message: str, status: int = None, connect_failed: bool = False):
        super().__init__(message)
        self.status = status
        self.connect_failed = connect_failed


class DecodeError(TransportError):
    """The external endpoint answered with a body we cannot interpret."""


class ConversionFailed(LegalDocsError):
    status_code = 502


class WorkflowError(LegalDocsError):
    """The workflow answered but reported errors (e.g. error_count > 0)."""
    status_code = 502


class BackendError(LegalDocsError):
    """Object store or database operation failed."""
    status_code = 502
