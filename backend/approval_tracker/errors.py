"""Domain error taxonomy.

Every failure the core reports is one of these. Each carries a machine
``kind`` and a human message; the HTTP layer renders both and maps the kind to
a status code.
"""


class ApprovalError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class AuthenticationError(ApprovalError):
    """No usable caller identity on the request."""

    kind = "authentication_error"
    status_code = 401


class ValidationError(ApprovalError):
    """Malformed submission. The caller must fix the input; never retried."""

    kind = "validation_error"
    status_code = 422


class AuthorizationError(ApprovalError):
    """Principal lacks the capability for the operation. Permanent denial."""

    kind = "authorization_error"
    status_code = 403


class ConflictError(ApprovalError):
    """Decision on a terminal request, or a lost race. Safe to re-read and retry once."""

    kind = "conflict"
    status_code = 409


class NotFoundError(ApprovalError):
    kind = "not_found"
    status_code = 404


class TransientStoreError(ApprovalError):
    """Store unavailable or timed out. The transaction was rolled back in full."""

    kind = "transient_store_error"
    status_code = 503
