"""Domain errors raised by the reservation core.

Each error carries a stable machine-readable ``code`` and a human message.
The operation boundary in ``parkops.handlers`` turns them into results.
"""


class ParkOpsError(Exception):
    """Base class for all reservation core errors."""

    default_code = "ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "error": self.message}


class ValidationError(ParkOpsError):
    """Malformed or missing input. Caller-fixable."""

    default_code = "VALIDATION_ERROR"


class NotFoundError(ParkOpsError):
    """Resource missing or hidden from the caller."""

    default_code = "NOT_FOUND"


class AuthorizationError(ParkOpsError):
    """Caller lacks the role or ownership required."""

    default_code = "PERMISSION_DENIED"


class NotApprovedError(ParkOpsError):
    """Location exists but has not been approved for booking."""

    default_code = "LOCATION_NOT_APPROVED"


class CapacityError(ParkOpsError):
    """No slot available for the requested window."""

    default_code = "NO_AVAILABLE_SLOTS"


class InvalidStatusError(ParkOpsError):
    """Operation not permitted in the record's current status."""

    default_code = "INVALID_STATUS"


class InternalError(ParkOpsError):
    """Storage or atomicity failure. No partial state is left behind."""

    default_code = "INTERNAL_ERROR"


class LocationBusyError(InternalError):
    """Location lock could not be acquired within the wait budget."""

    default_code = "LOCATION_BUSY"
