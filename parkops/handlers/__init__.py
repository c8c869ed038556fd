"""Handlers package - operation boundary of the reservation core.

Each operation takes an already-resolved ``Identity`` plus a raw payload and
returns an ``OperationResult``. Domain errors become stable error codes here;
anything unexpected is logged and reported as ``INTERNAL_ERROR``.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from parkops.errors import ParkOpsError
from parkops.logging import get_logger

logger = get_logger(__name__)


@dataclass
class OperationResult:
    """Outcome of an operation as seen by the web layer."""

    success: bool
    data: Any = None
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, data: Any) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, code: str, message: str) -> "OperationResult":
        return cls(success=False, error_code=code, error_message=message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        if self.success:
            return {"success": True, "data": self.data}
        return {
            "success": False,
            "code": self.error_code,
            "error": self.error_message,
        }


async def run_operation(
    name: str,
    operation: Callable[[], Awaitable[Any]],
) -> OperationResult:
    """
    Run an operation and convert its outcome into a result.

    Args:
        name: Operation name for logging
        operation: Zero-argument coroutine factory producing the result data

    Returns:
        OperationResult carrying either data or an error code and message
    """
    try:
        data = await operation()
    except ParkOpsError as e:
        logger.info("operation_failed", operation=name, code=e.code, error=e.message)
        return OperationResult.failed(e.code, e.message)
    except Exception:
        logger.error("operation_error", operation=name, exc_info=True)
        return OperationResult.failed("INTERNAL_ERROR", "Internal server error")

    return OperationResult.ok(data)
