"""Domain Errors — failures raised by the engine's collaborators."""
from __future__ import annotations


class CaseloadError(Exception):
    """Base class for all caseload errors."""
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class WorkItemNotFound(CaseloadError):
    def __init__(self, workitem_id: str = ""):
        super().__init__(code="WORKITEM_NOT_FOUND", message=f"WorkItem not found: {workitem_id}")
        self.workitem_id = workitem_id


class StoreUnavailable(CaseloadError):
    """Store or directory call failed (connection, timeout, backend error)."""
    def __init__(self, operation: str, detail: str = ""):
        super().__init__(
            code="STORE_UNAVAILABLE",
            message=f"{operation} failed" + (f": {detail}" if detail else ""),
        )
        self.operation = operation
