"""
Custom exceptions for the LightGuard data layer.

Every failure raised by the record service carries the remote store's
message unchanged, plus the table and operation it happened on.
"""

from typing import Any, Dict, Optional


class RecordServiceException(Exception):
    """Base exception for all data layer errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class RemoteStoreError(RecordServiceException):
    """Raised when a call to the remote store fails."""

    def __init__(
        self,
        table: str,
        operation: str,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.table = table
        self.operation = operation
        self.code = code
        super().__init__(
            message=message,
            details={"table": table, "operation": operation, "code": code, **(details or {})},
        )


class RemoteQueryError(RemoteStoreError):
    """Raised when reading records fails."""


class RemoteWriteError(RemoteStoreError):
    """Raised when inserting, updating or deleting records fails."""


class ConfigurationError(RecordServiceException):
    """Raised when the Supabase connection is not configured."""

    def __init__(self, missing: str):
        super().__init__(
            message=f"Supabase not configured: {missing} is not set",
            details={"missing": missing},
        )


class InvalidPayloadError(RecordServiceException):
    """Raised when a mutation payload is rejected before reaching the store."""

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(
            message=f"Invalid value for {field}: {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class HookClosedError(RecordServiceException):
    """Raised when a hook is used after close()."""

    def __init__(self, hook: str, table: str):
        super().__init__(
            message=f"{hook} for table '{table}' is closed",
            details={"hook": hook, "table": table},
        )
