"""
Outcome
-------
Uniform result of a tool invocation or transport call.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from core.errors import StructuredError, classify, unknown_error


@dataclass(frozen=True)
class Outcome:
    """Exactly one of `data` (on success) or `error` (on failure) is meaningful."""
    success: bool
    data: Any = None
    error: Optional[StructuredError] = None
    status_code: int = 0
    headers: Optional[Dict[str, str]] = None

    @classmethod
    def ok(cls, data: Any = None, status_code: int = 200, headers: Optional[Dict[str, str]] = None) -> "Outcome":
        return cls(success=True, data=data, status_code=status_code, headers=headers)

    @classmethod
    def fail(cls, error: StructuredError, status_code: Optional[int] = None) -> "Outcome":
        if status_code is None:
            status_code = error.status_code or 0
        return cls(success=False, error=error, status_code=status_code)

    @classmethod
    def coerce(cls, value: Any) -> "Outcome":
        """
        Accept an Outcome or an outcome-shaped mapping from a transport.

        Anything else is treated as successful response data.
        """
        if isinstance(value, Outcome):
            return value

        if isinstance(value, Mapping) and "success" in value:
            if value["success"]:
                return cls.ok(value.get("data"), status_code=value.get("status_code", 200))
            error = value.get("error")
            if isinstance(error, StructuredError):
                return cls.fail(error)
            if isinstance(error, BaseException):
                return cls.fail(classify(error))
            return cls.fail(unknown_error(str(error) if error else None))

        return cls.ok(value)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success, "statusCode": self.status_code}
        if self.success:
            result["data"] = self.data
        elif self.error is not None:
            result["error"] = self.error.to_dict()
        return result
