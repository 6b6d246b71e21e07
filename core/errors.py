"""
Error Handling Module
---------------------
Typed errors with classification and a fixed retry taxonomy.

Every failure that crosses a tool boundary is turned into a StructuredError:
a single immutable value tagged with an ErrorKind. Whether an error may be
retried is decided by its kind alone, never by the caller.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import logging
import re

import httpx
from pydantic import ValidationError as PydanticValidationError


class ErrorKind(str, Enum):
    """Closed set of error kinds."""
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    API_ERROR = "API_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ErrorSeverity(str, Enum):
    """Severity levels for logging decisions."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# Only transient failures are retried
RETRYABLE_KINDS = frozenset({
    ErrorKind.NETWORK_ERROR,
    ErrorKind.TIMEOUT_ERROR,
    ErrorKind.RATE_LIMIT_ERROR,
})

DEFAULT_SEVERITY: Dict[ErrorKind, ErrorSeverity] = {
    ErrorKind.CONFIGURATION_ERROR: ErrorSeverity.HIGH,
    ErrorKind.AUTHENTICATION_ERROR: ErrorSeverity.HIGH,
    ErrorKind.INTERNAL_ERROR: ErrorSeverity.CRITICAL,
    ErrorKind.VALIDATION_ERROR: ErrorSeverity.MEDIUM,
    ErrorKind.RESOURCE_NOT_FOUND: ErrorSeverity.MEDIUM,
    ErrorKind.NETWORK_ERROR: ErrorSeverity.MEDIUM,
    ErrorKind.TIMEOUT_ERROR: ErrorSeverity.MEDIUM,
    ErrorKind.PERMISSION_ERROR: ErrorSeverity.MEDIUM,
    ErrorKind.RATE_LIMIT_ERROR: ErrorSeverity.LOW,
    ErrorKind.API_ERROR: ErrorSeverity.LOW,
    ErrorKind.UNKNOWN_ERROR: ErrorSeverity.LOW,
}

DEFAULT_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.CONFIGURATION_ERROR: "The server is not configured correctly",
    ErrorKind.AUTHENTICATION_ERROR: "Authentication failed",
    ErrorKind.API_ERROR: "The Evolution API returned an error",
    ErrorKind.NETWORK_ERROR: "Network error while contacting the Evolution API",
    ErrorKind.VALIDATION_ERROR: "Invalid parameters",
    ErrorKind.TIMEOUT_ERROR: "Request timeout - the Evolution API did not respond in time",
    ErrorKind.RATE_LIMIT_ERROR: "Rate limit exceeded",
    ErrorKind.PERMISSION_ERROR: "Access forbidden - insufficient permissions",
    ErrorKind.RESOURCE_NOT_FOUND: "Resource not found",
    ErrorKind.INTERNAL_ERROR: "Unknown error occurred",
    ErrorKind.UNKNOWN_ERROR: "An unknown error occurred",
}

DEFAULT_SUGGESTIONS: Dict[ErrorKind, Tuple[str, ...]] = {
    ErrorKind.CONFIGURATION_ERROR: (
        "Check EVOLUTION_URL and EVOLUTION_API_KEY",
        "Review the configuration file for invalid values",
    ),
    ErrorKind.AUTHENTICATION_ERROR: (
        "Verify your Evolution API key is correct",
        "Check if the API key has the required permissions",
        "Ensure the Evolution API server is accessible",
    ),
    ErrorKind.NETWORK_ERROR: (
        "Check your internet connection",
        "Verify the Evolution API server is running",
        "Try again in a few moments",
    ),
    ErrorKind.RATE_LIMIT_ERROR: (
        "Wait a moment before making more requests",
    ),
    ErrorKind.PERMISSION_ERROR: (
        "Check if your API key has the required permissions",
        "Verify you have access to the requested resource",
    ),
    ErrorKind.RESOURCE_NOT_FOUND: (
        "Verify the resource identifier is correct",
        "Check if the resource exists",
    ),
    ErrorKind.VALIDATION_ERROR: (
        "Check the parameters you provided",
    ),
}


@dataclass(frozen=True)
class ErrorContext:
    """Where an error happened. Used for logging and debugging."""
    operation: Optional[str] = None
    endpoint: Optional[str] = None
    tool_name: Optional[str] = None
    instance: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None
    request_id: Optional[str] = None

    def merged(self, other: Optional["ErrorContext"]) -> "ErrorContext":
        """Copy with missing fields filled from `other`."""
        if other is None:
            return self
        return replace(self, **{
            k: v for k, v in other.__dict__.items()
            if v is not None and getattr(self, k) is None
        })

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass(frozen=True)
class ValidationDetail:
    """One failing field of a validation error."""
    field: str
    message: str
    code: str = "VALIDATION_ERROR"
    value: Any = None
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"field": self.field, "message": self.message, "code": self.code}
        if self.value is not None:
            data["value"] = self.value
        if self.suggestion:
            data["suggestion"] = self.suggestion
        return data


@dataclass(frozen=True)
class StructuredError:
    """
    Classified failure value.

    `retryable` is derived from `kind`; `severity` defaults from it.
    """
    kind: ErrorKind
    message: str
    code: Optional[str] = None
    status_code: Optional[int] = None
    severity: Optional[ErrorSeverity] = None
    details: Optional[Dict[str, Any]] = None
    suggestions: Tuple[str, ...] = ()
    context: Optional[ErrorContext] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.severity is None:
            object.__setattr__(self, "severity", DEFAULT_SEVERITY[self.kind])
        object.__setattr__(self, "suggestions", tuple(self.suggestions))

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def with_context(self, context: Optional[ErrorContext]) -> "StructuredError":
        """Return a copy carrying `context`. Fields already set are kept."""
        if context is None:
            return self
        if self.context is None:
            return replace(self, context=context)
        return replace(self, context=self.context.merged(context))

    def user_message(self) -> str:
        """Message with bulleted suggestions, for protocol clients."""
        if not self.suggestions:
            return self.message
        bullets = "\n".join(f"• {s}" for s in self.suggestions)
        return f"{self.message}\n\nSuggestions:\n{bullets}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.kind.value,
            "message": self.message,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "suggestions": list(self.suggestions),
            "timestamp": self.timestamp.isoformat(),
        }
        if self.code is not None:
            data["code"] = self.code
        if self.status_code is not None:
            data["statusCode"] = self.status_code
        if self.details is not None:
            data["details"] = self.details
        if self.context is not None:
            data["context"] = self.context.to_dict()
        return data

    def __repr__(self) -> str:
        return f"StructuredError({self.kind.value}: {self.message})"


class HttpStatusFailure(Exception):
    """An HTTP response with an error status, raised by the transport."""

    def __init__(
        self,
        status_code: int,
        body: Any = None,
        url: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body = body
        self.url = url
        self.reason = reason
        super().__init__(f"HTTP {status_code}: {reason or 'error response'}")


# =============================================================================
# Constructors, one per kind
# =============================================================================

def _make(
    kind: ErrorKind,
    message: Optional[str] = None,
    suggestions: Optional[Sequence[str]] = None,
    **kwargs: Any,
) -> StructuredError:
    return StructuredError(
        kind=kind,
        message=message or DEFAULT_MESSAGES[kind],
        suggestions=tuple(suggestions) if suggestions is not None else DEFAULT_SUGGESTIONS.get(kind, ()),
        **kwargs,
    )


def configuration_error(message: Optional[str] = None, **kwargs: Any) -> StructuredError:
    return _make(ErrorKind.CONFIGURATION_ERROR, message, **kwargs)


def authentication_error(message: Optional[str] = None, **kwargs: Any) -> StructuredError:
    return _make(ErrorKind.AUTHENTICATION_ERROR, message, **kwargs)


def permission_error(message: Optional[str] = None, **kwargs: Any) -> StructuredError:
    return _make(ErrorKind.PERMISSION_ERROR, message, **kwargs)


def not_found_error(message: Optional[str] = None, **kwargs: Any) -> StructuredError:
    return _make(ErrorKind.RESOURCE_NOT_FOUND, message, **kwargs)


def api_error(message: Optional[str] = None, **kwargs: Any) -> StructuredError:
    return _make(ErrorKind.API_ERROR, message, **kwargs)


def network_error(
    message: Optional[str] = None,
    url: Optional[str] = None,
    **kwargs: Any,
) -> StructuredError:
    details = dict(kwargs.pop("details", None) or {})
    if url:
        details.setdefault("url", url)
    return _make(ErrorKind.NETWORK_ERROR, message, details=details or None, **kwargs)


def timeout_error(
    message: Optional[str] = None,
    timeout_ms: Optional[int] = None,
    **kwargs: Any,
) -> StructuredError:
    details = dict(kwargs.pop("details", None) or {})
    suggestions = kwargs.pop("suggestions", None)
    if timeout_ms is not None:
        details.setdefault("timeout_ms", timeout_ms)
        if suggestions is None:
            suggestions = (
                f"Request timed out after {timeout_ms}ms",
                "Try increasing the timeout value",
                "Check if the Evolution API server is responding slowly",
            )
    return _make(ErrorKind.TIMEOUT_ERROR, message, suggestions=suggestions, details=details or None, **kwargs)


def rate_limit_error(
    message: Optional[str] = None,
    retry_after: Optional[int] = None,
    **kwargs: Any,
) -> StructuredError:
    details = dict(kwargs.pop("details", None) or {})
    suggestions = kwargs.pop("suggestions", None)
    if retry_after is not None:
        details.setdefault("retry_after", retry_after)
        if suggestions is None:
            suggestions = (f"Wait {retry_after} seconds before retrying",)
    return _make(ErrorKind.RATE_LIMIT_ERROR, message, suggestions=suggestions, details=details or None, **kwargs)


def validation_error(
    message: Optional[str] = None,
    validation_details: Iterable[ValidationDetail] = (),
    **kwargs: Any,
) -> StructuredError:
    items = list(validation_details)
    details = dict(kwargs.pop("details", None) or {})
    if items:
        details["validation_details"] = [d.to_dict() for d in items]
        details["errors"] = [f"{d.field}: {d.message}" for d in items]
    return _make(ErrorKind.VALIDATION_ERROR, message, details=details or None, **kwargs)


def internal_error(
    message: Optional[str] = None,
    exception: Optional[BaseException] = None,
    **kwargs: Any,
) -> StructuredError:
    details = dict(kwargs.pop("details", None) or {})
    if exception is not None:
        details.setdefault("original_message", str(exception))
        details.setdefault("exception_type", type(exception).__name__)
    return _make(ErrorKind.INTERNAL_ERROR, message, details=details or None, **kwargs)


def unknown_error(
    message: Optional[str] = None,
    exception: Optional[BaseException] = None,
    **kwargs: Any,
) -> StructuredError:
    details = dict(kwargs.pop("details", None) or {})
    if exception is not None:
        details.setdefault("original_message", str(exception))
        details.setdefault("exception_type", type(exception).__name__)
    return _make(ErrorKind.UNKNOWN_ERROR, message, details=details or None, **kwargs)


# =============================================================================
# HTTP status taxonomy
# =============================================================================

@dataclass(frozen=True)
class StatusRule:
    """How one HTTP status maps onto an error kind."""
    kind: ErrorKind
    message: str
    suggestions: Tuple[str, ...]
    prefer_body_message: bool = False


STATUS_TAXONOMY: Dict[int, StatusRule] = {
    400: StatusRule(
        ErrorKind.VALIDATION_ERROR,
        "Bad request - invalid parameters provided",
        (
            "Check the request parameters for correct format",
            "Verify all required fields are provided",
            "Review the API documentation for parameter requirements",
        ),
        prefer_body_message=True,
    ),
    401: StatusRule(
        ErrorKind.AUTHENTICATION_ERROR,
        "Authentication failed - invalid or missing API key",
        (
            "Verify your Evolution API key is correct",
            "Check if the API key has expired",
            "Ensure the API key has the required permissions",
        ),
    ),
    403: StatusRule(
        ErrorKind.PERMISSION_ERROR,
        "Access forbidden - insufficient permissions",
        (
            "Check if your API key has the required permissions",
            "Verify you have access to the requested resource",
            "Contact your administrator for permission updates",
        ),
    ),
    404: StatusRule(
        ErrorKind.RESOURCE_NOT_FOUND,
        "Resource not found",
        (
            "Verify the resource identifier is correct",
            "Check if the resource exists",
            "Ensure you're using the correct endpoint",
        ),
        prefer_body_message=True,
    ),
    409: StatusRule(
        ErrorKind.API_ERROR,
        "Conflict - resource already exists or is in use",
        (
            "Check if the resource already exists",
            "Try using a different identifier",
            "Verify the current state of the resource",
        ),
        prefer_body_message=True,
    ),
    422: StatusRule(
        ErrorKind.VALIDATION_ERROR,
        "Unprocessable entity - validation failed",
        (
            "Review the validation errors in the response",
            "Correct the invalid fields and try again",
            "Check the API documentation for field requirements",
        ),
        prefer_body_message=True,
    ),
    429: StatusRule(
        ErrorKind.RATE_LIMIT_ERROR,
        "Rate limit exceeded - too many requests",
        (
            "Wait {retry_after} seconds before making more requests",
            "Reduce the frequency of your requests",
            "Consider implementing request queuing",
        ),
    ),
    500: StatusRule(
        ErrorKind.API_ERROR,
        "Internal server error - something went wrong on the Evolution API server",
        (
            "Try the request again in a few moments",
            "Check the Evolution API server status",
            "Contact support if the problem persists",
        ),
    ),
    502: StatusRule(
        ErrorKind.NETWORK_ERROR,
        "Bad gateway - Evolution API server is unreachable",
        (
            "Check if the Evolution API server is running",
            "Verify the server URL is correct",
            "Try again in a few moments",
        ),
    ),
    503: StatusRule(
        ErrorKind.API_ERROR,
        "Service unavailable - Evolution API server is temporarily down",
        (
            "Wait a few moments and try again",
            "Check the Evolution API server status",
            "Contact your administrator if the issue persists",
        ),
    ),
    504: StatusRule(
        ErrorKind.TIMEOUT_ERROR,
        "Gateway timeout - Evolution API server took too long to respond",
        (
            "Try the request again",
            "Check if the Evolution API server is responding slowly",
            "Consider increasing the timeout value",
        ),
    ),
}

DEFAULT_RETRY_AFTER_SECONDS = 60

_STATUS_CONSTRUCTORS = {
    ErrorKind.AUTHENTICATION_ERROR: authentication_error,
    ErrorKind.PERMISSION_ERROR: permission_error,
    ErrorKind.RESOURCE_NOT_FOUND: not_found_error,
    ErrorKind.API_ERROR: api_error,
}

_FIELD_MESSAGE = re.compile(r"(\w+):\s*(.+)")


def _body_message(body: Any) -> Optional[str]:
    if isinstance(body, Mapping):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
        # Evolution API nests messages under "response"
        response = body.get("response")
        if isinstance(response, Mapping):
            nested = response.get("message")
            if isinstance(nested, list) and nested:
                return "; ".join(str(m) for m in nested)
            if isinstance(nested, str) and nested:
                return nested
    elif isinstance(body, str) and body.strip():
        return body.strip()
    return None


def suggest_for_field(field_name: str, message: str = "") -> str:
    """Hint for fixing one invalid field, derived from its name."""
    lowered = field_name.lower()
    if "email" in lowered:
        return "Provide a valid email address (e.g., user@example.com)"
    if "phone" in lowered or "number" in lowered:
        return "Use the format: country code + number (e.g., 5511999999999)"
    if "url" in lowered:
        return "Provide a valid URL starting with http:// or https://"
    if "instance" in lowered:
        return "Use a valid instance name (alphanumeric characters and hyphens only)"
    if "required" in message.lower():
        return f"The field '{field_name}' is required and cannot be empty"
    if "format" in message.lower():
        return f"Check the format of the '{field_name}' field"
    return f"Please check the '{field_name}' field and try again"


def validation_details_from_body(body: Any) -> List[ValidationDetail]:
    """Extract per-field details from a 400/422 response body."""
    if not isinstance(body, Mapping):
        return []

    details: List[ValidationDetail] = []
    errors = body.get("errors")
    if isinstance(errors, list):
        for item in errors:
            if not isinstance(item, Mapping):
                continue
            field_name = str(item.get("field") or item.get("path") or "unknown")
            message = str(item.get("message") or "Validation failed")
            details.append(ValidationDetail(
                field=field_name,
                message=message,
                code=str(item.get("code") or "VALIDATION_ERROR"),
                value=item.get("value"),
                suggestion=suggest_for_field(field_name, message),
            ))
    elif isinstance(body.get("message"), str):
        match = _FIELD_MESSAGE.match(body["message"])
        if match:
            field_name, message = match.group(1), match.group(2)
            details.append(ValidationDetail(
                field=field_name,
                message=message,
                suggestion=suggest_for_field(field_name, message),
            ))
    return details


def _pydantic_suggestion(error: Mapping[str, Any], field_name: str) -> str:
    error_type = str(error.get("type", ""))
    if error_type == "missing":
        return f"The field '{field_name}' is required and cannot be empty"
    if error_type.endswith("_type"):
        expected = error_type[: -len("_type")].replace("_", " ")
        received = type(error.get("input")).__name__
        return f"Expected {expected}, but received {received}"
    return suggest_for_field(field_name, str(error.get("msg", "")))


def validation_details_from_pydantic(exc: PydanticValidationError) -> List[ValidationDetail]:
    """Convert a pydantic ValidationError into per-field details."""
    details = []
    for error in exc.errors():
        field_name = ".".join(str(part) for part in error.get("loc", ())) or "parameters"
        details.append(ValidationDetail(
            field=field_name,
            message=str(error.get("msg", "Invalid value")),
            code=str(error.get("type", "VALIDATION_ERROR")),
            value=None if error.get("type") == "missing" else error.get("input"),
            suggestion=_pydantic_suggestion(error, field_name),
        ))
    return details


def validation_error_from_details(
    details: Sequence[ValidationDetail],
    context: Optional[ErrorContext] = None,
) -> StructuredError:
    summary = ", ".join(f"{d.field} - {d.message}" for d in details)
    message = f"Validation failed: {summary}" if summary else None
    return validation_error(message, details, context=context)


class ErrorClassifier:
    """
    Turns any failure into a StructuredError.

    Input may be a StructuredError (returned unchanged), an httpx
    timeout/transport error, an HttpStatusFailure or httpx.HTTPStatusError,
    a pydantic ValidationError, or any other exception.
    """

    def __init__(self, timeout_ms: Optional[int] = None):
        self.timeout_ms = timeout_ms

    def classify(self, failure: Any, context: Optional[ErrorContext] = None) -> StructuredError:
        if isinstance(failure, StructuredError):
            return failure

        if isinstance(failure, HttpStatusFailure):
            return self.classify_status(
                failure.status_code, failure.body, url=failure.url,
                reason=failure.reason, context=context,
            )

        if isinstance(failure, httpx.HTTPStatusError):
            response = failure.response
            return self.classify_status(
                response.status_code, _response_body(response),
                url=str(failure.request.url), reason=response.reason_phrase,
                context=context,
            )

        # TimeoutException is a TransportError too, check it first
        if isinstance(failure, httpx.TimeoutException):
            return timeout_error(timeout_ms=self.timeout_ms, context=context)

        if isinstance(failure, httpx.TransportError):
            url = None
            try:
                url = str(failure.request.url)
            except RuntimeError:
                pass
            code = type(failure).__name__
            return network_error(f"Network error: {failure}", url=url, code=code, context=context)

        if isinstance(failure, PydanticValidationError):
            return validation_error_from_details(validation_details_from_pydantic(failure), context)

        if isinstance(failure, BaseException):
            return internal_error(
                str(failure) or DEFAULT_MESSAGES[ErrorKind.INTERNAL_ERROR],
                exception=failure,
                context=context,
            )

        return internal_error(
            DEFAULT_MESSAGES[ErrorKind.INTERNAL_ERROR],
            details={"original_message": str(failure)},
            context=context,
        )

    def classify_status(
        self,
        status_code: int,
        body: Any = None,
        url: Optional[str] = None,
        reason: Optional[str] = None,
        context: Optional[ErrorContext] = None,
    ) -> StructuredError:
        """Look a status code up in the taxonomy table."""
        rule = STATUS_TAXONOMY.get(status_code)
        body_message = _body_message(body)
        details = {"response": body} if body is not None else None

        if rule is None:
            return api_error(
                f"HTTP {status_code}: {body_message or reason or 'Unexpected response'}",
                status_code=status_code,
                details=details,
                suggestions=(),
                context=context,
            )

        message = body_message if (rule.prefer_body_message and body_message) else rule.message

        if rule.kind is ErrorKind.RATE_LIMIT_ERROR:
            retry_after = DEFAULT_RETRY_AFTER_SECONDS
            if isinstance(body, Mapping) and body.get("retryAfter") is not None:
                retry_after = body["retryAfter"]
            return rate_limit_error(
                message,
                retry_after=retry_after,
                status_code=status_code,
                suggestions=tuple(s.format(retry_after=retry_after) for s in rule.suggestions),
                details=details,
                context=context,
            )

        if rule.kind is ErrorKind.VALIDATION_ERROR:
            return validation_error(
                message,
                validation_details_from_body(body),
                status_code=status_code,
                suggestions=rule.suggestions,
                details=details,
                context=context,
            )

        if rule.kind is ErrorKind.NETWORK_ERROR:
            return network_error(
                message, url=url, status_code=status_code,
                suggestions=rule.suggestions, details=details, context=context,
            )

        if rule.kind is ErrorKind.TIMEOUT_ERROR:
            return timeout_error(
                message, timeout_ms=self.timeout_ms, status_code=status_code,
                suggestions=rule.suggestions, details=details, context=context,
            )

        build = _STATUS_CONSTRUCTORS[rule.kind]
        return build(
            message,
            suggestions=rule.suggestions,
            status_code=status_code,
            details=details,
            context=context,
        )


def _response_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def classify(failure: Any, context: Optional[ErrorContext] = None) -> StructuredError:
    """Classify a failure with default settings."""
    return ErrorClassifier().classify(failure, context)


class ErrorHandler:
    """
    Logs structured errors and keeps a short history for statistics.
    """

    LEVELS: Dict[ErrorSeverity, int] = {
        ErrorSeverity.LOW: logging.INFO,
        ErrorSeverity.MEDIUM: logging.WARNING,
        ErrorSeverity.HIGH: logging.ERROR,
        ErrorSeverity.CRITICAL: logging.CRITICAL,
    }

    def __init__(self, enable_logging: bool = True, max_history: int = 100):
        self.enable_logging = enable_logging
        self._logger = logging.getLogger("evolution.errors")
        self._error_history: List[StructuredError] = []
        self._max_history = max_history

    def handle(self, error: StructuredError) -> StructuredError:
        """Record and log an error. Returns it unchanged."""
        self._error_history.append(error)
        if len(self._error_history) > self._max_history:
            self._error_history.pop(0)
        self.log_error(error)
        return error

    def log_error(self, error: StructuredError) -> None:
        if not self.enable_logging:
            return

        level = self.LEVELS.get(error.severity, logging.ERROR)
        extra = {"error_kind": error.kind.value}
        if error.status_code is not None:
            extra["status_code"] = error.status_code
        if error.context is not None and error.context.tool_name:
            extra["tool_name"] = error.context.tool_name

        self._logger.log(level, f"{error.kind.value}: {error.message}", extra=extra)

        if error.severity is ErrorSeverity.CRITICAL and error.details:
            self._logger.debug(f"Error details: {error.details}")

    def to_payload(self, error: StructuredError) -> Dict[str, Any]:
        """Failure payload of a tool outcome."""
        payload = error.to_dict()
        payload["userMessage"] = error.user_message()
        return payload

    def get_error_stats(self) -> Dict[str, int]:
        stats: Dict[str, int] = {}
        for error in self._error_history:
            key = error.kind.value
            stats[key] = stats.get(key, 0) + 1
        return stats


# =============================================================================
# Programmer errors
# =============================================================================

class ToolRegistryError(ValueError):
    """A tool could not be registered."""

    def __init__(self, message: str, failures: Optional[List[str]] = None):
        super().__init__(message)
        self.failures = list(failures or [])


class DuplicateToolError(ToolRegistryError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str):
        super().__init__(f"Tool with name '{name}' is already registered", [name])
        self.name = name


class InvalidToolError(ToolRegistryError):
    """A tool record is missing required fields or has a malformed name."""


class ToolNotFoundError(KeyError):
    """No tool with this name is registered."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Tool with name '{self.name}' not found"


class UnknownEndpointError(KeyError):
    """No catalog operation with this name."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Endpoint '{self.name}' not found in catalog"


class ConfigurationLoadError(Exception):
    """Configuration could not be resolved."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])
