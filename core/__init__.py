# Core module - Error taxonomy, outcomes and retrying execution
# Every failure crossing a tool boundary becomes a StructuredError

__version__ = "1.0.0"

from .errors import (
    ErrorKind, ErrorSeverity, ErrorContext, StructuredError, ValidationDetail,
    ErrorClassifier, ErrorHandler, HttpStatusFailure, classify,
    ToolRegistryError, DuplicateToolError, InvalidToolError, ToolNotFoundError,
    UnknownEndpointError, ConfigurationLoadError,
)
from .outcome import Outcome
from .retry import RetryPolicy, RequestExecutor, execute_with_retry

__all__ = [
    "__version__",
    "ErrorKind", "ErrorSeverity", "ErrorContext", "StructuredError", "ValidationDetail",
    "ErrorClassifier", "ErrorHandler", "HttpStatusFailure", "classify",
    "ToolRegistryError", "DuplicateToolError", "InvalidToolError", "ToolNotFoundError",
    "UnknownEndpointError", "ConfigurationLoadError",
    "Outcome",
    "RetryPolicy", "RequestExecutor", "execute_with_retry",
]
