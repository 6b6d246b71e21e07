"""
Tool Factory
------------
Turns one catalog operation into a Tool.

The generated handler validates arguments, splits them by location into
path/query/body/header parts, fills the path template and dispatches on
the HTTP method. It never raises: every failure becomes an Outcome.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import quote
import copy
import logging
import re
import time

from catalog.models import HttpMethod, OperationDescriptor, ParamLocation, ParamType, ParameterDescriptor
from core.errors import (
    ErrorClassifier, ErrorContext, ErrorHandler, ErrorKind,
    configuration_error, unknown_error, validation_error_from_details,
)
from core.outcome import Outcome
from infra.logging import RequestContext, log_call_end
from .registry import Tool, ToolExamples, ToolHandler
from .schema import ParameterValidator, build_validator


TOOL_NAMESPACE = "evolution_"

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")
_UNFILLED = re.compile(r"\{[^{}]+\}")

SUPPORTED_METHODS = frozenset(m.value for m in HttpMethod)

# Ordered name heuristics for example values; first match wins
EXAMPLE_HEURISTICS = (
    (("instance",), "my_instance"),
    (("number", "phone"), "5511999999999"),
    (("text", "message"), "Hello, this is a test message"),
    (("url",), "https://example.com"),
    (("email",), "user@example.com"),
    (("name",), "Example Name"),
    (("id", "jid"), "example_id"),
    (("delay",), 1000),
    (("enabled", "active"), True),
)

TYPE_DEFAULTS: Dict[ParamType, Any] = {
    ParamType.STRING: "",
    ParamType.NUMBER: 0,
    ParamType.BOOLEAN: False,
    ParamType.ARRAY: [],
    ParamType.OBJECT: {},
    ParamType.ANY: "",
}


def slugify(name: str) -> str:
    """Lowercase, every non-alphanumeric character becomes '_'."""
    return _NON_ALNUM.sub("_", name).lower()


def tool_name_for(endpoint: OperationDescriptor, prefix: str = "") -> str:
    # "send-text" -> "evolution_send_text"
    return f"{prefix}{TOOL_NAMESPACE}{slugify(endpoint.name)}"


def describe(endpoint: OperationDescriptor) -> str:
    controller = endpoint.controller[:1].upper() + endpoint.controller[1:]
    return f"{controller} Controller: {endpoint.description}"


def example_value(param: ParameterDescriptor) -> Any:
    if param.has_example:
        return param.example
    for needles, value in EXAMPLE_HEURISTICS:
        if any(needle in param.name for needle in needles):
            return value
    return copy.deepcopy(TYPE_DEFAULTS[param.type])


def build_examples(endpoint: OperationDescriptor) -> ToolExamples:
    return ToolExamples(
        usage=f"Use this tool to {endpoint.description.lower()}",
        parameters={p.name: example_value(p) for p in endpoint.parameters},
    )


@dataclass
class PreparedRequest:
    """Validated arguments split by location, with the path filled in."""
    method: HttpMethod
    path: str
    query: Dict[str, Any] = field(default_factory=dict)
    body: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)


def prepare_request(endpoint: OperationDescriptor, values: Dict[str, Any]) -> PreparedRequest:
    """Partition validated values and substitute path placeholders."""
    request = PreparedRequest(method=endpoint.method, path=endpoint.path)

    for param in endpoint.parameters:
        value = values.get(param.name)
        if value is None:
            continue
        if param.location is ParamLocation.PATH:
            request.path = request.path.replace(f"{{{param.name}}}", quote(str(value), safe=""))
        elif param.location is ParamLocation.QUERY:
            request.query[param.name] = value
        elif param.location is ParamLocation.HEADER:
            request.headers[param.name] = str(value)
        else:
            request.body[param.name] = value

    unfilled = _UNFILLED.findall(request.path)
    if unfilled:
        raise ValueError(f"Missing path parameters for {endpoint.path}: {', '.join(unfilled)}")
    return request


async def dispatch(transport: Any, request: PreparedRequest) -> Outcome:
    """Call the transport method matching the HTTP method."""
    method = request.method.value if isinstance(request.method, HttpMethod) else str(request.method).upper()
    call = getattr(transport, method.lower(), None) if method in SUPPORTED_METHODS else None
    if call is None:
        raise ValueError(f"Unsupported HTTP method: {method}")

    kwargs: Dict[str, Any] = {"query": request.query or None}
    if method != "GET":
        kwargs["body"] = request.body or None
    if request.headers:
        kwargs["headers"] = request.headers

    return Outcome.coerce(await call(request.path, **kwargs))


class ToolFactory:
    """
    Builds tools bound to a transport.

    The transport needs async get/post/put/delete/patch methods taking
    `(path, body=None, query=None)` and returning an Outcome.
    """

    def __init__(
        self,
        transport: Any = None,
        classifier: Optional[ErrorClassifier] = None,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.transport = transport
        self.classifier = classifier or ErrorClassifier()
        self.error_handler = error_handler or ErrorHandler()
        self._logger = logging.getLogger("evolution.tools.factory")

    def build(
        self,
        endpoint: OperationDescriptor,
        transport: Any = None,
        validator: Optional[ParameterValidator] = None,
        name_prefix: str = "",
    ) -> Tool:
        """Build a tool. `transport` and `validator` override the defaults."""
        name = tool_name_for(endpoint, name_prefix)
        validator = validator or build_validator(endpoint.parameters, model_name=f"{slugify(endpoint.name)}_params")
        transport = transport if transport is not None else self.transport

        return Tool(
            name=name,
            description=describe(endpoint),
            controller=endpoint.controller,
            endpoint=endpoint,
            validator=validator,
            handler=self.create_handler(name, endpoint, validator, transport),
            examples=build_examples(endpoint),
        )

    def create_handler(
        self,
        tool_name: str,
        endpoint: OperationDescriptor,
        validator: ParameterValidator,
        transport: Any,
    ) -> ToolHandler:
        """Handler closure for one tool."""

        async def handler(params: Optional[Dict[str, Any]] = None) -> Outcome:
            with RequestContext(tool_name=tool_name) as request_id:
                start = time.monotonic()
                context = ErrorContext(
                    operation=tool_name,
                    endpoint=endpoint.path,
                    tool_name=tool_name,
                    instance=params.get("instance") if isinstance(params, dict) else None,
                    request_id=request_id,
                )
                outcome = await self._run(endpoint, validator, transport, params, context)
                elapsed_ms = (time.monotonic() - start) * 1000
                log_call_end(
                    tool_name, outcome.success, elapsed_ms,
                    error=None if outcome.success else outcome.error.message,
                )
                return outcome

        return handler

    async def _run(
        self,
        endpoint: OperationDescriptor,
        validator: ParameterValidator,
        transport: Any,
        params: Any,
        context: ErrorContext,
    ) -> Outcome:
        try:
            result = validator.validate(params)
            if not result.valid:
                return self._fail(validation_error_from_details(result.errors, context))

            if transport is None:
                return self._fail(configuration_error("HTTP client not configured", context=context))

            request = prepare_request(endpoint, result.values)
            self._logger.debug(f"{request.method.value} {request.path}")
            outcome = await dispatch(transport, request)

            if not outcome.success:
                error = outcome.error or unknown_error(context=context)
                return self._fail(error.with_context(context))

            return Outcome.ok(outcome.data, status_code=outcome.status_code or 200, headers=outcome.headers)

        except Exception as exc:
            error = self.classifier.classify(exc, context)
            if error.kind is ErrorKind.INTERNAL_ERROR:
                error = unknown_error(str(exc) or None, exception=exc, context=context)
            self._logger.debug(f"Unexpected failure in {context.tool_name}: {exc!r}")
            return self._fail(error)

    def _fail(self, error) -> Outcome:
        self.error_handler.handle(error)
        return Outcome.fail(error)
