"""
Tool Registry
-------------
Central registry of generated tools, keyed by unique name.

Each tool carries:
- Name and description
- A parameter validator and its JSON schema
- The catalog operation it was built from
- An async handler returning an Outcome
"""

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional
import logging
import re

from catalog.models import ALL_CONTROLLERS, OperationDescriptor
from core.errors import DuplicateToolError, InvalidToolError, ToolNotFoundError, ToolRegistryError
from core.outcome import Outcome
from .schema import ParameterValidator


ToolHandler = Callable[[Optional[Dict[str, Any]]], Awaitable[Outcome]]

TOOL_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]*$")


@dataclass(frozen=True)
class ToolExamples:
    """Usage sentence and sample arguments for one tool."""
    usage: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"usage": self.usage, "parameters": dict(self.parameters)}


@dataclass
class Tool:
    """A callable tool bound to one Evolution API operation."""
    name: str
    description: str
    controller: str
    endpoint: Optional[OperationDescriptor]
    validator: Optional[ParameterValidator]
    handler: Optional[ToolHandler]
    examples: Optional[ToolExamples] = None

    @property
    def input_schema(self) -> Dict[str, Any]:
        if self.validator is None:
            return {"type": "object", "properties": {}}
        return self.validator.json_schema()

    def to_definition(self) -> Dict[str, Any]:
        """Definition as listed to protocol clients."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    async def __call__(self, params: Optional[Dict[str, Any]] = None) -> Outcome:
        return await self.handler(params)


class RegistryState(Enum):
    EMPTY = auto()
    POPULATED = auto()
    CLEARED = auto()


@dataclass
class RegistryStats:
    total: int
    by_controller: Dict[str, int]
    registered_tools: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "by_controller": dict(self.by_controller),
            "registered_tools": list(self.registered_tools),
        }


def check_tool(tool: Tool) -> List[str]:
    """Problems that make a tool unregistrable."""
    problems = []
    if not tool.name:
        problems.append("Tool name is required")
    elif not TOOL_NAME_PATTERN.match(tool.name):
        problems.append(
            f"Tool name '{tool.name}' must start with a letter and contain only "
            f"letters, numbers, underscores and hyphens"
        )
    if not tool.description:
        problems.append("Tool description is required")
    if not tool.controller:
        problems.append("Tool controller is required")
    if tool.endpoint is None:
        problems.append("Tool endpoint is required")
    if tool.validator is None:
        problems.append("Tool schema is required")
    if tool.handler is None or not callable(tool.handler):
        problems.append("Tool handler is required")
    return problems


class ToolRegistry:
    """
    Registry of tools, keyed by name.

    Rules:
    - Names are unique; registering a duplicate fails
    - Only complete tools are accepted
    - Iteration order is registration order
    """

    def __init__(self):
        self._tools: Dict[str, Tool] = {}
        self._state = RegistryState.EMPTY
        self._logger = logging.getLogger("evolution.tools.registry")

    @property
    def state(self) -> RegistryState:
        return self._state

    def register(self, tool: Tool) -> None:
        """Register a tool. Raises DuplicateToolError or InvalidToolError."""
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)

        problems = check_tool(tool)
        if problems:
            raise InvalidToolError(f"Invalid tool '{tool.name}': {'; '.join(problems)}", problems)

        self._tools[tool.name] = tool
        self._state = RegistryState.POPULATED
        self._logger.debug(f"Registered tool: {tool.name}")

    def register_many(self, tools: Iterable[Tool]) -> int:
        """
        Register every valid tool, then raise once for the ones that failed.
        Returns number of tools registered.
        """
        failures: List[str] = []
        duplicates: List[str] = []
        count = 0
        for tool in tools:
            try:
                self.register(tool)
                count += 1
            except DuplicateToolError as e:
                duplicates.append(e.name)
                failures.append(str(e))
            except ToolRegistryError as e:
                failures.append(str(e))

        if failures:
            self._logger.warning(f"{len(failures)} tool(s) failed to register")
            if len(duplicates) == len(failures) == 1:
                raise DuplicateToolError(duplicates[0])
            raise ToolRegistryError(
                f"Failed to register {len(failures)} tool(s):\n" + "\n".join(failures),
                failures,
            )
        return count

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def require(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def has(self, name: str) -> bool:
        return name in self._tools

    def list_tools(self) -> List[Tool]:
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools.keys())

    def by_controller(self, controller: str) -> List[Tool]:
        return [t for t in self._tools.values() if t.controller == controller]

    def search(self, query: str) -> List[Tool]:
        """Case-insensitive match on name or description."""
        needle = query.lower()
        return [
            t for t in self._tools.values()
            if needle in t.name.lower()
            or needle in t.description.lower()
        ]

    def update(self, name: str, /, **changes: Any) -> Tool:
        """Replace fields of a registered tool. The name cannot change."""
        current = self.require(name)
        if "name" in changes and changes["name"] != name:
            raise InvalidToolError(f"Cannot rename tool '{name}' to '{changes['name']}'")

        updated = replace(current, **changes)
        problems = check_tool(updated)
        if problems:
            raise InvalidToolError(f"Invalid tool '{name}': {'; '.join(problems)}", problems)

        self._tools[name] = updated
        self._logger.debug(f"Updated tool: {name}")
        return updated

    def remove(self, name: str) -> Tool:
        tool = self.require(name)
        del self._tools[name]
        self._logger.debug(f"Removed tool: {name}")
        return tool

    def clear(self) -> None:
        self._tools.clear()
        self._state = RegistryState.CLEARED
        self._logger.info("Tool registry cleared")

    def stats(self) -> RegistryStats:
        by_controller = {c: 0 for c in ALL_CONTROLLERS}
        for tool in self._tools.values():
            by_controller[tool.controller] = by_controller.get(tool.controller, 0) + 1
        return RegistryStats(
            total=len(self._tools),
            by_controller=by_controller,
            registered_tools=self.names(),
        )

    def definitions(self) -> List[Dict[str, Any]]:
        return [t.to_definition() for t in self._tools.values()]

    def export_config(self) -> Dict[str, Any]:
        """JSON-serialisable description of every registered tool."""
        tools = []
        for tool in self._tools.values():
            entry = {
                "name": tool.name,
                "description": tool.description,
                "controller": tool.controller,
                "inputSchema": tool.input_schema,
            }
            if tool.endpoint is not None:
                entry["endpoint"] = {
                    "name": tool.endpoint.name,
                    "method": tool.endpoint.method.value,
                    "path": tool.endpoint.path,
                }
            if tool.examples is not None:
                entry["examples"] = tool.examples.to_dict()
            tools.append(entry)

        return {"stats": self.stats().to_dict(), "tools": tools}

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __iter__(self):
        return iter(self._tools.values())
