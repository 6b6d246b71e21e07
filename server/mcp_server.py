"""
Evolution MCP Server
--------------------
Exposes the generated tool registry over the Model Context Protocol.

Tools are generated once at construction. Listing returns their
definitions; calling a tool runs its handler and renders the Outcome as
text. Failed outcomes are raised as ToolCallError so the SDK marks the
result with isError.
"""

from typing import Any, Dict, List, Optional
import json
import logging

from mcp.server import Server
from mcp.server.stdio import stdio_server
import mcp.types as types

from api.client import EvolutionClient
from catalog.catalog import EndpointCatalog
from core.errors import ErrorKind, StructuredError
from core.outcome import Outcome
from infra.config import ServerConfig
from tools.factory import ToolFactory
from tools.generator import GenerationOptions, ToolGenerator
from tools.registry import Tool, ToolRegistry


KIND_SUGGESTIONS = {
    ErrorKind.AUTHENTICATION_ERROR: "Please check your Evolution API key configuration.",
    ErrorKind.VALIDATION_ERROR: "Please check the parameters you provided.",
    ErrorKind.NETWORK_ERROR: "Please check your Evolution API URL and network connection.",
    ErrorKind.TIMEOUT_ERROR: "The request timed out. Please try again.",
}


class ToolCallError(Exception):
    """A tool call that must be reported to the client as an error."""


def format_success(outcome: Outcome, tool: Tool) -> str:
    data = outcome.data
    if isinstance(data, str) and data:
        return data
    if isinstance(data, dict) and data:
        message = data.get("message")
        if isinstance(message, str) and message:
            return message
        return f"Operation completed successfully.\n\nResult:\n{json.dumps(data, indent=2, default=str)}"
    if data not in (None, "", {}, []):
        if isinstance(data, (list, tuple)):
            return f"Operation completed successfully.\n\nResult:\n{json.dumps(data, indent=2, default=str)}"
        return f"Operation completed successfully. Result: {data}"
    return f"{tool.description} completed successfully."


def format_error(error: Optional[StructuredError]) -> str:
    if error is None:
        return "Error: Unknown error occurred"

    text = f"Error: {error.message or 'Unknown error occurred'}"
    suggestion = KIND_SUGGESTIONS.get(error.kind)
    if suggestion:
        text += f"\n\nSuggestion: {suggestion}"
    if error.kind is ErrorKind.VALIDATION_ERROR and error.details:
        errors = error.details.get("errors")
        if errors:
            text += f"\nValidation errors: {', '.join(errors)}"
    return text


class EvolutionMCPServer:
    """
    MCP server for one Evolution API.

    Dispatch lives in plain methods (`list_tool_definitions`, `call_tool`)
    so it can be driven without a transport.
    """

    def __init__(
        self,
        config: ServerConfig,
        client: Any = None,
        catalog: Optional[EndpointCatalog] = None,
        registry: Optional[ToolRegistry] = None,
    ):
        self.config = config
        self._logger = logging.getLogger("evolution.server")

        self.catalog = catalog or EndpointCatalog.load()
        self.client = client if client is not None else EvolutionClient(config)
        self.registry = registry if registry is not None else ToolRegistry()
        self.generator = ToolGenerator(self.catalog, self.registry, ToolFactory(self.client))
        self.generator.generate(GenerationOptions.from_config(config, transport=self.client))

        self.server = Server(config.server_name, version=config.server_version)
        self._register_handlers()

        stats = self.registry.stats()
        active = sum(1 for count in stats.by_controller.values() if count)
        self._logger.info(
            f"{config.server_name} {config.server_version} ready: "
            f"{stats.total} tools across {active} controllers"
        )

    def _register_handlers(self) -> None:
        """Register MCP protocol handlers"""

        @self.server.list_tools()
        async def list_tools() -> List[types.Tool]:
            return [
                types.Tool(
                    name=definition["name"],
                    description=definition["description"],
                    inputSchema=definition["inputSchema"],
                )
                for definition in self.list_tool_definitions()
            ]

        # Arguments are validated by the tool itself
        @self.server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: Dict[str, Any]) -> List[types.TextContent]:
            text = await self.call_tool(name, arguments)
            return [types.TextContent(type="text", text=text)]

    def list_tool_definitions(self) -> List[Dict[str, Any]]:
        return self.registry.definitions()

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        """Run a tool and render its result. Raises ToolCallError on failure."""
        tool = self.registry.get(name)
        if tool is None:
            raise ToolCallError(f"Tool '{name}' not found")

        self._logger.debug(f"Calling tool '{name}'")
        outcome = await tool.handler(arguments or {})

        if not outcome.success:
            raise ToolCallError(format_error(outcome.error))
        return format_success(outcome, tool)

    def stats(self) -> Dict[str, Any]:
        data = {
            "server": {"name": self.config.server_name, "version": self.config.server_version},
            "tools": self.registry.stats().to_dict(),
            "generation": self.generator.stats(),
        }
        if hasattr(self.client, "stats"):
            data["http"] = self.client.stats()
        return data

    async def health_check(self) -> Dict[str, Any]:
        if not hasattr(self.client, "health_check"):
            return {"healthy": False, "error": "Transport does not support health checks"}

        outcome = await self.client.health_check()
        result: Dict[str, Any] = {
            "healthy": outcome.success,
            "base_url": self.config.base_url,
            "tools": len(self.registry),
        }
        if not outcome.success:
            result["error"] = outcome.error.message
        return result

    async def run_stdio(self) -> None:
        """Serve over stdin/stdout until the client disconnects."""
        self._logger.info("Starting MCP server on stdio")
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if hasattr(self.client, "aclose"):
            await self.client.aclose()
