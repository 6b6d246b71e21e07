# Server module - MCP protocol binding
# Lists generated tools and dispatches calls over stdio

from .mcp_server import EvolutionMCPServer, ToolCallError, format_success, format_error

__all__ = ["EvolutionMCPServer", "ToolCallError", "format_success", "format_error"]
