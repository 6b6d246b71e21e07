#!/usr/bin/env python3
"""
Evolution API MCP Server
========================

Main entry point. Exposes the Evolution API (WhatsApp) as MCP tools.

Usage:
    python main.py serve              # Run the MCP server on stdio
    python main.py tools              # List generated tools
    python main.py tools --controller message
    python main.py check              # Validate config and ping the API
    python main.py --help             # Show help
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Ensure project root is in path
sys.path.insert(0, str(Path(__file__).parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from catalog import EndpointCatalog
from core import __version__
from core.errors import ConfigurationLoadError
from infra.config import ServerConfig, load_config
from infra.logging import configure_logging
from server import EvolutionMCPServer
from tools import GenerationOptions, ToolGenerator


# stdout belongs to the MCP stdio channel while serving
console = Console()
err_console = Console(stderr=True)


def print_banner(config: ServerConfig, tool_count: int) -> None:
    banner = Text()
    banner.append("Evolution API MCP", style="bold cyan")
    banner.append(f" v{config.server_version}\n", style="dim")
    banner.append(f"API: {config.base_url}\n", style="green")
    banner.append(f"Tools: {tool_count}", style="dim")
    err_console.print(Panel(banner, title=config.server_name, border_style="blue"))


def cmd_serve(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    configure_logging(
        level=logging.DEBUG if config.logging_enabled else getattr(logging, args.log_level),
        file=args.log_file,
    )

    server = EvolutionMCPServer(config)
    print_banner(config, len(server.registry))
    asyncio.run(server.run_stdio())
    return 0


def cmd_tools(args: argparse.Namespace) -> int:
    configure_logging(level=getattr(logging, args.log_level))

    generator = ToolGenerator(EndpointCatalog.load())
    options = GenerationOptions(
        controllers=[args.controller] if args.controller else None,
        name_prefix=args.prefix,
    )
    tools = generator.generate(options)
    if args.search:
        tools = generator.registry.search(args.search)

    table = Table(title=f"{len(tools)} tools")
    table.add_column("Name", style="cyan")
    table.add_column("Method", style="magenta")
    table.add_column("Path", style="dim")
    table.add_column("Description")
    for tool in tools:
        table.add_row(tool.name, tool.endpoint.method.value, tool.endpoint.path, tool.description)
    console.print(table)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    configure_logging(level=getattr(logging, args.log_level))

    config = load_config(args.config)
    table = Table(title="Resolved configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in config.masked().items():
        table.add_row(key, str(value))
    console.print(table)

    server = EvolutionMCPServer(config)

    async def probe():
        try:
            return await server.health_check()
        finally:
            await server.aclose()

    health = asyncio.run(probe())
    if health["healthy"]:
        console.print(f"[bold green]Evolution API reachable[/bold green] ({health['tools']} tools)")
        return 0
    console.print(f"[bold red]Health check failed:[/bold red] {health.get('error')}")
    return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Evolution API MCP Server - WhatsApp tools for MCP clients"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to a YAML or JSON configuration file"
    )
    parser.add_argument(
        "--log-level", "-l",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the MCP server on stdio")
    serve.add_argument("--log-file", action="store_true", help="Also write JSON logs to ./logs")

    tools = subparsers.add_parser("tools", help="List generated tools")
    tools.add_argument("--controller", default=None, help="Only tools of this controller")
    tools.add_argument("--search", default=None, help="Filter by name or description")
    tools.add_argument("--prefix", default="", help="Tool name prefix")

    subparsers.add_parser("check", help="Validate configuration and ping the API")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "serve"
        args.log_file = False

    handlers = {"serve": cmd_serve, "tools": cmd_tools, "check": cmd_check}
    logger = logging.getLogger("evolution.main")

    try:
        return handlers[args.command](args)
    except ConfigurationLoadError as e:
        err_console.print(f"[bold red]Configuration error:[/bold red] {e}")
        return 1
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    except Exception as e:
        logger.exception("Fatal error")
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
