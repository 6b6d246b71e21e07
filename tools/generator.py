"""
Tool Generator
--------------
Bulk-creates tools from the catalog with controller and endpoint filtering.

Selection: entries whose controller is requested, narrowed to the include
list when one is given, minus the exclude list. Generation does not clear
the registry, so generating the same tools twice fails on duplicates.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

from catalog.catalog import EndpointCatalog
from catalog.models import ALL_CONTROLLERS, OperationDescriptor
from .factory import ToolFactory
from .registry import TOOL_NAME_PATTERN, Tool, ToolRegistry


@dataclass
class GenerationOptions:
    """Which tools to generate and how to name them."""
    controllers: Optional[List[str]] = None
    include_endpoints: List[str] = field(default_factory=list)
    exclude_endpoints: List[str] = field(default_factory=list)
    name_prefix: str = ""
    transport: Any = None

    @classmethod
    def from_config(cls, config: Any, transport: Any = None) -> "GenerationOptions":
        return cls(
            controllers=list(config.controllers) if config.controllers else None,
            include_endpoints=list(config.include_endpoints),
            exclude_endpoints=list(config.exclude_endpoints),
            name_prefix=config.tool_prefix,
            transport=transport,
        )


class ToolGenerator:
    """Generates tools for a catalog into a registry."""

    def __init__(
        self,
        catalog: EndpointCatalog,
        registry: Optional[ToolRegistry] = None,
        factory: Optional[ToolFactory] = None,
    ):
        self.catalog = catalog
        self.registry = registry if registry is not None else ToolRegistry()
        self.factory = factory or ToolFactory()
        self._logger = logging.getLogger("evolution.tools.generator")

    def select(self, options: GenerationOptions) -> List[OperationDescriptor]:
        """Catalog entries matching the options, in controller order."""
        controllers = options.controllers or list(ALL_CONTROLLERS)
        include = set(options.include_endpoints)
        exclude = set(options.exclude_endpoints)

        selected = []
        for controller in controllers:
            endpoints = self.catalog.by_controller(controller)
            if not endpoints:
                self._logger.warning(f"No endpoints for controller '{controller}'")
            for endpoint in endpoints:
                if include and endpoint.name not in include:
                    self._logger.debug(f"Skipping '{endpoint.name}' (not in include list)")
                    continue
                if endpoint.name in exclude:
                    self._logger.debug(f"Skipping '{endpoint.name}' (excluded)")
                    continue
                selected.append(endpoint)
        return selected

    def generate(self, options: Optional[GenerationOptions] = None) -> List[Tool]:
        """
        Build and register tools. Raises ToolRegistryError when any of them
        is already registered (after registering the rest).
        """
        options = options or GenerationOptions()
        tools = [
            self.factory.build(endpoint, transport=options.transport, name_prefix=options.name_prefix)
            for endpoint in self.select(options)
        ]
        self.registry.register_many(tools)
        self._logger.info(f"Generated {len(tools)} tools")
        return tools

    def generate_for_controller(self, controller: str, transport: Any = None, name_prefix: str = "") -> List[Tool]:
        return self.generate(GenerationOptions(
            controllers=[controller], transport=transport, name_prefix=name_prefix,
        ))

    def generate_for_endpoint(self, name: str, transport: Any = None, name_prefix: str = "") -> Tool:
        endpoint = self.catalog.require(name)
        tool = self.factory.build(endpoint, transport=transport, name_prefix=name_prefix)
        self.registry.register(tool)
        return tool

    def regenerate(self, options: Optional[GenerationOptions] = None) -> List[Tool]:
        """Clear the registry, then generate."""
        self.registry.clear()
        return self.generate(options)

    def stats(self) -> Dict[str, Any]:
        by_controller = {}
        for controller in self.catalog.controllers():
            by_controller[controller] = {
                "endpoints": len(self.catalog.by_controller(controller)),
                "tools": len(self.registry.by_controller(controller)),
            }
        return {
            "available_endpoints": len(self.catalog),
            "registered_tools": len(self.registry),
            "by_controller": by_controller,
        }

    def validate(self) -> List[str]:
        """Problems with registered tools, one message per violation."""
        errors = []
        seen = set()
        for tool in self.registry.list_tools():
            if not tool.name or not TOOL_NAME_PATTERN.match(tool.name):
                errors.append(f"Tool has invalid name: {tool.name!r}")
            if tool.name in seen:
                errors.append(f"Duplicate tool name: {tool.name}")
            seen.add(tool.name)
            if tool.handler is None or not callable(tool.handler):
                errors.append(f"Tool {tool.name} has no handler")
            if tool.validator is None:
                errors.append(f"Tool {tool.name} has no schema")
            if tool.endpoint is None:
                errors.append(f"Tool {tool.name} has no endpoint")
        return errors

    def export_config(self) -> Dict[str, Any]:
        errors = self.validate()
        return {
            "generation": self.stats(),
            "validation": {"valid": not errors, "errors": errors},
            "tools": self.registry.export_config()["tools"],
            "endpoints": self.catalog.stats(),
        }
