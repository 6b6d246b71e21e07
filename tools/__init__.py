# Tools module - Tool generation and registry
# Each tool: name, JSON schema, validated handler bound to one API operation
# Tools are generated from the catalog, never written by hand

from .schema import ParameterValidator, ValidationResult, build_validator
from .registry import Tool, ToolExamples, ToolRegistry, RegistryStats, RegistryState
from .factory import ToolFactory, tool_name_for, slugify, prepare_request
from .generator import ToolGenerator, GenerationOptions

__all__ = [
    "ParameterValidator",
    "ValidationResult",
    "build_validator",
    "Tool",
    "ToolExamples",
    "ToolRegistry",
    "RegistryStats",
    "RegistryState",
    "ToolFactory",
    "tool_name_for",
    "slugify",
    "prepare_request",
    "ToolGenerator",
    "GenerationOptions",
]
