"""
Catalog Models
--------------
Immutable descriptions of Evolution API operations and their parameters.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import re


class ParamType(str, Enum):
    """Declared parameter types."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    ANY = "any"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ParamType":
        """Unknown or missing declarations become ANY."""
        if value is None:
            return cls.ANY
        lowered = str(value).lower()
        if lowered == "integer":
            return cls.NUMBER
        try:
            return cls(lowered)
        except ValueError:
            return cls.ANY


class ParamLocation(str, Enum):
    """Where a parameter goes in the HTTP request."""
    PATH = "path"
    QUERY = "query"
    BODY = "body"
    HEADER = "header"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


class ControllerType(str, Enum):
    """Functional groups of the Evolution API."""
    INSTANCE = "instance"
    MESSAGE = "message"
    CHAT = "chat"
    GROUP = "group"
    PROFILE = "profile"
    WEBHOOK = "webhook"
    INFORMATION = "information"


ALL_CONTROLLERS: Tuple[str, ...] = tuple(c.value for c in ControllerType)

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


@dataclass(frozen=True)
class ParameterDescriptor:
    """One input of an operation."""
    name: str
    type: ParamType
    required: bool
    location: ParamLocation
    description: str = ""
    example: Any = None

    @property
    def has_example(self) -> bool:
        return self.example is not None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "type": self.type.value,
            "required": self.required,
            "location": self.location.value,
            "description": self.description,
        }
        if self.has_example:
            data["example"] = self.example
        return data


@dataclass(frozen=True)
class OperationDescriptor:
    """One remote HTTP operation, as listed in the catalog."""
    name: str
    path: str
    method: HttpMethod
    description: str
    controller: str
    parameters: Tuple[ParameterDescriptor, ...] = field(default_factory=tuple)
    requires_instance: bool = True

    def placeholders(self) -> List[str]:
        """Names of `{placeholder}` segments in the path, in order."""
        return _PLACEHOLDER.findall(self.path)

    def parameters_in(self, location: ParamLocation) -> List[ParameterDescriptor]:
        return [p for p in self.parameters if p.location is location]

    def parameter(self, name: str) -> Optional[ParameterDescriptor]:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "method": self.method.value,
            "description": self.description,
            "controller": self.controller,
            "requiresInstance": self.requires_instance,
            "parameters": [p.to_dict() for p in self.parameters],
        }
