"""
Endpoint Catalog
----------------
Static list of Evolution API operations, loaded from YAML.

The catalog is read once and never mutated; lookups return the same
immutable OperationDescriptor objects.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
import logging

import yaml

from core.errors import ConfigurationLoadError, UnknownEndpointError
from .models import (
    HttpMethod, OperationDescriptor, ParamLocation, ParamType, ParameterDescriptor,
)


DEFAULT_CATALOG_PATH = Path(__file__).parent / "endpoints.yaml"

INSTANCE_PARAMETER = ParameterDescriptor(
    name="instance",
    type=ParamType.STRING,
    required=True,
    location=ParamLocation.PATH,
    description="Instance name",
)


class EndpointCatalog:
    """Read-only set of OperationDescriptors keyed by name."""

    def __init__(self, endpoints: Iterable[OperationDescriptor] = ()):
        self._endpoints: Dict[str, OperationDescriptor] = {}
        for endpoint in endpoints:
            if endpoint.name in self._endpoints:
                raise ValueError(f"Duplicate endpoint name: {endpoint.name}")
            self._endpoints[endpoint.name] = endpoint

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "EndpointCatalog":
        """Load a catalog file (defaults to the bundled Evolution API catalog)."""
        catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
        try:
            with open(catalog_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationLoadError(f"Failed to load endpoint catalog {catalog_path}: {e}")

        try:
            endpoints = [parse_endpoint(item) for item in data.get("endpoints", [])]
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationLoadError(f"Invalid endpoint catalog {catalog_path}: {e}")

        logging.getLogger("evolution.catalog").debug(
            f"Loaded {len(endpoints)} endpoints from {catalog_path}"
        )
        return cls(endpoints)

    def all(self) -> List[OperationDescriptor]:
        return list(self._endpoints.values())

    def get(self, name: str) -> Optional[OperationDescriptor]:
        return self._endpoints.get(name)

    def require(self, name: str) -> OperationDescriptor:
        endpoint = self._endpoints.get(name)
        if endpoint is None:
            raise UnknownEndpointError(name)
        return endpoint

    def by_controller(self, controller: str) -> List[OperationDescriptor]:
        return [e for e in self._endpoints.values() if e.controller == controller]

    def controllers(self) -> List[str]:
        """Controllers in first-seen order."""
        seen: List[str] = []
        for endpoint in self._endpoints.values():
            if endpoint.controller not in seen:
                seen.append(endpoint.controller)
        return seen

    def search(self, query: str) -> List[OperationDescriptor]:
        """Case-insensitive match on name, description or path."""
        needle = query.lower()
        return [
            e for e in self._endpoints.values()
            if needle in e.name.lower()
            or needle in e.description.lower()
            or needle in e.path.lower()
        ]

    def instance_required(self) -> List[OperationDescriptor]:
        return [e for e in self._endpoints.values() if e.requires_instance]

    def stats(self) -> Dict[str, Any]:
        by_controller: Dict[str, int] = {}
        by_method: Dict[str, int] = {}
        for endpoint in self._endpoints.values():
            by_controller[endpoint.controller] = by_controller.get(endpoint.controller, 0) + 1
            by_method[endpoint.method.value] = by_method.get(endpoint.method.value, 0) + 1

        requiring = len(self.instance_required())
        return {
            "total": len(self._endpoints),
            "by_controller": by_controller,
            "by_method": by_method,
            "requires_instance": requiring,
            "global": len(self._endpoints) - requiring,
        }

    def validate(self) -> List[str]:
        """Consistency problems, one message per violation."""
        errors = []
        for endpoint in self._endpoints.values():
            for attr in ("name", "path", "description", "controller"):
                if not getattr(endpoint, attr):
                    errors.append(f"Endpoint {endpoint.name or '?'} is missing {attr}")

            path_params = {p.name for p in endpoint.parameters_in(ParamLocation.PATH)}
            for placeholder in endpoint.placeholders():
                if placeholder not in path_params:
                    errors.append(
                        f"Endpoint {endpoint.name} has placeholder {{{placeholder}}} "
                        f"without a path parameter"
                    )

            names = [p.name for p in endpoint.parameters]
            for dup in sorted({n for n in names if names.count(n) > 1}):
                errors.append(f"Endpoint {endpoint.name} declares parameter {dup} twice")
        return errors

    def __len__(self) -> int:
        return len(self._endpoints)

    def __contains__(self, name: str) -> bool:
        return name in self._endpoints

    def __iter__(self):
        return iter(self._endpoints.values())


def parse_parameter(data: Mapping[str, Any]) -> ParameterDescriptor:
    return ParameterDescriptor(
        name=str(data["name"]),
        type=ParamType.parse(data.get("type")),
        required=bool(data.get("required", True)),
        location=ParamLocation(str(data.get("location", "body")).lower()),
        description=str(data.get("description", "")),
        example=data.get("example"),
    )


def parse_endpoint(data: Mapping[str, Any]) -> OperationDescriptor:
    """Build one descriptor from a catalog entry."""
    params = [parse_parameter(p) for p in data.get("parameters") or []]
    requires_instance = bool(data.get("requires_instance", True))
    path = str(data["path"])

    if requires_instance and "{instance}" in path and not any(p.name == "instance" for p in params):
        params.insert(0, INSTANCE_PARAMETER)

    return OperationDescriptor(
        name=str(data["name"]),
        path=path,
        method=HttpMethod(str(data["method"]).upper()),
        description=str(data.get("description", "")),
        controller=str(data["controller"]),
        parameters=tuple(params),
        requires_instance=requires_instance,
    )
