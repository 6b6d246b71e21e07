# Catalog module - Static description of the Evolution API
# Operations are data; tools are generated from them

from .models import (
    ParamType, ParamLocation, HttpMethod, ControllerType, ALL_CONTROLLERS,
    ParameterDescriptor, OperationDescriptor,
)
from .catalog import EndpointCatalog, DEFAULT_CATALOG_PATH, parse_endpoint

__all__ = [
    "ParamType", "ParamLocation", "HttpMethod", "ControllerType", "ALL_CONTROLLERS",
    "ParameterDescriptor", "OperationDescriptor",
    "EndpointCatalog", "DEFAULT_CATALOG_PATH", "parse_endpoint",
]
