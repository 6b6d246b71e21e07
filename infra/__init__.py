# Infrastructure module - Configuration and logging
# Config is resolved once at startup; logs never go to stdout

from .config import ServerConfig, ConfigManager, load_config, ENV_MAPPING
from .logging import (
    get_logger, configure_logging, RequestContext,
    get_request_id, generate_request_id, log_call_end,
)

__all__ = [
    # Config
    "ServerConfig",
    "ConfigManager",
    "load_config",
    "ENV_MAPPING",
    # Logging
    "get_logger",
    "configure_logging",
    "RequestContext",
    "get_request_id",
    "generate_request_id",
    "log_call_end",
]
