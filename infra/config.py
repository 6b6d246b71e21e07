"""
Configuration
-------------
Resolved server configuration, validated once at startup.

Sources in priority order:
1. Environment variables (and a .env file via python-dotenv)
2. YAML or JSON config file
3. Defaults
"""

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
import json
import logging
import os

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core import __version__
from core.errors import ConfigurationLoadError
from core.retry import RetryPolicy


DEFAULT_CONFIG_FILES = (
    "evolution-config.yaml",
    "evolution-config.json",
    ".evolution-api-mcp.yaml",
)

# env var -> config field
ENV_MAPPING: Dict[str, str] = {
    "EVOLUTION_URL": "base_url",
    "EVOLUTION_API_KEY": "api_key",
    "HTTP_TIMEOUT": "timeout_ms",
    "RETRY_ATTEMPTS": "retry_attempts",
    "RETRY_DELAY": "retry_delay_ms",
    "MAX_RETRY_DELAY": "max_retry_delay_ms",
    "MCP_SERVER_NAME": "server_name",
    "MCP_SERVER_VERSION": "server_version",
    "EVOLUTION_LOGGING": "logging_enabled",
    "EVOLUTION_TOOL_PREFIX": "tool_prefix",
    "EVOLUTION_CONTROLLERS": "controllers",
}

REQUIRED_ENV_VARS = ("EVOLUTION_URL", "EVOLUTION_API_KEY")


def _split_list(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class ServerConfig(BaseModel):
    """Everything the server needs to talk to one Evolution API."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    base_url: str
    api_key: str = Field(min_length=1)
    timeout_ms: int = Field(default=30000, gt=0)
    retry_attempts: int = Field(default=3, ge=0, le=10)
    retry_delay_ms: int = Field(default=1000, gt=0)
    max_retry_delay_ms: int = Field(default=30000, gt=0)
    logging_enabled: bool = False
    server_name: str = "evolution-api-mcp"
    server_version: str = __version__
    tool_prefix: str = ""
    controllers: Optional[List[str]] = None
    include_endpoints: List[str] = Field(default_factory=list)
    exclude_endpoints: List[str] = Field(default_factory=list)

    @field_validator("base_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("must be an http:// or https:// URL")
        return value.rstrip("/")

    @field_validator("api_key")
    @classmethod
    def _check_api_key(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("controllers", "include_endpoints", "exclude_endpoints", mode="before")
    @classmethod
    def _parse_lists(cls, value: Any) -> Any:
        return _split_list(value)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.retry_attempts,
            initial_delay_ms=self.retry_delay_ms,
            max_delay_ms=self.max_retry_delay_ms,
        )

    def masked(self) -> Dict[str, Any]:
        """Config values safe to print."""
        data = self.model_dump()
        key = data["api_key"]
        data["api_key"] = f"{key[:4]}***" if len(key) > 4 else "***"
        return data


class ConfigManager:
    """
    Loads and caches the ServerConfig.

    Pass `env` to resolve from an explicit mapping instead of the process
    environment (no .env file is read in that case).
    """

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
        search_dir: Optional[Union[str, Path]] = None,
    ):
        self._config_path = Path(config_path) if config_path else None
        self._env = env
        self._search_dir = Path(search_dir) if search_dir else Path.cwd()
        self._config: Optional[ServerConfig] = None
        self._logger = logging.getLogger("evolution.infra.config")

    def load(self) -> ServerConfig:
        if self._config is not None:
            return self._config

        values: Dict[str, Any] = {}
        values.update(self._load_file())
        values.update(self._load_env())

        try:
            self._config = ServerConfig(**values)
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise ConfigurationLoadError(
                "Invalid configuration:\n  " + "\n  ".join(errors)
                + f"\nRequired environment variables: {', '.join(REQUIRED_ENV_VARS)}",
                errors,
            )

        self._logger.info(f"Configuration loaded for {self._config.base_url}")
        return self._config

    def reload(self) -> ServerConfig:
        self._config = None
        return self.load()

    def find_config_file(self) -> Optional[Path]:
        if self._config_path is not None:
            return self._config_path
        for name in DEFAULT_CONFIG_FILES:
            candidate = self._search_dir / name
            if candidate.is_file():
                return candidate
        return None

    def _load_file(self) -> Dict[str, Any]:
        path = self.find_config_file()
        if path is None:
            return {}
        if not path.is_file():
            raise ConfigurationLoadError(f"Config file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationLoadError(f"Failed to parse config file {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationLoadError(f"Config file {path} must contain a mapping")

        self._logger.debug(f"Loaded config file {path}")
        return data

    def _load_env(self) -> Dict[str, Any]:
        if self._env is None:
            load_dotenv()
            env: Mapping[str, str] = os.environ
        else:
            env = self._env

        values = {}
        for var, field_name in ENV_MAPPING.items():
            value = env.get(var)
            if value is not None and value != "":
                values[field_name] = value
        return values


def load_config(config_path: Optional[Union[str, Path]] = None) -> ServerConfig:
    """Resolve configuration from the process environment and files."""
    return ConfigManager(config_path).load()
