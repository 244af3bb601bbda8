"""
Shared configuration management for the JWKS Configurator.
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Host deployment default when no properties file or explicit base is configured
DEFAULT_JWKS_BASE_PATH = "/opt/nifi/nifi-current/conf"


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CONFIGURATOR_",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Host orchestration runtime REST API
    host_api_url: str = Field(default="http://localhost:8080")
    host_connect_timeout: float = Field(default=5.0)
    host_read_timeout: float = Field(default=10.0)
    component_info_path: str = Field(default="/nifi-api/processors/jwt/component-info")

    # JWKS validation
    api_prefix: str = Field(default="/nifi-api/processors/jwt")
    jwks_connect_timeout: float = Field(default=5.0)
    jwks_total_timeout: float = Field(default=10.0)
    jwks_allowed_base_path: Optional[str] = Field(default=None)
    host_properties_file_path: Optional[str] = Field(default=None)
    allow_private_addresses: bool = Field(default=False)
    max_request_body_bytes: int = Field(default=1024 * 1024)

    def resolve_jwks_base_path(self) -> Path:
        """Return the directory every file-backed JWKS must live under.

        The host's properties directory wins, then the explicit base path,
        then the deployment default.
        """
        if self.host_properties_file_path and self.host_properties_file_path.strip():
            parent = Path(self.host_properties_file_path.strip()).parent
            if str(parent) not in ("", "."):
                return Path(_normalize(str(parent)))

        if self.jwks_allowed_base_path and self.jwks_allowed_base_path.strip():
            return Path(_normalize(self.jwks_allowed_base_path.strip()))

        return Path(_normalize(DEFAULT_JWKS_BASE_PATH))


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)


def _normalize(path: str) -> str:
    return os.path.normpath(os.path.abspath(path))
