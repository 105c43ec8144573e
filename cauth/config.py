"""
CAuth Configuration
===================
Settings for the authorization gate, read from the environment.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


SERVICE_NAME = os.getenv("SERVICE_NAME", "cauth-gate")

DEFAULT_DELEGATION_TIMEOUT = 5.0
DEFAULT_MAX_KEEPALIVE = 32
DEFAULT_MAX_CONNECTIONS = 100


@dataclass
class CAuthConfig:
    """Configuration for the gate and its delegation client."""
    rules_file: Optional[str] = None
    delegation_timeout: float = DEFAULT_DELEGATION_TIMEOUT
    max_keepalive_connections: int = DEFAULT_MAX_KEEPALIVE
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    case_sensitive_paths: bool = True
    service_name: str = SERVICE_NAME
    log_level: str = "INFO"
    log_json: bool = True
    configure_logging: bool = True

    @classmethod
    def from_env(cls) -> "CAuthConfig":
        """Build a config from CAUTH_* environment variables."""
        return cls(
            rules_file=os.getenv("CAUTH_RULES_FILE") or None,
            delegation_timeout=float(
                os.getenv("CAUTH_DELEGATION_TIMEOUT", str(DEFAULT_DELEGATION_TIMEOUT))
            ),
            max_keepalive_connections=int(
                os.getenv("CAUTH_MAX_KEEPALIVE", str(DEFAULT_MAX_KEEPALIVE))
            ),
            max_connections=int(
                os.getenv("CAUTH_MAX_CONNECTIONS", str(DEFAULT_MAX_CONNECTIONS))
            ),
            case_sensitive_paths=_env_bool("CAUTH_CASE_SENSITIVE_PATHS", "true"),
            service_name=os.getenv("SERVICE_NAME", SERVICE_NAME),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=_env_bool("LOG_JSON", "true"),
            configure_logging=_env_bool("CAUTH_CONFIGURE_LOGGING", "true"),
        )
