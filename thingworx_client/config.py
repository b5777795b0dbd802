"""Client configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .auth import AuthParams

# Config file search paths (in order of precedence, last wins)
CONFIG_SEARCH_PATHS = [
    Path.home() / ".thingworx" / "client.yaml",  # User-level defaults
    Path(".thingworx.yaml"),  # Project-level overrides
]

# Config keys -> environment variables that override them
ENV_VARS = {
    "server_url": "TWX_SERVER_URL",
    "base_url": "TWX_BASE_URL",
    "app_key": "TWX_APP_KEY",
    "username": "TWX_USERNAME",
    "password": "TWX_PASSWORD",
    "timeout": "TWX_TIMEOUT",
    "verify_ssl": "TWX_VERIFY_SSL",
}


def _env_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("1", "true", "yes")


@dataclass
class ClientConfig:
    """
    Configuration for the thingworx client.

    Precedence (lowest to highest):
    1. Defaults
    2. ~/.thingworx/client.yaml
    3. .thingworx.yaml (project root)
    4. Explicit config file passed to load()
    5. Environment variables (TWX_*)
    6. Constructor arguments
    """
    # Server origin; empty means same origin as the caller
    server_url: str = field(
        default_factory=lambda: os.environ.get("TWX_SERVER_URL", "")
    )

    # Base for the relative URLs of a same-origin server (server_url "")
    base_url: str = field(
        default_factory=lambda: os.environ.get("TWX_BASE_URL", "")
    )

    # Authentication - either app_key, or username and password, or nothing
    app_key: str | None = field(
        default_factory=lambda: os.environ.get("TWX_APP_KEY")
    )
    username: str | None = field(
        default_factory=lambda: os.environ.get("TWX_USERNAME")
    )
    password: str | None = field(
        default_factory=lambda: os.environ.get("TWX_PASSWORD")
    )

    # Request timeout (seconds)
    timeout: float = field(
        default_factory=lambda: float(os.environ.get("TWX_TIMEOUT", "30"))
    )

    # Verify TLS certificates
    verify_ssl: bool = field(
        default_factory=lambda: _env_bool(os.environ.get("TWX_VERIFY_SSL", "true"))
    )

    def auth_params(self) -> AuthParams:
        """Authentication parameters described by this config."""
        return AuthParams(
            app_key=self.app_key,
            username=self.username,
            password=self.password,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClientConfig:
        """Create config from dictionary. Environment variables win over the dictionary."""
        merged = dict(data)
        for key, env_var in ENV_VARS.items():
            if env_var in os.environ:
                merged[key] = os.environ[env_var]

        return cls(
            server_url=merged.get("server_url", ""),
            base_url=merged.get("base_url", ""),
            app_key=merged.get("app_key"),
            username=merged.get("username"),
            password=merged.get("password"),
            timeout=float(merged.get("timeout", 30)),
            verify_ssl=_env_bool(merged.get("verify_ssl", True)),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> ClientConfig:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def load(cls, config_file: str | Path | None = None) -> ClientConfig:
        """
        Load config with auto-discovery.

        Search order (last wins):
        1. ~/.thingworx/client.yaml
        2. .thingworx.yaml
        3. Explicit config_file argument
        4. Environment variables always override file values
        """
        import yaml

        merged: dict[str, Any] = {}

        # Load from default paths
        for path in CONFIG_SEARCH_PATHS:
            if path.exists():
                with open(path, "r") as f:
                    data = yaml.safe_load(f) or {}
                merged.update(data)

        # Load explicit config file
        if config_file:
            with open(config_file, "r") as f:
                data = yaml.safe_load(f) or {}
            merged.update(data)

        return cls.from_dict(merged)
