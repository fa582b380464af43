"""Configuration management for k3sctl.

Values are resolved with the following precedence:
1. Explicitly passed parameters (CLI arguments)
2. Environment variables (optionally loaded from a .env file)
3. Default values
"""
import ipaddress
import os
import socket
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .modules.models import NetworkMode

# Load environment variables from .env file if it exists
load_dotenv()

DEFAULT_NAT_PORT = 6443
DEFAULT_INSTALL_URL = "https://get.k3s.io"
DEFAULT_KUBECONFIG = "~/.kube/config"
DEFAULT_INSTALL_TIMEOUT = 30


def env(name: str, default: str = "") -> str:
    """Return an environment variable, treating an empty value as unset."""
    return os.getenv(name) or default


class Config:
    """Environment-derived logging settings."""

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


class RunConfig(BaseModel):
    """Immutable input to a provisioning run."""
    model_config = ConfigDict(frozen=True)

    node_ip: Optional[str] = Field(
        default=None,
        description="Explicit node IP; detected from the routing table when unset"
    )
    force_mode: Optional[NetworkMode] = Field(
        default=None,
        description="Skip detection and use this network mode"
    )
    nat_port: int = Field(
        default=DEFAULT_NAT_PORT,
        ge=1,
        le=65535,
        description="Host port forwarded to the API server under NAT"
    )
    k3s_version: Optional[str] = Field(
        default=None,
        description="Pinned k3s version passed to the installer"
    )
    hostname: str = Field(default_factory=socket.gethostname)
    kubeconfig_path: Path = Field(default=Path(DEFAULT_KUBECONFIG), validate_default=True)
    install_url: str = DEFAULT_INSTALL_URL
    install_timeout: int = Field(default=DEFAULT_INSTALL_TIMEOUT, gt=0)
    upgrade: bool = False
    dry_run: bool = False

    @field_validator('node_ip', 'k3s_version', mode='before')
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Treat empty strings as unset, as the shell environment does."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('force_mode', mode='before')
    @classmethod
    def normalize_mode(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v

    @field_validator('node_ip')
    @classmethod
    def validate_node_ip(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            ipaddress.IPv4Address(v)
        return v

    @field_validator('kubeconfig_path')
    @classmethod
    def expand_kubeconfig(cls, v: Path) -> Path:
        """Expand the user home directory in the kubeconfig path."""
        return Path(os.path.expanduser(str(v)))

    @classmethod
    def from_env(cls, node_ip: Optional[str] = None, **overrides: Any) -> 'RunConfig':
        """Build a run configuration from the environment plus explicit overrides."""
        data: dict = {
            "node_ip": node_ip,
            "force_mode": env("FORCE_MODE"),
            "nat_port": env("NAT_PORT", str(DEFAULT_NAT_PORT)),
            "k3s_version": env("K3S_VERSION"),
            "kubeconfig_path": env("KUBECONFIG_PATH", DEFAULT_KUBECONFIG),
            "install_url": env("K3S_INSTALL_URL", DEFAULT_INSTALL_URL),
            "install_timeout": env("INSTALL_TIMEOUT", str(DEFAULT_INSTALL_TIMEOUT)),
        }
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)
