"""k3sctl - idempotent single-node k3s provisioning."""

__version__ = "0.1.0"
