"""Exceptions raised by k3sctl."""
from typing import List, Optional


class ProvisioningError(RuntimeError):
    """Raised when a provisioning step cannot complete."""
    pass


class CommandError(ProvisioningError):
    """Raised when a host command exits non-zero or cannot be started."""

    def __init__(self, args: List[str], returncode: Optional[int] = None, stderr: str = ""):
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command failed ({returncode}): {' '.join(self.command)}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)
