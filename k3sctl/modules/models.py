"""Data models for the k3s provisioner."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class NetworkMode(str, Enum):
    """How clients reach the node's API server."""
    NAT = 'nat'
    BRIDGED = 'bridged'


class RunStatus(str, Enum):
    """Outcome of a provisioning run."""
    COMPLETED = 'completed'
    REBOOT_REQUIRED = 'reboot_required'


@dataclass
class CommandResult:
    """Result of a command executed on the host."""
    args: List[str]
    returncode: int
    stdout: str = ''
    stderr: str = ''

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class RunResult:
    """Tracks what a provisioning run did."""
    status: RunStatus = RunStatus.COMPLETED
    applied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    halted_at: str = ''
    reachable: bool = False

    def record_applied(self, name: str) -> None:
        """Record a step whose action ran."""
        self.applied.append(name)

    def record_skipped(self, name: str) -> None:
        """Record a step whose precondition already held."""
        self.skipped.append(name)

    def halt(self, name: str) -> None:
        """Mark the run as stopped for a reboot after step ``name``."""
        self.status = RunStatus.REBOOT_REQUIRED
        self.halted_at = name
