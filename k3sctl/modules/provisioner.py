"""Step sequencing for a provisioning run."""
import logging
from typing import Callable, Optional, Sequence

from ..config import RunConfig
from .health import is_reachable
from .host import Host
from .installer import fetch_install_script
from .models import RunResult
from .steps import Context, Step, build_steps

logger = logging.getLogger("k3sctl.provisioner")


class Provisioner:
    """Runs the provisioning steps in order.

    A step whose precondition holds is skipped. Otherwise its action runs,
    and if the step requires a reboot the run stops right after it. Action
    failures propagate to the caller; nothing is rolled back.
    """

    def __init__(
        self,
        config: RunConfig,
        host: Optional[Host] = None,
        steps: Optional[Sequence[Step]] = None,
        probe: Callable[..., bool] = is_reachable,
        fetch_script: Callable[[str, int], str] = fetch_install_script,
    ):
        """Initialize the provisioner.

        Args:
            config: Immutable run configuration
            host: Host to provision (default: the local machine)
            steps: Step sequence (default: :func:`build_steps`)
            probe: Reachability check called with the kubeconfig path
            fetch_script: Downloads the k3s installer
        """
        self.config = config
        self.host = host or Host(dry_run=config.dry_run)
        self.steps = list(steps) if steps is not None else build_steps()
        self.probe = probe
        self.fetch_script = fetch_script

    def run(self) -> RunResult:
        """Run every step and finish with a reachability check.

        Returns:
            RunResult: REBOOT_REQUIRED if a step stopped the run, else COMPLETED

        Raises:
            ProvisioningError: If a step action fails
        """
        ctx = Context(self.config, self.host, fetch_script=self.fetch_script)
        result = RunResult()

        for step in self.steps:
            if step.is_satisfied(ctx):
                logger.debug("Skipping %s (already satisfied)", step.name)
                result.record_skipped(step.name)
                continue

            logger.info("Running step %s: %s", step.name, step.description or step.name)
            step.apply(ctx)
            result.record_applied(step.name)

            if step.requires_reboot:
                logger.warning("Reboot required after %s. Re-run after reboot.", step.name)
                result.halt(step.name)
                return result

        if self.config.dry_run:
            logger.info("[DRY RUN] Skipping reachability check")
            return result

        result.reachable = self.check()
        return result

    def check(self) -> bool:
        """Return whether the control plane answers; only warns on failure."""
        if self.probe(self.config.kubeconfig_path):
            logger.info("k3s is reachable.")
            return True
        logger.warning("k3s not ready yet. Check: journalctl -u k3s -f")
        return False
