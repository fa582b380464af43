import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from k3sctl.config import RunConfig
from k3sctl.errors import ProvisioningError
from k3sctl.modules.models import RunStatus
from k3sctl.modules.provisioner import Provisioner

app = typer.Typer()
logger = logging.getLogger("k3sctl.commands.node")


@app.command("setup")
def setup_node(
    node_ip: Optional[str] = typer.Argument(None, help="Node IP (detected when omitted)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log mutating commands without running them"),
    upgrade: bool = typer.Option(False, "--upgrade", help="Re-run the k3s installer even if k3s is present"),
    kubeconfig: Optional[Path] = typer.Option(None, help="Where to write the client kubeconfig"),
):
    """Provision k3s on this host. Safe to rerun anytime."""
    try:
        config = RunConfig.from_env(node_ip, dry_run=dry_run, upgrade=upgrade, kubeconfig_path=kubeconfig)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(code=1)

    try:
        result = Provisioner(config).run()
    except (ProvisioningError, OSError) as e:
        logger.error(f"Setup failed: {e}", exc_info=logger.isEnabledFor(logging.DEBUG))
        raise typer.Exit(code=1)

    if result.status == RunStatus.REBOOT_REQUIRED:
        print(f"⚠️  Reboot required after '{result.halted_at}'. Re-run after reboot.")
        return
    print("✅ Setup complete. Safe to rerun anytime.")


@app.command("status")
def node_status(
    kubeconfig: Optional[Path] = typer.Option(None, help="Kubeconfig to check with"),
):
    """Check whether the k3s API server is reachable."""
    try:
        config = RunConfig.from_env(kubeconfig_path=kubeconfig)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(code=1)

    if Provisioner(config).check():
        print(f"✅ k3s is reachable with {config.kubeconfig_path}")
    else:
        print("❌ k3s not ready yet. Check: journalctl -u k3s -f")
        raise typer.Exit(code=1)
