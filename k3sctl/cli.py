import logging

import typer

from k3sctl.commands import kubeconfig, network, node
from k3sctl.logging import setup_logging

app = typer.Typer(help="Provision and inspect a single-node k3s host.")

# Add all command groups
app.add_typer(node.app, name="node", help="Provision and check this node")
app.add_typer(network.app, name="network", help="Network mode detection")
app.add_typer(kubeconfig.app, name="kubeconfig", help="Kubeconfig post-processing")


# Global options callback
@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """k3sctl - single-node k3s provisioning CLI."""
    setup_logging(debug)
    if debug:
        logging.debug("Debug mode enabled")
