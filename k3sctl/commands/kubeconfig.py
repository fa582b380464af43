from pathlib import Path
from typing import Optional

import typer

from k3sctl.config import DEFAULT_NAT_PORT
from k3sctl.modules.kubeconfig import rewrite_server
from k3sctl.modules.models import NetworkMode

app = typer.Typer()


@app.command("rewrite")
def rewrite(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Kubeconfig to rewrite in place"),
    mode: NetworkMode = typer.Option(..., help="Network mode of the node"),
    node_ip: Optional[str] = typer.Option(None, help="Node IP (used in bridged mode)"),
    nat_port: int = typer.Option(DEFAULT_NAT_PORT, help="Forwarded API port (used in NAT mode)"),
):
    """Point a kubeconfig's server entry at the node."""
    original = path.read_text()
    updated = rewrite_server(original, mode, node_ip, nat_port)
    if updated == original:
        print(f"No change to {path}")
        return
    path.write_text(updated)
    print(f"✅ Updated server endpoint in {path}")
