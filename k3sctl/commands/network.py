import logging
from typing import Optional

import typer
from pydantic import ValidationError

from k3sctl.config import RunConfig
from k3sctl.modules.host import Host
from k3sctl.modules.network import detect_gateway, detect_ip, detect_mode

app = typer.Typer()
logger = logging.getLogger("k3sctl.commands.network")


@app.command("detect")
def detect(
    node_ip: Optional[str] = typer.Argument(None, help="Node IP (detected when omitted)"),
):
    """Show the node IP, default gateway and network mode."""
    try:
        config = RunConfig.from_env(node_ip)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(code=1)

    host = Host()
    ip = config.node_ip or detect_ip(host)
    mode = detect_mode(host, ip, config.force_mode)
    print(f"Node IP: {ip or 'unknown'}")
    if config.force_mode is None:
        print(f"Gateway: {detect_gateway(host) or 'unknown'}")
    print(f"Network mode: {mode.value}")
