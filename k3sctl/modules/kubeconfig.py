"""Kubeconfig post-processing."""
import logging
import re
from typing import Optional

from .models import NetworkMode

logger = logging.getLogger("k3sctl.kubeconfig")

API_PORT = 6443
LOOPBACK = '127.0.0.1'
SERVER_PATTERN = re.compile(r'server: https://.*:%d' % API_PORT)


def server_url(mode: NetworkMode, node_ip: Optional[str], nat_port: int = API_PORT) -> Optional[str]:
    """Return the API server URL clients should use, or None if unknown."""
    if mode == NetworkMode.NAT:
        return f'https://{LOOPBACK}:{nat_port}'
    if node_ip:
        return f'https://{node_ip}:{API_PORT}'
    return None


def rewrite_server(text: str, mode: NetworkMode, node_ip: Optional[str] = None, nat_port: int = API_PORT) -> str:
    """Point the ``server:`` entry of a kubeconfig at the right endpoint.

    Under NAT the server becomes the loopback address on the forwarded
    port; when bridged it becomes the node IP on the API port. Text
    without a matching server line, or bridged without a node IP, is
    returned unchanged.
    """
    url = server_url(mode, node_ip, nat_port)
    if url is None:
        logger.debug("No node IP known, leaving server endpoint as is")
        return text
    rewritten, count = SERVER_PATTERN.subn(f'server: {url}', text)
    if not count:
        logger.debug("No server entry found in kubeconfig")
    return rewritten
