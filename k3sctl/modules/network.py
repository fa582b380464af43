"""Node IP and network mode detection.

A node is in NAT mode when it sits behind the user-mode NAT of a
hypervisor (VirtualBox, QEMU slirp): clients then reach the API server
through a forwarded port on loopback. Anything else is treated as bridged.
"""
import ipaddress
import logging
from typing import Optional

from .host import Host
from .models import NetworkMode

logger = logging.getLogger("k3sctl.network")

NAT_SUBNET = ipaddress.ip_network('10.0.2.0/24')
NAT_GATEWAY = '10.0.2.2'
ROUTE_PROBE_ADDRESS = '1.1.1.1'


def _field_after(tokens, keyword: str) -> Optional[str]:
    try:
        return tokens[tokens.index(keyword) + 1]
    except (ValueError, IndexError):
        return None


def detect_ip(host: Host) -> Optional[str]:
    """Return the source address the host would use to reach the internet.

    Returns:
        The IPv4 address, or None if there is no route
    """
    result = host.query(['ip', '-4', 'route', 'get', ROUTE_PROBE_ADDRESS])
    if not result.ok:
        logger.debug("No route to %s: %s", ROUTE_PROBE_ADDRESS, result.stderr.strip())
        return None
    return _field_after(result.stdout.split(), 'src')


def detect_gateway(host: Host) -> Optional[str]:
    """Return the default gateway from the routing table, or None."""
    result = host.query(['ip', 'route'])
    if not result.ok:
        return None
    for line in result.stdout.splitlines():
        tokens = line.split()
        if tokens and tokens[0] == 'default':
            return _field_after(tokens, 'via')
    return None


def classify(ip: Optional[str], gateway: Optional[str]) -> NetworkMode:
    """Classify a node from its address and default gateway.

    Missing values never match, so a host whose routes cannot be
    resolved is classified as bridged.
    """
    if ip:
        try:
            if ipaddress.ip_address(ip) in NAT_SUBNET:
                return NetworkMode.NAT
        except ValueError:
            logger.warning("Ignoring unparsable node IP %r", ip)
    if gateway == NAT_GATEWAY:
        return NetworkMode.NAT
    return NetworkMode.BRIDGED


def detect_mode(
    host: Host,
    node_ip: Optional[str] = None,
    force_mode: Optional[NetworkMode] = None,
) -> NetworkMode:
    """Determine the network mode, honouring an explicit override.

    Args:
        host: Host used to read the routing table
        node_ip: Explicit node IP; detected when None
        force_mode: Returned as-is without any detection when set

    Returns:
        NetworkMode
    """
    if force_mode is not None:
        logger.debug("Network mode forced to %s", force_mode.value)
        return NetworkMode(force_mode)

    ip = node_ip or detect_ip(host)
    gateway = detect_gateway(host)
    mode = classify(ip, gateway)
    logger.debug("Classified ip=%s gateway=%s as %s", ip, gateway, mode.value)
    return mode
