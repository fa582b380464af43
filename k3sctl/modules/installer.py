"""Retrieval of the upstream k3s install script."""
import logging

import requests

from ..errors import ProvisioningError

logger = logging.getLogger("k3sctl.installer")


def fetch_install_script(url: str, timeout: int = 30) -> str:
    """Download the k3s install script.

    Args:
        url: Location of the installer (normally https://get.k3s.io)
        timeout: Request timeout in seconds

    Returns:
        str: The script body

    Raises:
        ProvisioningError: If the script cannot be downloaded
    """
    logger.debug("Fetching installer from %s", url)
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ProvisioningError(f"Failed to fetch k3s installer from {url}: {e}") from e
    return response.text
