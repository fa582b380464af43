"""Control plane reachability checks."""
import logging
from pathlib import Path
from typing import List, Union

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

logger = logging.getLogger("k3sctl.health")


def list_nodes(kubeconfig: Union[str, Path], timeout: int = 5) -> List[str]:
    """Return the names of the nodes the API server reports."""
    api_client = config.new_client_from_config(config_file=str(kubeconfig))
    try:
        v1 = client.CoreV1Api(api_client)
        nodes = v1.list_node(_request_timeout=timeout).items
        return [node.metadata.name for node in nodes]
    finally:
        api_client.close()


def is_reachable(kubeconfig: Union[str, Path], timeout: int = 5) -> bool:
    """Check whether the control plane answers with the given kubeconfig.

    Any failure to load the kubeconfig or reach the API server counts as
    unreachable.
    """
    try:
        names = list_nodes(kubeconfig, timeout=timeout)
    except (ApiException, ConfigException, HTTPError, OSError) as e:
        logger.debug("Control plane not reachable: %s", e)
        return False
    logger.debug("Nodes: %s", ", ".join(names) or "none")
    return True
