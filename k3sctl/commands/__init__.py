from . import kubeconfig, network, node

__all__ = ['kubeconfig', 'network', 'node']
