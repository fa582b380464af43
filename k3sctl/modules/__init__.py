"""
Host provisioning modules.

- host: command execution and file access on the local machine
- network: node IP and network mode detection
- steps: the idempotent provisioning steps
- provisioner: step sequencing
- kubeconfig: server endpoint rewriting
- health: control plane reachability
- installer: k3s install script retrieval
- models: data models and types
"""
