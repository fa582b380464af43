from k3sctl.modules.kubeconfig import rewrite_server
from k3sctl.modules.models import NetworkMode

KUBECONFIG = """apiVersion: v1
clusters:
- cluster:
    server: https://203.0.113.5:6443
  name: default
"""


def test_nat_rewrites_to_loopback():
    out = rewrite_server(KUBECONFIG, NetworkMode.NAT, nat_port=6443)
    assert "    server: https://127.0.0.1:6443\n" in out
    assert "203.0.113.5" not in out


def test_nat_uses_forwarded_port():
    out = rewrite_server(KUBECONFIG, NetworkMode.NAT, node_ip="192.168.1.50", nat_port=16443)
    assert "server: https://127.0.0.1:16443" in out


def test_bridged_rewrites_to_node_ip():
    out = rewrite_server(KUBECONFIG, NetworkMode.BRIDGED, node_ip="192.168.1.50")
    assert "    server: https://192.168.1.50:6443\n" in out


def test_single_line():
    line = "server: https://203.0.113.5:6443"
    assert rewrite_server(line, NetworkMode.NAT, nat_port=6443) == "server: https://127.0.0.1:6443"
    assert rewrite_server(line, NetworkMode.BRIDGED, "192.168.1.50") == "server: https://192.168.1.50:6443"


def test_missing_server_line_is_noop():
    text = "apiVersion: v1\nkind: Config\n"
    assert rewrite_server(text, NetworkMode.NAT) == text


def test_bridged_without_ip_is_noop():
    assert rewrite_server(KUBECONFIG, NetworkMode.BRIDGED, node_ip=None) == KUBECONFIG


def test_other_ports_untouched():
    text = "server: https://203.0.113.5:8443\n"
    assert rewrite_server(text, NetworkMode.NAT) == text
