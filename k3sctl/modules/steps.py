"""Provisioning steps for a single-node k3s host.

Each step pairs a side-effect-free precondition with an action. The action
only runs when the precondition is false, so running the whole sequence
twice is safe: the second pass finds every precondition satisfied.
"""

import logging
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Callable, List, Optional

import yaml

from ..config import RunConfig
from ..errors import ProvisioningError
from .host import Host
from .installer import fetch_install_script
from .kubeconfig import rewrite_server
from .models import NetworkMode
from .network import detect_ip, detect_mode

logger = logging.getLogger("k3sctl.steps")

K3S_BINARY = Path('/usr/local/bin/k3s')
K3S_CONFIG_DIR = Path('/etc/rancher/k3s')
K3S_CONFIG_FILE = K3S_CONFIG_DIR / 'config.yaml'
K3S_KUBECONFIG = K3S_CONFIG_DIR / 'k3s.yaml'
MODULES_LOAD_FILE = Path('/etc/modules-load.d/kubernetes.conf')
SYSCTL_FILE = Path('/etc/sysctl.d/90-kubernetes.conf')
SYS_MODULE_DIR = Path('/sys/module')

KERNEL_MODULES = ('br_netfilter', 'overlay')
SYSCTL_SETTINGS = (
    ('net.ipv4.ip_forward', '1'),
    ('net.bridge.bridge-nf-call-iptables', '1'),
    ('net.bridge.bridge-nf-call-ip6tables', '1'),
)
SELINUX_PACKAGES = ('container-selinux', 'policycoreutils-python-utils')
REQUIRED_PACKAGE = 'openssh'
CONFLICTING_PACKAGE = 'zram-generator-defaults'
K3S_SELINUX_TYPE = 'container_runtime_exec_t'


@dataclass
class Context:
    """Everything a step may look at: the run configuration and the host.

    Network detection happens at most once per run, the first time a step
    needs the node IP or mode.
    """
    config: RunConfig
    host: Host
    fetch_script: Callable[[str, int], str] = fetch_install_script

    @cached_property
    def node_ip(self) -> Optional[str]:
        ip = self.config.node_ip or detect_ip(self.host)
        if not ip:
            logger.warning("Could not determine node IP")
        return ip

    @cached_property
    def mode(self) -> NetworkMode:
        mode = detect_mode(self.host, self.node_ip, self.config.force_mode)
        logger.info("Network mode: %s, node IP: %s", mode.value, self.node_ip or "unknown")
        return mode


@dataclass
class Step:
    """A single idempotent provisioning step."""
    name: str
    is_satisfied: Callable[[Context], bool]
    apply: Callable[[Context], None]
    requires_reboot: bool = False
    description: str = field(default='', compare=False)


def package_installed(host: Host, package: str) -> bool:
    return host.succeeds(['rpm', '-q', package])


def install_packages(host: Host, packages: List[str]) -> None:
    host.run(['transactional-update', 'pkg', 'install', '-y'] + list(packages), sudo=True)


# -------------------------------
# Packages (reboot required)
# -------------------------------

def _selinux_packages_present(ctx: Context) -> bool:
    return all(package_installed(ctx.host, p) for p in SELINUX_PACKAGES)


def _install_selinux_packages(ctx: Context) -> None:
    missing = [p for p in SELINUX_PACKAGES if not package_installed(ctx.host, p)]
    logger.info("Installing %s...", ", ".join(missing))
    install_packages(ctx.host, missing)


def _openssh_present(ctx: Context) -> bool:
    return package_installed(ctx.host, REQUIRED_PACKAGE)


def _install_openssh(ctx: Context) -> None:
    logger.info("Installing %s...", REQUIRED_PACKAGE)
    install_packages(ctx.host, [REQUIRED_PACKAGE])


def _zram_absent(ctx: Context) -> bool:
    return not package_installed(ctx.host, CONFLICTING_PACKAGE)


def _remove_zram(ctx: Context) -> None:
    logger.info("Removing zram swap generator...")
    ctx.host.run(['transactional-update', 'pkg', 'remove', '-y', CONFLICTING_PACKAGE], sudo=True)


# -------------------------------
# Kernel modules & sysctl
# -------------------------------

def modules_load_content() -> str:
    return ''.join(f'{m}\n' for m in KERNEL_MODULES)


def sysctl_content() -> str:
    return ''.join(f'{k}={v}\n' for k, v in SYSCTL_SETTINGS)


def module_active(host: Host, module: str) -> bool:
    """Loaded modules and modules built into the kernel both appear under /sys/module."""
    return host.path_exists(SYS_MODULE_DIR / module)


def pending_modules(host: Host) -> List[str]:
    """Return the modules that are not active but could be loaded now.

    Modules modprobe cannot find are left to the modules-load.d entry, so an
    unavailable module does not keep the step pending.
    """
    pending = []
    for module in KERNEL_MODULES:
        if module_active(host, module):
            continue
        if host.succeeds(['modprobe', '-n', '-q', module]):
            pending.append(module)
        else:
            logger.debug("Kernel module %s not available", module)
    return pending


def _kernel_modules_ready(ctx: Context) -> bool:
    if ctx.host.read_file(MODULES_LOAD_FILE) != modules_load_content():
        return False
    return not pending_modules(ctx.host)


def _configure_kernel_modules(ctx: Context) -> None:
    if ctx.host.read_file(MODULES_LOAD_FILE) != modules_load_content():
        logger.info("Writing %s", MODULES_LOAD_FILE)
        ctx.host.make_dirs(MODULES_LOAD_FILE.parent, sudo=True)
        ctx.host.write_file(MODULES_LOAD_FILE, modules_load_content(), sudo=True)

    for module in pending_modules(ctx.host):
        logger.info("Loading kernel module %s", module)
        result = ctx.host.run(['modprobe', module], sudo=True, check=False)
        if not result.ok:
            logger.warning("modprobe %s failed: %s", module, result.stderr.strip())


def _sysctl_ready(ctx: Context) -> bool:
    if ctx.host.read_file(SYSCTL_FILE) != sysctl_content():
        return False
    for key, value in SYSCTL_SETTINGS:
        result = ctx.host.query(['sysctl', '-n', key])
        if not result.ok or result.stdout.strip() != value:
            return False
    return True


def _apply_sysctl(ctx: Context) -> None:
    if ctx.host.read_file(SYSCTL_FILE) != sysctl_content():
        logger.info("Writing %s", SYSCTL_FILE)
        ctx.host.make_dirs(SYSCTL_FILE.parent, sudo=True)
        ctx.host.write_file(SYSCTL_FILE, sysctl_content(), sudo=True)
    ctx.host.run(['sysctl', '--system'], sudo=True)


# -------------------------------
# k3s
# -------------------------------

def k3s_config(node_ip: Optional[str], hostname: str) -> dict:
    """Build the k3s server configuration for this node."""
    config = {'write-kubeconfig-mode': '0644'}
    if node_ip:
        config['node-ip'] = node_ip
    config['tls-san'] = [san for san in (node_ip, hostname) if san]
    return config


def _k3s_config_present(ctx: Context) -> bool:
    return ctx.host.read_file(K3S_CONFIG_FILE) is not None


def _write_k3s_config(ctx: Context) -> None:
    logger.info("Creating k3s config...")
    content = yaml.safe_dump(
        k3s_config(ctx.node_ip, ctx.config.hostname),
        default_flow_style=False,
        sort_keys=False,
    )
    ctx.host.make_dirs(K3S_CONFIG_DIR, sudo=True)
    ctx.host.write_file(K3S_CONFIG_FILE, content, sudo=True)


def installed_k3s_version(host: Host) -> Optional[str]:
    """Return the installed k3s version (e.g. ``v1.30.4+k3s1``) or None."""
    if not host.which('k3s'):
        return None
    result = host.query(['k3s', '--version'])
    if not result.ok:
        return None
    # k3s version v1.30.4+k3s1 (98262b5d)
    for line in result.stdout.splitlines():
        tokens = line.split()
        if len(tokens) >= 3 and tokens[:2] == ['k3s', 'version']:
            return tokens[2]
    return None


def _k3s_installed(ctx: Context) -> bool:
    if ctx.config.upgrade:
        return False
    version = installed_k3s_version(ctx.host)
    if version is None:
        return False
    if ctx.config.k3s_version and version != ctx.config.k3s_version:
        logger.info("k3s %s installed, %s requested", version, ctx.config.k3s_version)
        return False
    return True


def _install_k3s(ctx: Context) -> None:
    if ctx.host.which('k3s'):
        logger.info("Upgrading k3s if needed...")
    else:
        logger.info("Installing k3s...")
    script = ctx.fetch_script(ctx.config.install_url, ctx.config.install_timeout)
    env = {}
    if ctx.config.k3s_version:
        env['INSTALL_K3S_VERSION'] = ctx.config.k3s_version
    ctx.host.run(['sh', '-'], input=script, env=env or None)


def _k3s_context_present(ctx: Context) -> bool:
    result = ctx.host.query(['semanage', 'fcontext', '-l', '-C'], sudo=True)
    if not result.ok:
        return False
    return any(line.split()[:1] == [str(K3S_BINARY)] for line in result.stdout.splitlines())


def _label_k3s_binary(ctx: Context) -> None:
    logger.info("Applying SELinux context to %s...", K3S_BINARY)
    ctx.host.run(['semanage', 'fcontext', '-a', '-t', K3S_SELINUX_TYPE, str(K3S_BINARY)], sudo=True)
    result = ctx.host.run(['restorecon', '-v', str(K3S_BINARY)], sudo=True, check=False)
    if not result.ok:
        logger.warning("restorecon %s failed: %s", K3S_BINARY, result.stderr.strip())


# -------------------------------
# kubeconfig
# -------------------------------

def expected_kubeconfig(ctx: Context) -> Optional[str]:
    """Return the post-processed k3s kubeconfig, or None if k3s has not written it."""
    source = ctx.host.read_file(K3S_KUBECONFIG)
    if source is None:
        return None
    return rewrite_server(source, ctx.mode, ctx.node_ip, ctx.config.nat_port)


def _kubeconfig_current(ctx: Context) -> bool:
    expected = expected_kubeconfig(ctx)
    return expected is not None and ctx.host.read_file(ctx.config.kubeconfig_path) == expected


def _write_kubeconfig(ctx: Context) -> None:
    content = expected_kubeconfig(ctx)
    if content is None:
        raise ProvisioningError(f"k3s did not write {K3S_KUBECONFIG}")
    destination = Path(ctx.config.kubeconfig_path)
    logger.info("Writing kubeconfig to %s", destination)
    ctx.host.make_dirs(destination.parent)
    ctx.host.write_file(destination, content, mode=0o600)


def build_steps() -> List[Step]:
    """Return the provisioning sequence in execution order."""
    return [
        Step('selinux-packages', _selinux_packages_present, _install_selinux_packages,
             requires_reboot=True, description='Install SELinux policy for containers'),
        Step('openssh', _openssh_present, _install_openssh,
             requires_reboot=True, description='Install openssh'),
        Step('remove-zram', _zram_absent, _remove_zram,
             requires_reboot=True, description='Remove the zram swap generator'),
        Step('kernel-modules', _kernel_modules_ready, _configure_kernel_modules,
             description='Load br_netfilter and overlay'),
        Step('sysctl', _sysctl_ready, _apply_sysctl,
             description='Enable forwarding and bridge netfilter'),
        Step('k3s-config', _k3s_config_present, _write_k3s_config,
             description='Write /etc/rancher/k3s/config.yaml'),
        Step('k3s-install', _k3s_installed, _install_k3s,
             description='Install or upgrade k3s'),
        Step('selinux-context', _k3s_context_present, _label_k3s_binary,
             description='Label the k3s binary for SELinux'),
        Step('kubeconfig', _kubeconfig_current, _write_kubeconfig,
             description='Copy and rewrite the kubeconfig'),
    ]
