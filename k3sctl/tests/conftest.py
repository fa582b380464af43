import pytest

from k3sctl.config import RunConfig
from k3sctl.modules.models import CommandResult

K3S_YAML = """apiVersion: v1
clusters:
- cluster:
    certificate-authority-data: LS0tLS1CRUdJTg==
    server: https://127.0.0.1:6443
  name: default
kind: Config
"""


class FakeHost:
    """In-memory stand-in for :class:`k3sctl.modules.host.Host`.

    Simulates just enough of an rpm based transactional host for the
    provisioning steps: packages, loaded modules, sysctls, SELinux file
    contexts, files and binaries. Every mutating call is recorded in
    ``mutations``.
    """

    def __init__(self):
        self.packages = {'zram-generator-defaults'}
        self.modules = set()
        self.available_modules = {'br_netfilter', 'overlay'}
        self.sysctls = {}
        self.fcontexts = set()
        self.files = {}
        self.binaries = set()
        self.k3s_version = 'v1.30.4+k3s1'
        self.route_get = '1.1.1.1 via 192.168.1.1 dev eth0 src 192.168.1.50 uid 1000\n    cache\n'
        self.routes = 'default via 192.168.1.1 dev eth0 proto dhcp metric 100\n192.168.1.0/24 dev eth0\n'
        self.fail = set()
        self.mutations = []
        self.installer_env = None

    def reset_mutations(self):
        self.mutations = []

    # -- queries --

    def query(self, args, sudo=False):
        cmd = list(args)
        if cmd[:2] == ['rpm', '-q']:
            return CommandResult(cmd, 0 if cmd[2] in self.packages else 1)
        if cmd[:3] == ['modprobe', '-n', '-q']:
            return CommandResult(cmd, 0 if cmd[3] in self.available_modules else 1)
        if cmd[:2] == ['sysctl', '-n']:
            if cmd[2] in self.sysctls:
                return CommandResult(cmd, 0, self.sysctls[cmd[2]] + '\n')
            return CommandResult(cmd, 255, '', f'sysctl: cannot stat {cmd[2]}')
        if cmd == ['semanage', 'fcontext', '-l', '-C']:
            if 'policycoreutils-python-utils' not in self.packages:
                return CommandResult(cmd, 127, '', 'semanage: command not found')
            out = ''.join(f'{p}    all files    system_u:object_r:{t}:s0\n' for p, t in sorted(self.fcontexts))
            return CommandResult(cmd, 0, out)
        if cmd == ['k3s', '--version']:
            return CommandResult(cmd, 0, f'k3s version {self.k3s_version} (98262b5d)\ngo version go1.22.5\n')
        if cmd[:4] == ['ip', '-4', 'route', 'get']:
            if self.route_get is None:
                return CommandResult(cmd, 2, '', 'RTNETLINK answers: Network is unreachable')
            return CommandResult(cmd, 0, self.route_get)
        if cmd == ['ip', 'route']:
            return CommandResult(cmd, 0, self.routes or '')
        return CommandResult(cmd, 127, '', f'{cmd[0]}: command not found')

    def succeeds(self, args, sudo=False):
        return self.query(args, sudo=sudo).ok

    def which(self, name):
        return f'/usr/local/bin/{name}' if name in self.binaries else None

    def path_exists(self, path):
        path = str(path)
        if path.startswith('/sys/module/'):
            return path[len('/sys/module/'):] in self.modules
        return path in self.files

    def read_file(self, path):
        return self.files.get(str(path))

    # -- mutations --

    def run(self, args, sudo=False, check=True, input=None, env=None):
        from k3sctl.errors import CommandError

        cmd = list(args)
        self.mutations.append(cmd)
        if cmd[0] in self.fail:
            if check:
                raise CommandError(cmd, 1, 'simulated failure')
            return CommandResult(cmd, 1, '', 'simulated failure')

        if cmd[:3] == ['transactional-update', 'pkg', 'install']:
            self.packages.update(cmd[4:])
        elif cmd[:3] == ['transactional-update', 'pkg', 'remove']:
            self.packages.difference_update(cmd[4:])
        elif cmd[0] == 'modprobe':
            if cmd[1] not in self.available_modules:
                return CommandResult(cmd, 1, '', f'modprobe: FATAL: Module {cmd[1]} not found')
            self.modules.add(cmd[1])
        elif cmd == ['sysctl', '--system']:
            for line in self.files.get('/etc/sysctl.d/90-kubernetes.conf', '').splitlines():
                key, _, value = line.partition('=')
                self.sysctls[key] = value
        elif cmd == ['sh', '-']:
            self.installer_env = env
            if env and 'INSTALL_K3S_VERSION' in env:
                self.k3s_version = env['INSTALL_K3S_VERSION']
            self.binaries.update({'k3s', 'kubectl'})
            self.files['/etc/rancher/k3s/k3s.yaml'] = K3S_YAML
        elif cmd[:3] == ['semanage', 'fcontext', '-a']:
            self.fcontexts.add((cmd[-1], cmd[-2]))
        return CommandResult(cmd, 0)

    def write_file(self, path, content, sudo=False, mode=None):
        self.mutations.append(['write', str(path)])
        self.files[str(path)] = content

    def make_dirs(self, path, sudo=False):
        pass


@pytest.fixture
def fake_host():
    return FakeHost()


@pytest.fixture
def run_config(tmp_path):
    return RunConfig(hostname='node1', kubeconfig_path=tmp_path / 'kube' / 'config')


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ('FORCE_MODE', 'NAT_PORT', 'K3S_VERSION', 'KUBECONFIG_PATH', 'K3S_INSTALL_URL', 'INSTALL_TIMEOUT'):
        monkeypatch.delenv(name, raising=False)
