import subprocess

import pytest

from k3sctl.errors import CommandError
from k3sctl.modules.host import Host


def test_query_captures_output():
    result = Host(use_sudo=False).query(['sh', '-c', 'echo hello; exit 3'])
    assert result.returncode == 3
    assert result.stdout == "hello\n"
    assert not result.ok


def test_run_raises_on_failure():
    with pytest.raises(CommandError) as excinfo:
        Host(use_sudo=False).run(['sh', '-c', 'echo oops >&2; exit 2'])
    assert excinfo.value.returncode == 2
    assert "oops" in str(excinfo.value)


def test_run_unchecked_returns_result():
    result = Host(use_sudo=False).run(['sh', '-c', 'exit 1'], check=False)
    assert result.returncode == 1


def test_missing_executable():
    host = Host(use_sudo=False)
    assert host.query(['definitely-not-a-command-k3sctl']).returncode == 127
    with pytest.raises(CommandError):
        host.run(['definitely-not-a-command-k3sctl'])


def test_run_passes_input_and_env():
    result = Host(use_sudo=False).run(['sh', '-c', 'cat; echo "$GREETING"'], input="in\n", env={'GREETING': 'hi'})
    assert result.stdout == "in\nhi\n"


def test_sudo_prefix(monkeypatch):
    seen = []

    def fake_run(argv, **kwargs):
        seen.append(argv)
        return subprocess.CompletedProcess(argv, 0, '', '')

    monkeypatch.setattr(subprocess, 'run', fake_run)
    host = Host(use_sudo=True)
    host.run(['modprobe', 'overlay'], sudo=True)
    host.run(['sh', '-'], sudo=True, env={'INSTALL_K3S_VERSION': 'v1'})
    host.query(['rpm', '-q', 'openssh'])
    assert seen == [
        ['sudo', 'modprobe', 'overlay'],
        ['sudo', 'env', 'INSTALL_K3S_VERSION=v1', 'sh', '-'],
        ['rpm', '-q', 'openssh'],
    ]


def test_dry_run_does_not_execute(monkeypatch, tmp_path):
    def fail(*args, **kwargs):
        raise AssertionError("should not execute")

    monkeypatch.setattr(subprocess, 'run', fail)
    host = Host(dry_run=True, use_sudo=False)
    assert host.run(['rm', '-rf', '/']).ok
    host.write_file(tmp_path / 'file', 'content')
    host.make_dirs(tmp_path / 'dir')
    assert not (tmp_path / 'file').exists()
    assert not (tmp_path / 'dir').exists()


def test_file_roundtrip(tmp_path):
    host = Host(use_sudo=False)
    path = tmp_path / 'sub' / 'config'
    assert host.read_file(path) is None
    host.make_dirs(path.parent)
    host.write_file(path, 'data\n', mode=0o600)
    assert host.read_file(path) == 'data\n'
    assert (path.stat().st_mode & 0o777) == 0o600
