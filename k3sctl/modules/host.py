"""Local host command execution.

All access to host state (package database, kernel, files) goes through
:class:`Host`. Queries always execute; mutating calls are only logged when
``dry_run`` is set.
"""

import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..errors import CommandError
from .models import CommandResult

logger = logging.getLogger("k3sctl.host")

PathLike = Union[str, Path]


class Host:
    """Runs commands and touches files on the local machine."""

    def __init__(self, dry_run: bool = False, use_sudo: Optional[bool] = None, timeout: Optional[int] = None):
        """Initialize the host.

        Args:
            dry_run: If True, only log mutating commands without executing them
            use_sudo: Prefix privileged commands with sudo (default: unless running as root)
            timeout: Per-command timeout in seconds (None for no timeout)
        """
        self.dry_run = dry_run
        self.use_sudo = (os.geteuid() != 0) if use_sudo is None else use_sudo
        self.timeout = timeout

    def _argv(self, args: List[str], sudo: bool) -> List[str]:
        if sudo and self.use_sudo:
            return ['sudo'] + list(args)
        return list(args)

    def _exec(
        self,
        args: List[str],
        sudo: bool = False,
        check: bool = True,
        input: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        argv = self._argv(args, sudo)
        if env and argv[0] == 'sudo':
            # sudo resets the environment
            argv = ['sudo', 'env'] + [f'{k}={v}' for k, v in env.items()] + argv[1:]
        logger.debug("Executing: %s", shlex.join(argv))
        try:
            proc = subprocess.run(
                argv,
                input=input,
                capture_output=True,
                text=True,
                env={**os.environ, **env} if env else None,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            if check:
                raise CommandError(argv, None, str(e)) from e
            logger.debug("Command not found: %s", argv[0])
            return CommandResult(argv, 127, '', str(e))
        except subprocess.TimeoutExpired as e:
            raise CommandError(argv, None, f"timed out after {self.timeout}s") from e

        result = CommandResult(argv, proc.returncode, proc.stdout or '', proc.stderr or '')
        if check and not result.ok:
            raise CommandError(argv, result.returncode, result.stderr)
        return result

    def query(self, args: List[str], sudo: bool = False) -> CommandResult:
        """Run a read-only command. Never raises on non-zero exit."""
        return self._exec(args, sudo=sudo, check=False)

    def succeeds(self, args: List[str], sudo: bool = False) -> bool:
        """Return True if a read-only command exits zero."""
        return self.query(args, sudo=sudo).ok

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)

    def path_exists(self, path: PathLike) -> bool:
        return Path(path).exists()

    def run(
        self,
        args: List[str],
        sudo: bool = False,
        check: bool = True,
        input: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        """Run a command that changes host state.

        Raises:
            CommandError: If check=True and the command fails
        """
        if self.dry_run:
            logger.info("[DRY RUN] Would execute: %s", shlex.join(self._argv(args, sudo)))
            return CommandResult(list(args), 0)
        return self._exec(args, sudo=sudo, check=check, input=input, env=env)

    def read_file(self, path: PathLike) -> Optional[str]:
        """Return the contents of a file, or None if it does not exist.

        Files unreadable by the current user are read through ``sudo cat``.
        """
        path = Path(path)
        try:
            return path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return None
        except PermissionError:
            result = self.query(['cat', str(path)], sudo=True)
            return result.stdout if result.ok else None

    def write_file(self, path: PathLike, content: str, sudo: bool = False, mode: Optional[int] = None) -> None:
        """Write a file, through ``sudo tee`` for root-owned locations."""
        path = Path(path)
        if self.dry_run:
            logger.info("[DRY RUN] Would write %s", path)
            return
        logger.debug("Writing %s", path)
        if sudo and self.use_sudo:
            self._exec(['tee', str(path)], sudo=True, input=content)
            if mode is not None:
                self._exec(['chmod', format(mode, 'o'), str(path)], sudo=True)
            return
        try:
            path.write_text(content, encoding='utf-8')
            if mode is not None:
                os.chmod(path, mode)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            raise

    def make_dirs(self, path: PathLike, sudo: bool = False) -> None:
        path = Path(path)
        if path.is_dir():
            return
        if self.dry_run:
            logger.info("[DRY RUN] Would create directory %s", path)
            return
        if sudo and self.use_sudo:
            self._exec(['mkdir', '-p', str(path)], sudo=True)
        else:
            path.mkdir(parents=True, exist_ok=True)
