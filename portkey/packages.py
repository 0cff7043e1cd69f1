"""
Host package managers.

Ubuntu installs through apt with sudo, Termux through pkg. Both expose the
same update/install contract and the same names for the commands portkey
needs, mapped to each host's package names.
"""

import enum
import logging
import os
import pathlib
import shutil
import subprocess
import typing

import attr

from .utils import ToolMissing

log = logging.getLogger(__name__)


class Host(enum.Enum):
    UBUNTU = 'ubuntu'
    TERMUX = 'termux'


def detect_host() -> str:
    if 'TERMUX_VERSION' in os.environ or 'com.termux' in os.environ.get('PREFIX', ''):
        return Host.TERMUX.value
    return Host.UBUNTU.value


@attr.s(frozen=True)
class PackageManager:
    home: pathlib.Path = attr.ib(factory=pathlib.Path.home)

    # Command -> package providing it.
    packages: typing.ClassVar[typing.Dict[str, str]] = {}

    def run(self, command: typing.Sequence[str]) -> bool:
        log.debug(f"Running {' '.join(command)}")
        result = subprocess.run(command)
        if result.returncode != 0:
            log.error(f"{' '.join(command)} exited with status {result.returncode}")
        return result.returncode == 0

    def update(self) -> None:
        raise NotImplementedError

    def install(self, names: typing.AbstractSet[str]) -> None:
        raise NotImplementedError

    def prepare(self) -> None:
        """Host specific setup that has to happen before installing anything."""

    @property
    def required(self) -> typing.FrozenSet[str]:
        return frozenset(self.packages[command] for command in ('git', 'ssh', 'gpg'))

    def is_installed(self, command: str) -> bool:
        return shutil.which(command) is not None

    def ensure(self, command: str) -> None:
        """Install the package providing a command if it is missing, checking once."""
        if self.is_installed(command):
            log.debug(f"{command} is installed")
            return

        package = self.packages.get(command, command)
        log.warning(f"{command} is not installed, installing {package}")
        self.update()
        self.install({package})

        if not self.is_installed(command):
            raise ToolMissing(f"{command} is still missing after installing {package}")


class Apt(PackageManager):
    packages = {
        'git': 'git',
        'ssh': 'openssh-client',
        'ssh-keygen': 'openssh-client',
        'gpg': 'gnupg',
        'gh': 'gh',
    }

    def update(self):
        self.run(('sudo', 'apt', 'update'))
        self.run(('sudo', 'apt', 'upgrade', '-y'))

    def install(self, names):
        self.run(('sudo', 'apt', 'install', *sorted(names), '-y'))


class Pkg(PackageManager):
    packages = {
        'git': 'git',
        'ssh': 'openssh',
        'ssh-keygen': 'openssh',
        'gpg': 'gnupg',
        'gh': 'gh',
    }

    def update(self):
        self.run(('pkg', 'update'))
        self.run(('pkg', 'upgrade', '-y'))

    def install(self, names):
        self.run(('pkg', 'install', *sorted(names), '-y'))

    def prepare(self):
        if (self.home / 'storage').is_dir():
            log.debug("Termux storage access is already set up")
            return
        log.info("Setting up Termux internal storage access")
        self.run(('termux-setup-storage',))


MANAGERS: typing.Dict[Host, typing.Type[PackageManager]] = {
    Host.UBUNTU: Apt,
    Host.TERMUX: Pkg,
}
