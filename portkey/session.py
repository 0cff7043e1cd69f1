import pathlib
import typing

import attr

from .bundle import BackupBundle
from .gitconfig import GitIdentityBinder
from .gpg import GPG
from .identity import Identity
from .keystore import KeyStore
from .packages import MANAGERS, Host, PackageManager
from .prompt import Prompt
from .remote import RemoteAuth, RemoteRepository
from .restore import RestoreOrchestrator
from .ssh import SSH


@attr.s(frozen=True, kw_only=True)
class Paths:
    home: pathlib.Path = attr.ib()
    ssh: pathlib.Path = attr.ib()
    gitconfig: pathlib.Path = attr.ib()
    shellrc: pathlib.Path = attr.ib()
    staging: pathlib.Path = attr.ib()
    transfer: typing.Optional[pathlib.Path] = attr.ib(default=None)
    gnupg: typing.Optional[pathlib.Path] = attr.ib(default=None)

    @classmethod
    def for_home(
            cls,
            home: pathlib.Path,
            host: Host,
            transfer: typing.Optional[pathlib.Path] = None,
            gnupg: typing.Optional[pathlib.Path] = None) -> 'Paths':
        if transfer is None and host is Host.TERMUX:
            transfer = home / 'storage' / 'shared' / 'Download'
        return cls(
            home=home,
            ssh=home / '.ssh',
            gitconfig=home / '.gitconfig',
            shellrc=home / '.bashrc',
            staging=home,
            transfer=transfer,
            gnupg=gnupg)


@attr.s(frozen=True, kw_only=True)
class Session:
    """Everything an operation needs, passed explicitly instead of shared globally."""

    identity: Identity = attr.ib()
    extra_packages: typing.FrozenSet[str] = attr.ib(factory=frozenset)
    paths: Paths = attr.ib()
    prompt: Prompt = attr.ib()
    packages: PackageManager = attr.ib()
    keystore: KeyStore = attr.ib()
    bundle: BackupBundle = attr.ib()
    binder: GitIdentityBinder = attr.ib()
    remote_auth: RemoteAuth = attr.ib()

    def orchestrator(
            self,
            remote: typing.Optional[RemoteRepository] = None) -> RestoreOrchestrator:
        return RestoreOrchestrator(
            bundle=self.bundle,
            binder=self.binder,
            packages=self.packages,
            prompt=self.prompt,
            identity=self.identity,
            staging=self.paths.staging,
            transfer=self.paths.transfer,
            remote=remote)


def open_session(
        identity: Identity,
        paths: Paths,
        host: Host,
        prompt: Prompt,
        extra_packages: typing.FrozenSet[str] = frozenset(),
        gpg: typing.Optional[GPG] = None,
        ssh: typing.Optional[SSH] = None,
        packages: typing.Optional[PackageManager] = None) -> Session:
    packages = packages or MANAGERS[host](paths.home)
    keystore = KeyStore(
        ssh_directory=paths.ssh,
        prompt=prompt,
        ssh=ssh or SSH(),
        gpg=gpg or GPG(home=paths.gnupg))
    return Session(
        identity=identity,
        extra_packages=extra_packages,
        paths=paths,
        prompt=prompt,
        packages=packages,
        keystore=keystore,
        bundle=BackupBundle(root=paths.staging, keystore=keystore),
        binder=GitIdentityBinder(config=paths.gitconfig, shellrc=paths.shellrc),
        remote_auth=RemoteAuth(packages))
