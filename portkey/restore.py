"""
Restoring key material from a backup bundle.

    START -> LOCATE_BUNDLE -> VERIFY_PRECONDITIONS -> IMPORT -> BIND -> DONE

Any state can move to FAILED. Transient copies of the bundle are removed
whichever way the run ends.
"""

import enum
import logging
import pathlib
import tempfile
import typing

import attr

from .bundle import Artifacts, BackupBundle, find
from .gitconfig import GitIdentityBinder
from .identity import Identity
from .keystore import KeyKind
from .packages import PackageManager
from .prompt import Prompt
from .remote import RemoteRepository
from .utils import BundleNotFound, InconsistentBundle, PortkeyException, remove

log = logging.getLogger(__name__)

TOOLS = {KeyKind.SSH: 'ssh', KeyKind.GPG: 'gpg'}


class State(enum.Enum):
    START = 'start'
    LOCATE_BUNDLE = 'locate-bundle'
    VERIFY_PRECONDITIONS = 'verify-preconditions'
    IMPORT = 'import'
    BIND = 'bind'
    DONE = 'done'
    FAILED = 'failed'


@attr.s(frozen=True)
class Location:
    name: str = attr.ib()
    directory: pathlib.Path = attr.ib()
    # Copy artifacts into staging before importing, leaving the originals.
    staged: bool = attr.ib(default=False)


@attr.s(kw_only=True)
class RestoreOrchestrator:
    bundle: BackupBundle = attr.ib()
    binder: GitIdentityBinder = attr.ib()
    packages: PackageManager = attr.ib()
    prompt: Prompt = attr.ib()
    identity: Identity = attr.ib()
    staging: pathlib.Path = attr.ib()
    transfer: typing.Optional[pathlib.Path] = attr.ib(default=None)
    remote: typing.Optional[RemoteRepository] = attr.ib(default=None)

    state: State = attr.ib(default=State.START, init=False)
    history: typing.List[State] = attr.ib(factory=list, init=False)
    kinds: typing.FrozenSet[KeyKind] = attr.ib(factory=frozenset, init=False)
    artifacts: typing.Dict[KeyKind, Artifacts] = attr.ib(factory=dict, init=False)
    restored: typing.Dict[KeyKind, str] = attr.ib(factory=dict, init=False)
    transient: typing.List[pathlib.Path] = attr.ib(factory=list, init=False)

    def run(self, kinds: typing.Iterable[KeyKind]) -> typing.Dict[KeyKind, str]:
        """Restore each kind of key and return the restored identifiers."""
        self.kinds = frozenset(kinds)
        steps: typing.Dict[State, typing.Callable[[], State]] = {
            State.START: self.start,
            State.LOCATE_BUNDLE: self.locate_bundle,
            State.VERIFY_PRECONDITIONS: self.verify_preconditions,
            State.IMPORT: self.import_bundle,
            State.BIND: self.bind,
            State.DONE: self.done,
        }

        try:
            while True:
                self.history.append(self.state)
                if self.state is State.DONE:
                    steps[State.DONE]()
                    break
                following = steps[self.state]()
                log.debug(f"Restore moved from {self.state.value} to {following.value}")
                self.state = following
        except PortkeyException as error:
            log.error(f"Restore failed in {self.state.value}: {error.format_message()}")
            self.state = State.FAILED
            self.history.append(State.FAILED)
            raise
        finally:
            remove(self.transient)

        return dict(self.restored)

    def start(self) -> State:
        names = ', '.join(sorted(kind.value for kind in self.kinds))
        log.info(f"Restoring {names} keys")
        return State.LOCATE_BUNDLE

    def locations(self) -> typing.Iterator[Location]:
        if self.remote is None:
            if self.transfer:
                yield Location('external storage', self.transfer, staged=True)
            yield Location('staging directory', self.staging)

        remote = self.remote or self.ask_remote()
        if remote is not None:
            directory = self.clone(remote)
            if directory is not None:
                yield Location(f'repository {remote}', directory)

    def ask_remote(self) -> typing.Optional[RemoteRepository]:
        if not self.prompt.confirm(
                "No local backup found. Clone one from a GitHub repository?",
                default=False):
            return None
        return RemoteRepository(
            owner=self.prompt.ask("GitHub username"),
            name=self.prompt.ask("GitHub repository name"))

    def clone(self, remote: RemoteRepository) -> typing.Optional[pathlib.Path]:
        self.packages.ensure('git')
        directory = self.scratch()
        return directory if remote.clone(directory) else None

    def scratch(self) -> pathlib.Path:
        """A temporary directory under staging, removed when the run ends."""
        directory = pathlib.Path(tempfile.mkdtemp(prefix='portkey-', dir=self.staging))
        self.transient.append(directory)
        return directory

    def locate_bundle(self) -> State:
        """
        Use the first location holding a complete bundle for any requested kind.

        An incomplete bundle for a requested kind is never imported, even when
        another kind in the same location is complete.
        """
        incomplete: typing.Optional[Artifacts] = None

        for location in self.locations():
            found = find(location.directory, self.kinds)
            log.debug(f"Found {len(found)} bundles in {location.name} {location.directory}")

            broken = [a for a in found.values() if not a.complete]
            if not any(a.complete for a in found.values()):
                incomplete = incomplete or next(iter(broken), None)
                continue

            if broken:
                broken[0].check()

            log.info(f"Using the bundle in {location.name} {location.directory}")
            # Staged copies never replace files already in the staging directory.
            staging = self.scratch() if location.staged else None
            for kind, artifacts in found.items():
                if staging is not None:
                    artifacts = self.bundle.stage(artifacts, staging)
                self.artifacts[kind] = artifacts
            return State.VERIFY_PRECONDITIONS

        if incomplete is not None:
            incomplete.check()

        names = ' or '.join(sorted(kind.value for kind in self.kinds))
        raise BundleNotFound(f"No {names} backup found")

    def verify_preconditions(self) -> State:
        for kind in sorted(self.artifacts, key=lambda k: k.value):
            self.packages.ensure(TOOLS[kind])
        return State.IMPORT

    def import_bundle(self) -> State:
        ssh = self.artifacts.get(KeyKind.SSH)
        if ssh:
            self.restored[KeyKind.SSH] = self.bundle.import_ssh(ssh).identifier

        gpg = self.artifacts.get(KeyKind.GPG)
        if gpg:
            self.restored[KeyKind.GPG] = self.bundle.import_gpg(gpg, self.identity.email)

        return State.BIND

    def bind(self) -> State:
        # Only a restored GPG key changes git configuration.
        identifier = self.restored.get(KeyKind.GPG)
        if identifier is None:
            log.info("No GPG key restored, leaving git configuration unchanged")
            return State.DONE

        self.binder.bind_signing_key(identifier)
        self.binder.bind_identity(self.identity)
        self.binder.ensure_tty_binding()
        self.binder.bind_editor()
        return State.DONE

    def done(self) -> State:
        for kind, identifier in sorted(self.restored.items(), key=lambda i: i[0].value):
            self.prompt.echo(f"Restored {kind.value.upper()} key {identifier}", fg='green')
        return State.DONE
