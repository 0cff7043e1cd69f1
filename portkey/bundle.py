"""
Backup bundles: plain files that carry key material between hosts.

A bundle directory holds any of:

    id_ed25519, id_ed25519.pub          SSH (preferred)
    id_rsa, id_rsa.pub                  SSH
    id_gpg_public, id_gpg_private,      GPG
    gpg_ownertrust
"""

import logging
import pathlib
import shutil
import typing

import attr

from .gpg import SecretKey
from .keystore import KeyKind, KeyPair, KeyStore, ssh_paths
from .ssh import SSH_ALGORITHMS, Algorithm
from .utils import InconsistentBundle, remove, restrict

log = logging.getLogger(__name__)

GPG_PUBLIC = 'id_gpg_public'
GPG_PRIVATE = 'id_gpg_private'
GPG_OWNERTRUST = 'gpg_ownertrust'


@attr.s(frozen=True, kw_only=True)
class Artifacts:
    kind: KeyKind = attr.ib()
    algorithm: Algorithm = attr.ib()
    public: pathlib.Path = attr.ib()
    private: pathlib.Path = attr.ib()
    trust: typing.Optional[pathlib.Path] = attr.ib(default=None)

    def __str__(self):
        return ', '.join(path.name for path in self.paths)

    @property
    def directory(self) -> pathlib.Path:
        return self.private.parent

    @property
    def paths(self) -> typing.Tuple[pathlib.Path, ...]:
        paths = (self.public, self.private)
        return (*paths, self.trust) if self.trust else paths

    @property
    def present(self) -> bool:
        return any(path.is_file() for path in self.paths)

    @property
    def complete(self) -> bool:
        return all(path.is_file() for path in self.paths)

    def missing(self) -> typing.List[str]:
        return [path.name for path in self.paths if not path.is_file()]

    def check(self) -> None:
        if not self.complete:
            raise InconsistentBundle(
                f"Incomplete {self.kind.value} bundle in {self.directory}: "
                f"missing {', '.join(self.missing())}")

    def moved(self, directory: pathlib.Path) -> 'Artifacts':
        return attr.evolve(self, **{
            name: directory / getattr(self, name).name
            for name in ('public', 'private', 'trust')
            if getattr(self, name)})


def ssh_artifacts(directory: pathlib.Path) -> typing.Optional[Artifacts]:
    """Find SSH artifacts, preferring a complete set and then ed25519."""
    found = []
    for algorithm in SSH_ALGORITHMS:
        public, private = ssh_paths(directory, algorithm)
        artifacts = Artifacts(
            kind=KeyKind.SSH, algorithm=algorithm, public=public, private=private)
        if artifacts.present:
            found.append(artifacts)
    return next((a for a in found if a.complete), found[0] if found else None)


def gpg_bundle(directory: pathlib.Path) -> Artifacts:
    return Artifacts(
        kind=KeyKind.GPG,
        algorithm=Algorithm.GPG,
        public=directory / GPG_PUBLIC,
        private=directory / GPG_PRIVATE,
        trust=directory / GPG_OWNERTRUST)


def gpg_artifacts(directory: pathlib.Path) -> typing.Optional[Artifacts]:
    artifacts = gpg_bundle(directory)
    return artifacts if artifacts.present else None


def find(
        directory: pathlib.Path,
        kinds: typing.Iterable[KeyKind]) -> typing.Dict[KeyKind, Artifacts]:
    """Find the artifacts of each kind present in a directory, complete or not."""
    finders = {KeyKind.SSH: ssh_artifacts, KeyKind.GPG: gpg_artifacts}
    found = {kind: finders[kind](directory) for kind in kinds}
    return {kind: artifacts for kind, artifacts in found.items() if artifacts}


@attr.s(frozen=True, kw_only=True)
class BackupBundle:
    root: pathlib.Path = attr.ib()
    keystore: KeyStore = attr.ib()

    def export_ssh(self, pair: KeyPair) -> Artifacts:
        public, private = ssh_paths(self.keystore.ssh_directory, pair.algorithm)
        log.info(f"Backing up {pair} to {self.root}")
        shutil.copy2(public, self.root / public.name)
        restrict(pathlib.Path(shutil.copy2(private, self.root / private.name)))
        return Artifacts(
            kind=KeyKind.SSH,
            algorithm=pair.algorithm,
            public=self.root / public.name,
            private=self.root / private.name)

    def export_gpg(self, email: str) -> Artifacts:
        """Export the public key, secret key and ownertrust for an email."""
        log.info(f"Backing up GPG keys for {email} to {self.root}")
        artifacts = gpg_bundle(self.root)
        gpg = self.keystore.gpg
        gpg.export(artifacts.public, email)
        gpg.export_secret(artifacts.private, email)
        restrict(artifacts.private)
        # Trust does not survive a key import and has to travel separately.
        assert artifacts.trust is not None
        gpg.export_ownertrust(artifacts.trust)
        return artifacts

    def stage(self, artifacts: Artifacts, directory: pathlib.Path) -> Artifacts:
        """Copy a complete set of artifacts into a staging directory."""
        artifacts.check()
        staged = artifacts.moved(directory)
        for source, destination in zip(artifacts.paths, staged.paths):
            log.debug(f"Staging {source} at {destination}")
            shutil.copyfile(source, destination)
        restrict(staged.private)
        return staged

    def import_ssh(self, artifacts: Artifacts) -> KeyPair:
        """Move an SSH key pair into the key directory and add it to the agent."""
        artifacts.check()
        keystore = self.keystore
        keystore.prepare_ssh_directory()

        installed = artifacts.moved(keystore.ssh_directory)
        keystore.guard_overwrite(installed.paths)

        for source, destination in zip(artifacts.paths, installed.paths):
            log.debug(f"Moving {source} to {destination}")
            shutil.move(str(source), str(destination))

        pair = keystore.secure_ssh(artifacts.algorithm)
        log.info(f"Restored {pair}")
        return pair

    def import_gpg(
            self,
            artifacts: Artifacts,
            email: typing.Optional[str] = None) -> str:
        """
        Import public key, secret key and ownertrust, in that order.

        Nothing is imported unless all three artifacts are present. The user
        then sets an explicit trust level, since imported ownertrust alone does
        not always make the key usable for signing.
        """
        artifacts.check()
        gpg = self.keystore.gpg
        before = {key.key_id for key in gpg.secret_keys()}
        gpg.import_key(artifacts.public)
        gpg.import_key(artifacts.private)
        assert artifacts.trust is not None
        gpg.import_ownertrust(artifacts.trust)

        # Prefer the key the bundle added over one already in the keyring.
        new = [key for key in gpg.secret_keys() if key.key_id not in before]
        if len(new) == 1:
            key: typing.Optional[SecretKey] = new[0]
        else:
            key = self.keystore.choose_gpg_key(email)

        if key is None:
            raise InconsistentBundle(
                f"No secret key found after importing {artifacts.private}")

        level = self.keystore.prompt.ask(
            f"Trust level for {key.key_id} (1=unknown, 2=none, 3=marginal, 4=full, 5=ultimate)",
            choices=['1', '2', '3', '4', '5'],
            default='5')
        gpg.set_trust(key.fingerprint or key.key_id, int(level))

        remove(artifacts.paths)
        log.info(f"Restored GPG key {key}")
        return key.key_id
