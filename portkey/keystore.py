"""
Key pairs on disk and in the GPG keyring.
"""

import enum
import logging
import pathlib
import typing

import attr

from .gpg import GPG, SecretKey
from .prompt import Prompt
from .ssh import SSH, SSH_ALGORITHMS, Algorithm
from .utils import (
    DIRECTORY_MODE,
    PUBLIC_MODE,
    GenerationFailure,
    InconsistentKeyPair,
    KeyExists,
    remove,
    restrict,
)

log = logging.getLogger(__name__)


class KeyKind(enum.Enum):
    SSH = 'ssh'
    GPG = 'gpg'


@attr.s(frozen=True, kw_only=True)
class KeyPair:
    kind: KeyKind = attr.ib()
    algorithm: Algorithm = attr.ib()
    identifier: str = attr.ib()
    public: bytes = attr.ib(repr=False)
    private: typing.Optional[bytes] = attr.ib(default=None, repr=False)

    def __str__(self):
        return f"{self.algorithm.value} key {self.identifier}"


def ssh_paths(
        directory: pathlib.Path,
        algorithm: Algorithm) -> typing.Tuple[pathlib.Path, pathlib.Path]:
    """Return the (public, private) paths for an SSH key in a directory."""
    private = directory / algorithm.filename
    return private.with_name(f'{private.name}.pub'), private


@attr.s(frozen=True, kw_only=True)
class KeyStore:
    ssh_directory: pathlib.Path = attr.ib()
    prompt: Prompt = attr.ib()
    ssh: SSH = attr.ib(factory=SSH)
    gpg: GPG = attr.ib(factory=GPG)

    def load_ssh(self, algorithm: Algorithm) -> typing.Optional[KeyPair]:
        """
        Read an SSH key pair.

        A pair where only one of the two files exists is refused.
        """
        public, private = ssh_paths(self.ssh_directory, algorithm)
        present = [path for path in (public, private) if path.is_file()]

        if not present:
            return None

        if len(present) == 1:
            raise InconsistentKeyPair(
                f"Found {present[0]} without its matching "
                f"{'private' if present[0] == public else 'public'} key")

        return KeyPair(
            kind=KeyKind.SSH,
            algorithm=algorithm,
            identifier=private.name,
            public=public.read_bytes(),
            private=private.read_bytes())

    def discover_ssh(self) -> typing.Optional[KeyPair]:
        for algorithm in SSH_ALGORITHMS:
            pair = self.load_ssh(algorithm)
            if pair:
                log.info(f"Found existing {pair}")
                return pair
        log.info(f"No SSH key found in {self.ssh_directory}")
        return None

    def guard_overwrite(self, paths: typing.Sequence[pathlib.Path]) -> None:
        """Refuse to replace existing key files unless the user confirms."""
        existing = [path for path in paths if path.exists()]
        if not existing:
            return

        names = ', '.join(str(path) for path in existing)
        if not self.prompt.confirm(f"{names} already exists. Overwrite?", default=False):
            raise KeyExists(f"Refusing to overwrite {names}")

        log.warning(f"Overwriting {names}")
        remove(existing)

    def prepare_ssh_directory(self) -> None:
        self.ssh_directory.mkdir(parents=True, exist_ok=True)
        restrict(self.ssh_directory, DIRECTORY_MODE)

    def secure_ssh(self, algorithm: Algorithm) -> KeyPair:
        """Fix key file permissions and add the private key to the agent."""
        public, private = ssh_paths(self.ssh_directory, algorithm)
        restrict(private)
        restrict(public, PUBLIC_MODE)
        self.ssh.add(private)
        pair = self.load_ssh(algorithm)
        assert pair is not None, f"Expected {algorithm.value} key in {self.ssh_directory}"
        return pair

    def generate_ssh(self, comment: str) -> KeyPair:
        """Generate an ed25519 key, falling back to 4096 bit RSA."""
        self.prepare_ssh_directory()

        for algorithm in SSH_ALGORITHMS:
            public, private = ssh_paths(self.ssh_directory, algorithm)
            self.guard_overwrite((private, public))
            if self.ssh.keygen(algorithm, private, comment):
                log.info(f"Generated {algorithm.value} key {private}")
                return self.secure_ssh(algorithm)
            # Remove anything a failed ssh-keygen left behind.
            remove((private, public))

        raise GenerationFailure("Could not generate an ed25519 or rsa4096 SSH key")

    def choose_gpg_key(self, email: typing.Optional[str] = None) -> typing.Optional[SecretKey]:
        """
        Select a secret key from the keyring.

        Keys with a user ID for the email are preferred. The user is asked to
        pick a key ID when more than one candidate remains.
        """
        keys = self.gpg.secret_keys()
        candidates = [key for key in keys if email and key.matches(email)] or keys

        if not candidates:
            return None

        if len(candidates) == 1:
            return candidates[0]

        for key in candidates:
            self.prompt.echo(str(key))
        chosen = self.prompt.ask(
            "Enter GPG key ID",
            choices=[key.key_id for key in candidates])
        return next(key for key in candidates if key.key_id == chosen)

    def gpg_pair(self, key: SecretKey) -> KeyPair:
        return KeyPair(
            kind=KeyKind.GPG,
            algorithm=Algorithm.GPG,
            identifier=key.key_id,
            public=self.export_gpg_public(key.key_id))

    def discover_gpg(self, email: typing.Optional[str] = None) -> typing.Optional[KeyPair]:
        key = self.choose_gpg_key(email)
        return self.gpg_pair(key) if key else None

    def generate_gpg(self, email: typing.Optional[str] = None) -> KeyPair:
        """Run gpg's interactive key generation and find the resulting key."""
        before = {key.key_id for key in self.gpg.secret_keys()}
        self.gpg.generate()

        new = [key for key in self.gpg.secret_keys() if key.key_id not in before]
        if len(new) == 1:
            key: typing.Optional[SecretKey] = new[0]
        else:
            key = self.choose_gpg_key(email)

        if key is None:
            raise GenerationFailure("No GPG secret key found after generation")

        log.info(f"Generated GPG key {key}")
        return self.gpg_pair(key)

    def export_gpg_public(self, identifier: str) -> bytes:
        """Armoured public key, for display only."""
        return self.gpg.export_public(identifier).encode('utf-8')
