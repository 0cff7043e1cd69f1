import logging
import os
import pathlib
import subprocess
import sys
import typing

import attr

from .utils import GenerationFailure, GPGFailure

log = logging.getLogger(__name__)

# Trust levels as offered by 'gpg --edit-key ... trust', mapped to the
# ownertrust values used by --import-ownertrust.
TRUST_LEVELS = {
    1: 2,  # I don't know or won't say
    2: 3,  # I do NOT trust
    3: 4,  # I trust marginally
    4: 5,  # I trust fully
    5: 6,  # I trust ultimately
}


@attr.s(frozen=True, kw_only=True)
class SecretKey:
    key_id: str = attr.ib()
    fingerprint: str = attr.ib(default='')
    uids: typing.Tuple[str, ...] = attr.ib(default=())

    def __str__(self):
        return f"{self.key_id} {', '.join(self.uids)}".strip()

    def matches(self, email: str) -> bool:
        return any(f'<{email}>' in uid or uid == email for uid in self.uids)


def parse_secret_keys(output: str) -> typing.List[SecretKey]:
    """Parse the output of 'gpg --list-secret-keys --with-colons'."""
    keys: typing.List[SecretKey] = []
    record = None
    for line in output.splitlines():
        fields = line.split(':')
        if fields[0] == 'sec':
            keys.append(SecretKey(key_id=fields[4]))
        elif fields[0] == 'fpr' and record == 'sec' and keys:
            keys[-1] = attr.evolve(keys[-1], fingerprint=fields[9])
        elif fields[0] == 'uid' and keys:
            keys[-1] = attr.evolve(keys[-1], uids=(*keys[-1].uids, fields[9]))
        record = fields[0]
    return keys


@attr.s(frozen=True)
class GPG:
    verbose: bool = attr.ib(default=False)
    home: typing.Optional[pathlib.Path] = attr.ib(default=None)

    def command(
            self,
            arguments: typing.Sequence[str],
            armour: bool) -> typing.Tuple[str, ...]:
        command: typing.Tuple[str, ...] = ('gpg', '--yes')
        if armour:
            command = (*command, '--armour')
        if self.verbose:
            command = (*command, '--verbose')
        return (*command, *arguments)

    def environment(self) -> typing.Dict[str, str]:
        env = dict(os.environ)
        if self.home:
            env['GNUPGHOME'] = self.home.as_posix()
        if 'GPG_TTY' not in env and sys.stdin.isatty():
            env['GPG_TTY'] = os.ttyname(sys.stdin.fileno())
        return env

    def run(self,
            arguments: typing.Sequence[str],
            armour: bool = False,
            stdin: typing.Optional[str] = None) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                self.command(arguments, armour),
                encoding='utf-8',
                input=stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self.environment(),
                check=True)
        except subprocess.CalledProcessError as error:
            for line in error.stderr.splitlines():
                log.error(line)
            raise GPGFailure(
                f"gpg {' '.join(arguments)} exited with status {error.returncode}") from error

    def interact(self, arguments: typing.Sequence[str]) -> int:
        """Run gpg attached to the terminal and return its exit status."""
        return subprocess.run(
            self.command(arguments, armour=False),
            env=self.environment()).returncode

    def generate(self) -> None:
        log.debug("Generating a GPG key")
        if self.interact(['--full-generate-key']) != 0:
            raise GenerationFailure("gpg --full-generate-key failed")

    def secret_keys(self) -> typing.List[SecretKey]:
        result = self.run(['--list-secret-keys', '--with-colons'])
        return parse_secret_keys(result.stdout)

    def export_public(self, identifier: str) -> str:
        log.debug(f"Exporting armoured public key {identifier}")
        return self.run(['--export', identifier], armour=True).stdout

    def export(self, output: pathlib.Path, selector: str) -> None:
        log.debug(f"Exporting public keys for {selector} to {output}")
        self.run([
            '--export-options', 'backup',
            '--output', str(output),
            '--export', selector])

    def export_secret(self, output: pathlib.Path, selector: str) -> None:
        log.debug(f"Exporting secret keys for {selector} to {output}")
        self.run([
            '--export-options', 'backup',
            '--output', str(output),
            '--export-secret-keys', selector])

    def export_ownertrust(self, output: pathlib.Path) -> None:
        log.debug(f"Exporting ownertrust to {output}")
        output.write_text(self.run(['--export-ownertrust']).stdout)

    def import_key(self, path: pathlib.Path) -> None:
        log.debug(f"Importing {path}")
        self.run(['--import', str(path)])

    def import_ownertrust(self, path: pathlib.Path) -> None:
        log.debug(f"Importing ownertrust from {path}")
        self.run(['--import-ownertrust', str(path)])

    def set_trust(self, fingerprint: str, level: int) -> None:
        log.debug(f"Setting trust level {level} on {fingerprint}")
        self.run(
            ['--import-ownertrust'],
            stdin=f"{fingerprint}:{TRUST_LEVELS[level]}:\n")
