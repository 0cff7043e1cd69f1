import pathlib
import subprocess
import typing

import attr
import click.testing
import pytest

import portkey.cli
from portkey.gpg import SecretKey
from portkey.identity import Identity
from portkey.packages import Apt, Host, PackageManager
from portkey.prompt import Prompt
from portkey.session import Paths, open_session
from portkey.ssh import Algorithm
from portkey.utils import GenerationFailure, GPGFailure

KEY_ID = '3AA5C34371567BD2'
FINGERPRINT = '4AEE18F83AFDEB23' + KEY_ID


@attr.s
class ScriptedPrompt(Prompt):
    answers: typing.List[str] = attr.ib(factory=list)
    confirmations: typing.List[bool] = attr.ib(factory=list)
    asked: typing.List[str] = attr.ib(factory=list)
    output: typing.List[str] = attr.ib(factory=list)

    def ask(self, text, choices=None, default=None):
        self.asked.append(text)
        if not self.answers:
            assert default is not None, f"Unexpected prompt: {text}"
            return default
        answer = self.answers.pop(0)
        assert choices is None or answer in choices, f"{answer} not in {choices}"
        return answer

    def confirm(self, text, default=False):
        self.asked.append(text)
        return self.confirmations.pop(0) if self.confirmations else default

    def echo(self, text='', fg=None):
        self.output.extend(text.splitlines() or [''])


@attr.s
class FakeSSH:
    unsupported: typing.Set[Algorithm] = attr.ib(factory=set)
    generated: typing.List[Algorithm] = attr.ib(factory=list)
    added: typing.List[pathlib.Path] = attr.ib(factory=list)

    def keygen(self, algorithm, path, comment):
        if algorithm in self.unsupported:
            return False
        path.write_bytes(f'PRIVATE {algorithm.value} {comment}\n'.encode())
        path.with_name(f'{path.name}.pub').write_bytes(
            f'ssh-{algorithm.value} AAAAC3Nz {comment}\n'.encode())
        self.generated.append(algorithm)
        return True

    def add(self, private):
        self.added.append(private)
        return True


ALICE_KEY = SecretKey(
    key_id=KEY_ID,
    fingerprint=FINGERPRINT,
    uids=('alice <alice@example.com>',))


@attr.s
class FakeGPG:
    keys: typing.List[SecretKey] = attr.ib(factory=list)
    new_key: SecretKey = attr.ib(default=ALICE_KEY)
    fail_generation: bool = attr.ib(default=False)
    calls: typing.List[typing.Tuple[str, ...]] = attr.ib(factory=list)
    trust: typing.Dict[str, int] = attr.ib(factory=dict)
    unreadable: typing.Set[str] = attr.ib(factory=set)

    def generate(self):
        self.calls.append(('generate',))
        if self.fail_generation:
            raise GenerationFailure("gpg --full-generate-key failed")
        self.keys.append(self.new_key)

    def secret_keys(self):
        return list(self.keys)

    def export_public(self, identifier):
        return (
            '-----BEGIN PGP PUBLIC KEY BLOCK-----\n'
            f'{identifier}\n'
            '-----END PGP PUBLIC KEY BLOCK-----\n')

    def export(self, output, selector):
        self.calls.append(('export', selector))
        output.write_bytes(f'public {selector}'.encode())

    def export_secret(self, output, selector):
        self.calls.append(('export-secret-keys', selector))
        output.write_bytes(f'secret {selector}'.encode())

    def export_ownertrust(self, output):
        self.calls.append(('export-ownertrust',))
        output.write_text(''.join(f'{key.fingerprint}:6:\n' for key in self.keys))

    def import_key(self, path):
        self.calls.append(('import', path.name))
        if path.name in self.unreadable:
            raise GPGFailure(f"gpg --import {path.name} exited with status 2")
        if path.read_bytes().startswith(b'secret') and self.new_key not in self.keys:
            self.keys.append(self.new_key)

    def import_ownertrust(self, path):
        self.calls.append(('import-ownertrust', path.name))

    def set_trust(self, fingerprint, level):
        self.trust[fingerprint] = level


@attr.s(frozen=True)
class FakePackages(PackageManager):
    installed: typing.Set[str] = attr.ib(factory=lambda: {'git', 'ssh', 'gpg', 'gh'})
    working: bool = attr.ib(default=True)
    history: typing.List[typing.Any] = attr.ib(factory=list)

    packages = Apt.packages

    def update(self):
        self.history.append('update')

    def install(self, names):
        self.history.append(('install', frozenset(names)))
        if self.working:
            self.installed.update(
                command for command, package in self.packages.items() if package in names)

    def is_installed(self, command):
        return command in self.installed


@pytest.fixture()
def home(tmp_path):
    home = tmp_path / 'home'
    home.mkdir()
    return home


@pytest.fixture()
def transfer(tmp_path):
    transfer = tmp_path / 'transfer'
    transfer.mkdir()
    return transfer


@pytest.fixture()
def prompt():
    return ScriptedPrompt()


@pytest.fixture()
def ssh():
    return FakeSSH()


@pytest.fixture()
def gpg():
    return FakeGPG()


@pytest.fixture()
def packages(home):
    return FakePackages(home)


@pytest.fixture()
def identity():
    return Identity(username='alice', email='alice@example.com')


@pytest.fixture()
def paths(home, transfer):
    return Paths.for_home(home, Host.UBUNTU, transfer=transfer)


@pytest.fixture()
def session(identity, paths, prompt, gpg, ssh, packages):
    return open_session(
        identity=identity,
        paths=paths,
        host=Host.UBUNTU,
        prompt=prompt,
        gpg=gpg,
        ssh=ssh,
        packages=packages)


@pytest.fixture()
def no_subprocesses(monkeypatch):
    """Make external commands such as 'gh auth login' succeed without running."""
    commands: typing.List[typing.Sequence[str]] = []

    def run(command, *args, **kwargs):
        commands.append(tuple(command))
        return subprocess.CompletedProcess(command, 0, stdout='', stderr='')

    monkeypatch.setattr(subprocess, 'run', run)
    return commands


def write_ssh_bundle(directory: pathlib.Path, name: str = 'id_ed25519') -> None:
    (directory / name).write_bytes(b'PRIVATE ' + name.encode())
    (directory / f'{name}.pub').write_bytes(b'ssh-ed25519 AAAAC3Nz ' + name.encode())


def write_gpg_bundle(directory: pathlib.Path, *names: str) -> None:
    contents = {
        'id_gpg_public': b'public alice@example.com',
        'id_gpg_private': b'secret alice@example.com',
        'gpg_ownertrust': f'{FINGERPRINT}:6:\n'.encode(),
    }
    for name in names or contents:
        (directory / name).write_bytes(contents[name])


@pytest.fixture()
def invoke(home):
    def invoke_func(
            arguments: typing.Sequence[str],
            input: typing.Optional[str] = None,
            exit_code: int = 0):
        assert all(isinstance(arg, str) for arg in arguments)
        runner = click.testing.CliRunner()
        result = runner.invoke(
            portkey.cli.main,
            ['--home', str(home), '--host', 'ubuntu', *arguments],
            input=input)
        if result.exit_code != exit_code:
            message = f"Command portkey {' '.join(arguments)} exited with {result.exit_code}"
            raise Exception(f"{message}\n{result.output}") from result.exception
        return result.output.splitlines()

    return invoke_func
