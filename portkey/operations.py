"""
The operations offered by the interactive menu.
"""

import enum
import logging
import typing

from .keystore import KeyKind
from .remote import RemoteRepository
from .session import Session

log = logging.getLogger(__name__)


class Operation(enum.Enum):
    SETUP = 's'
    SETUP_GENERATE = 'ssg'
    BACKUP_SSH = 'bssh'
    BACKUP_GPG = 'bgpg'
    RESTORE_SSH = 'rssh'
    RESTORE_GPG = 'rgpg'
    RESTORE_REMOTE = 'rgit'

    @property
    def description(self) -> str:
        return DESCRIPTIONS[self]


DESCRIPTIONS = {
    Operation.SETUP: "Set up the environment",
    Operation.SETUP_GENERATE: "Set up the environment and generate SSH and GPG keys",
    Operation.BACKUP_SSH: "Back up the SSH key",
    Operation.BACKUP_GPG: "Back up the GPG key",
    Operation.RESTORE_SSH: "Restore the SSH key",
    Operation.RESTORE_GPG: "Restore the GPG key",
    Operation.RESTORE_REMOTE: "Restore SSH and GPG keys from a GitHub repository",
}


def setup(session: Session) -> None:
    packages = session.packages
    packages.prepare()
    packages.update()
    packages.install(packages.required | session.extra_packages)
    session.prompt.echo("Required packages have been installed.", fg='green')


def setup_generate(session: Session) -> None:
    """Set up the host, generate both keys and configure git to sign with them."""
    setup(session)
    session.remote_auth.login()

    keystore, binder = session.keystore, session.binder
    ssh = keystore.generate_ssh(session.identity.email)
    gpg = keystore.generate_gpg(session.identity.email)

    binder.bind_signing_key(gpg.identifier)
    binder.bind_identity(session.identity)
    binder.ensure_tty_binding()
    binder.bind_editor()

    prompt = session.prompt
    prompt.echo("Your SSH public key:", fg='cyan')
    prompt.echo(ssh.public.decode('utf-8').rstrip())
    prompt.echo("Your GPG public key:", fg='cyan')
    prompt.echo(gpg.public.decode('utf-8').rstrip())
    prompt.echo("Add both public keys to your GitHub account.", fg='green')


def backup_ssh(session: Session) -> None:
    pair = session.keystore.discover_ssh()
    if pair is None:
        session.prompt.echo("No existing SSH key found.", fg='yellow')
        return
    artifacts = session.bundle.export_ssh(pair)
    session.prompt.echo(f"Backed up {artifacts} to {artifacts.directory}", fg='green')


def backup_gpg(session: Session) -> None:
    artifacts = session.bundle.export_gpg(session.identity.email)
    assert artifacts.trust is not None
    session.prompt.echo(artifacts.trust.read_text().rstrip())
    session.prompt.echo(f"Backed up {artifacts} to {artifacts.directory}", fg='green')


def restore_ssh(session: Session) -> None:
    session.orchestrator().run({KeyKind.SSH})


def restore_gpg(session: Session) -> None:
    session.orchestrator().run({KeyKind.GPG})
    session.remote_auth.login()


def restore_remote(session: Session) -> None:
    remote = RemoteRepository(
        owner=session.prompt.ask("GitHub username"),
        name=session.prompt.ask("GitHub repository name"))
    session.orchestrator(remote).run({KeyKind.SSH, KeyKind.GPG})


OPERATIONS: typing.Dict[Operation, typing.Callable[[Session], None]] = {
    Operation.SETUP: setup,
    Operation.SETUP_GENERATE: setup_generate,
    Operation.BACKUP_SSH: backup_ssh,
    Operation.BACKUP_GPG: backup_gpg,
    Operation.RESTORE_SSH: restore_ssh,
    Operation.RESTORE_GPG: restore_gpg,
    Operation.RESTORE_REMOTE: restore_remote,
}


def perform(operation: Operation, session: Session) -> None:
    log.info(f"Performing {operation.name.lower()}")
    OPERATIONS[operation](session)
