import logging
import pathlib
import typing

import attr
import click

from . import __doc__, __version__
from .gpg import GPG
from .identity import ask_extra_packages, ask_identity
from .operations import Operation, perform
from .packages import Host, detect_host
from .prompt import Prompt, TerminalPrompt
from .session import Paths, open_session

log = logging.getLogger(__name__)


class PathType(click.Path):
    def convert(self, value, param, ctx):
        return pathlib.Path(super().convert(value, param, ctx))


@attr.s(frozen=True, kw_only=True)
class Settings:
    paths: Paths = attr.ib()
    host: Host = attr.ib()
    gpg_verbose: bool = attr.ib(default=False)


def choose_operation(prompt: Prompt) -> Operation:
    prompt.echo("What do you want to do today?")
    for operation in Operation:
        prompt.echo(f"  {operation.value:<5} {operation.description}")
    return Operation(prompt.ask(
        "Operation",
        choices=[operation.value for operation in Operation]))


@click.group(help=__doc__, invoke_without_command=True)
@click.option(
    '--home',
    type=PathType(file_okay=False, dir_okay=True, exists=True),
    envvar='PORTKEY_HOME',
    default=pathlib.Path.home,
    help="Defaults to your home directory.")
@click.option(
    '--host',
    type=click.Choice([host.value for host in Host]),
    envvar='PORTKEY_HOST',
    default=detect_host,
    help="Selects the package manager. Detected by default.")
@click.option(
    '--transfer',
    type=PathType(file_okay=False, dir_okay=True),
    envvar='PORTKEY_TRANSFER',
    default=None,
    help="External storage checked first when restoring.")
@click.option(
    '--gnupg-home',
    type=PathType(file_okay=False, dir_okay=True),
    envvar='GNUPGHOME',
    default=None,
    help="Forwarded to gpg as GNUPGHOME.")
@click.option(
    '-d', '--debug', 'debug',
    default=False,
    is_flag=True,
    help="Enable debug logging.")
@click.option(
    '-v', '--verbose', 'gpg_verbose',
    default=False,
    is_flag=True,
    help="Pass --verbose to gpg.")
@click.pass_context
def main(
        ctx,
        home: pathlib.Path,
        host: str,
        transfer: typing.Optional[pathlib.Path],
        gnupg_home: typing.Optional[pathlib.Path],
        debug: bool,
        gpg_verbose: bool):
    logging.basicConfig(level=(logging.DEBUG if debug else logging.WARNING))
    ctx.obj = Settings(
        paths=Paths.for_home(home, Host(host), transfer=transfer, gnupg=gnupg_home),
        host=Host(host),
        gpg_verbose=gpg_verbose)

    if ctx.invoked_subcommand is None:
        ctx.invoke(menu)


@main.command()
def version():
    """Show the application version."""
    click.echo(f"portkey {__version__}")


@main.command()
@click.pass_obj
def menu(settings: Settings):
    """Ask for your identity and run one operation."""
    prompt = TerminalPrompt()
    identity = ask_identity(prompt)
    extra_packages = ask_extra_packages(prompt)
    session = open_session(
        identity=identity,
        paths=settings.paths,
        host=settings.host,
        prompt=prompt,
        extra_packages=extra_packages,
        gpg=GPG(verbose=settings.gpg_verbose, home=settings.paths.gnupg))
    perform(choose_operation(prompt), session)
