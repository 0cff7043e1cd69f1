import logging
import os
import pathlib
import shutil
import typing

import click

log = logging.getLogger(__name__)

PRIVATE_MODE = 0o600
PUBLIC_MODE = 0o644
DIRECTORY_MODE = 0o700


def restrict(path: pathlib.Path, mode: int = PRIVATE_MODE) -> pathlib.Path:
    """Set the permission bits of a path and return it."""
    path.chmod(mode)
    return path


def load_git():
    """
    Import GitPython, which may happen before git itself is installed.

    Call `git.refresh()` once git has been installed to pick up the binary.
    """
    os.environ.setdefault('GIT_PYTHON_REFRESH', 'quiet')
    import git
    return git


def remove(paths: typing.Iterable[pathlib.Path]) -> None:
    """Delete files and directory trees, ignoring paths that are already gone."""
    for path in paths:
        if path.is_dir():
            log.debug(f"Removing directory {path}")
            shutil.rmtree(path)
        elif path.exists():
            log.debug(f"Removing {path}")
            path.unlink()


class PortkeyException(click.ClickException):
    pass


class InvalidFormat(PortkeyException):
    pass


class BundleNotFound(PortkeyException):
    pass


class InconsistentBundle(PortkeyException):
    pass


class InconsistentKeyPair(PortkeyException):
    pass


class ToolMissing(PortkeyException):
    pass


class GenerationFailure(PortkeyException):
    pass


class KeyExists(PortkeyException):
    pass


class GPGFailure(PortkeyException):
    pass


class SigningKeyRequired(PortkeyException):
    pass
