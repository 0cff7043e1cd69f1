import logging
import re
import typing

import attr

from .prompt import Prompt
from .utils import InvalidFormat

log = logging.getLogger(__name__)

EMAIL = re.compile(r'[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}')

# gh is needed for remote auth, so it is always installed alongside extras.
DEFAULT_PACKAGES = frozenset({'gh'})


def validate_email(value: str) -> str:
    """
    Check an address has the form 'local@domain.tld'.

    The domain must contain a dot and end in a label of two or more letters.
    """
    if not EMAIL.fullmatch(value):
        raise InvalidFormat(f"Invalid email address format: {value!r}")
    return value


def _validate_email(instance, attribute, value):
    validate_email(value)


def _validate_username(instance, attribute, value):
    if not value.strip():
        raise InvalidFormat("Username must not be empty")


@attr.s(frozen=True, kw_only=True)
class Identity:
    username: str = attr.ib(validator=_validate_username)
    email: str = attr.ib(validator=_validate_email)

    def __str__(self):
        return f"{self.username} <{self.email}>"


def ask_username(prompt: Prompt) -> str:
    while True:
        username = prompt.ask("Enter your username").strip()
        if username:
            return username
        prompt.echo("Username must not be empty. Please try again.", fg='yellow')


def ask_email(prompt: Prompt) -> str:
    """Ask for an email address until a valid one is given."""
    while True:
        try:
            return validate_email(prompt.ask("Enter your email address").strip())
        except InvalidFormat as error:
            log.debug(error.format_message())
            prompt.echo(f"{error.format_message()}. Please try again.", fg='yellow')


def ask_identity(prompt: Prompt) -> Identity:
    return Identity(username=ask_username(prompt), email=ask_email(prompt))


def ask_extra_packages(prompt: Prompt) -> typing.FrozenSet[str]:
    if not prompt.confirm("Do you want to install any other packages?"):
        return DEFAULT_PACKAGES
    names = prompt.ask("Enter the names of the packages you want to install")
    return DEFAULT_PACKAGES | frozenset(names.split())
