"""
Interactive input and output.

Everything that blocks on the operator goes through a Prompt, so a session can
be driven by a terminal or by a scripted list of answers.
"""

import typing

import click


class Prompt:
    def ask(self,
            text: str,
            choices: typing.Optional[typing.Sequence[str]] = None,
            default: typing.Optional[str] = None) -> str:
        raise NotImplementedError

    def confirm(self, text: str, default: bool = False) -> bool:
        raise NotImplementedError

    def echo(self, text: str = '', fg: typing.Optional[str] = None) -> None:
        raise NotImplementedError


class TerminalPrompt(Prompt):
    def ask(self, text, choices=None, default=None):
        return click.prompt(
            f"-- {text}",
            type=click.Choice(choices) if choices else click.STRING,
            default=default)

    def confirm(self, text, default=False):
        return click.confirm(f"-- {text}", default=default)

    def echo(self, text='', fg=None):
        click.secho(text, fg=fg)
