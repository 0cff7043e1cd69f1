import enum
import logging
import os
import pathlib
import re
import subprocess
import typing

import attr

log = logging.getLogger(__name__)

AGENT_VARIABLE = re.compile(r'(SSH_AUTH_SOCK|SSH_AGENT_PID)=([^;]+);')


class Algorithm(enum.Enum):
    ED25519 = 'ed25519'
    RSA4096 = 'rsa4096'
    GPG = 'gpg'

    @property
    def filename(self) -> str:
        return {
            Algorithm.ED25519: 'id_ed25519',
            Algorithm.RSA4096: 'id_rsa',
        }[self]

    @property
    def keygen_arguments(self) -> typing.Tuple[str, ...]:
        return {
            Algorithm.ED25519: ('-t', 'ed25519'),
            Algorithm.RSA4096: ('-t', 'rsa', '-b', '4096'),
        }[self]


# Preferred first.
SSH_ALGORITHMS = (Algorithm.ED25519, Algorithm.RSA4096)


@attr.s(frozen=True)
class SSH:
    agent: typing.Dict[str, str] = attr.ib(factory=dict)

    def keygen(
            self,
            algorithm: Algorithm,
            path: pathlib.Path,
            comment: str) -> bool:
        """
        Generate a key pair at path, letting ssh-keygen ask for a passphrase.

        Returns False when ssh-keygen fails, e.g. for an unsupported algorithm.
        """
        log.debug(f"Generating {algorithm.value} key at {path}")
        result = subprocess.run((
            'ssh-keygen', *algorithm.keygen_arguments,
            '-C', comment,
            '-f', str(path)))
        if result.returncode != 0:
            log.warning(f"ssh-keygen failed to generate a {algorithm.value} key")
        return result.returncode == 0

    def environment(self) -> typing.Dict[str, str]:
        """Find a running agent, starting one if there is none."""
        if 'SSH_AUTH_SOCK' in os.environ:
            return dict(os.environ)

        if not self.agent:
            log.info("Starting ssh-agent")
            result = subprocess.run(
                ('ssh-agent', '-s'),
                stdout=subprocess.PIPE,
                encoding='utf-8',
                check=True)
            self.agent.update(AGENT_VARIABLE.findall(result.stdout))
            log.debug(f"Started ssh-agent with pid {self.agent.get('SSH_AGENT_PID')}")

        return {**os.environ, **self.agent}

    def add(self, private: pathlib.Path) -> bool:
        log.debug(f"Adding {private} to ssh-agent")
        result = subprocess.run(
            ('ssh-add', str(private)),
            env=self.environment())
        if result.returncode != 0:
            log.warning(f"ssh-add could not add {private} to the agent")
        return result.returncode == 0
