import logging
import pathlib
import typing

import attr

from .identity import Identity
from .utils import SigningKeyRequired, load_git

log = logging.getLogger(__name__)

EDITOR = 'nano'

TTY_COMMENT = '# Set `GPG_TTY` for GPG (GNU Privacy Guard) passphrase handling.'
TTY_LINE = 'export GPG_TTY=$(tty)'


@attr.s(kw_only=True)
class GitIdentityBinding:
    identity: typing.Optional[Identity] = attr.ib(default=None)
    signing_key_id: typing.Optional[str] = attr.ib(default=None)
    signing_enabled: bool = attr.ib(default=False)
    editor: typing.Optional[str] = attr.ib(default=None)


@attr.s(frozen=True, kw_only=True)
class GitIdentityBinder:
    """Binds identity and signing key into the global git configuration."""

    config: pathlib.Path = attr.ib()
    shellrc: pathlib.Path = attr.ib()
    binding: GitIdentityBinding = attr.ib(factory=GitIdentityBinding)

    def set(self, values: typing.Mapping[typing.Tuple[str, str], str]) -> None:
        git = load_git()
        # Included files stop GitPython writing the config back.
        with git.GitConfigParser(
                str(self.config), read_only=False, merge_includes=False) as config:
            for (section, option), value in values.items():
                log.debug(f"Setting {section}.{option}={value} in {self.config}")
                config.set_value(section, option, value)

    def get(self, section: str, option: str, default=None):
        parser = load_git().GitConfigParser(str(self.config), read_only=True)
        return parser.get_value(section, option, default)

    def bind_identity(self, identity: Identity) -> None:
        self.set({
            ('user', 'name'): identity.username,
            ('user', 'email'): identity.email,
        })
        self.binding.identity = identity
        log.info(f"Bound git identity {identity}")

    def bind_signing_key(self, identifier: typing.Optional[str]) -> None:
        if not identifier:
            if self.binding.signing_enabled:
                log.info("Commit signing stays enabled for this session")
                return
            raise SigningKeyRequired("A signing key ID is required")

        self.set({
            ('commit', 'gpgsign'): 'true',
            ('user', 'signingkey'): identifier,
        })
        self.binding.signing_key_id = identifier
        self.binding.signing_enabled = True
        log.info(f"Bound git signing key {identifier}")

    def bind_editor(self, name: str = EDITOR) -> None:
        self.set({('core', 'editor'): name})
        self.binding.editor = name

    def ensure_tty_binding(self) -> bool:
        """
        Export GPG_TTY from the shell startup file.

        Returns False if the line was already present.
        """
        self.shellrc.touch(exist_ok=True)
        text = self.shellrc.read_text()

        if TTY_LINE in (line.strip() for line in text.splitlines()):
            log.info(f"GPG_TTY is already exported in {self.shellrc}")
            return False

        with self.shellrc.open('a') as file:
            if text and not text.endswith('\n'):
                file.write('\n')
            file.write(f'{TTY_COMMENT}\n{TTY_LINE}\n')
        log.info(f"Added GPG_TTY to {self.shellrc}")
        return True
