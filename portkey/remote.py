import logging
import pathlib
import subprocess

import attr

from .packages import PackageManager
from .utils import load_git

log = logging.getLogger(__name__)


@attr.s(frozen=True)
class RemoteAuth:
    """Log in to GitHub through the gh CLI."""

    packages: PackageManager = attr.ib()

    def login(self) -> bool:
        self.packages.ensure('gh')
        result = subprocess.run(('gh', 'auth', 'login'))
        if result.returncode != 0:
            log.warning("gh auth login did not complete")
        return result.returncode == 0


@attr.s(frozen=True)
class RemoteRepository:
    """A GitHub repository holding a backup bundle."""

    owner: str = attr.ib()
    name: str = attr.ib()

    def __str__(self):
        return f"{self.owner}/{self.name}"

    @property
    def url(self) -> str:
        return f"https://github.com/{self.owner}/{self.name}.git"

    def clone(self, directory: pathlib.Path) -> bool:
        log.info(f"Cloning {self.url} into {directory}")
        git = load_git()
        git.refresh()
        try:
            git.Repo.clone_from(self.url, str(directory))
        except git.exc.CommandError as error:
            for line in str(error.stderr).strip().splitlines():
                log.error(line)
            return False
        return True
