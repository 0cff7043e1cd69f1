import pytest

from portkey import packages
from portkey.packages import Apt, Host, Pkg, detect_host
from portkey.utils import ToolMissing


@pytest.fixture()
def which(monkeypatch):
    available = set()

    def which(command):
        return f'/usr/bin/{command}' if command in available else None

    monkeypatch.setattr(packages.shutil, 'which', which)
    return available


def test_detect_termux(monkeypatch):
    monkeypatch.setenv('TERMUX_VERSION', '0.118.0')
    assert detect_host() == Host.TERMUX.value


def test_detect_ubuntu(monkeypatch):
    monkeypatch.delenv('TERMUX_VERSION', raising=False)
    monkeypatch.setenv('PREFIX', '/usr')
    assert detect_host() == Host.UBUNTU.value


def test_apt_install(no_subprocesses, home):
    Apt(home).install({'gnupg', 'git'})
    assert no_subprocesses == [('sudo', 'apt', 'install', 'git', 'gnupg', '-y')]


def test_apt_required(home):
    assert Apt(home).required == {'git', 'openssh-client', 'gnupg'}


def test_pkg_update(no_subprocesses, home):
    Pkg(home).update()
    assert no_subprocesses == [('pkg', 'update'), ('pkg', 'upgrade', '-y')]


def test_pkg_prepare_sets_up_storage(no_subprocesses, home):
    Pkg(home).prepare()
    assert no_subprocesses == [('termux-setup-storage',)]


def test_pkg_prepare_skips_existing_storage(no_subprocesses, home):
    (home / 'storage').mkdir()
    Pkg(home).prepare()
    assert no_subprocesses == []


def test_ensure_installed_tool(no_subprocesses, which, home):
    which.add('gpg')
    Apt(home).ensure('gpg')
    assert no_subprocesses == []


def test_ensure_missing_tool_is_checked_once(no_subprocesses, which, home):
    with pytest.raises(ToolMissing):
        Pkg(home).ensure('ssh')
    assert no_subprocesses == [
        ('pkg', 'update'),
        ('pkg', 'upgrade', '-y'),
        ('pkg', 'install', 'openssh', '-y'),
    ]


def test_ensure_installs_missing_tool(packages):
    packages.installed.discard('gpg')
    packages.ensure('gpg')
    assert packages.history == ['update', ('install', frozenset({'gnupg'}))]
    assert packages.is_installed('gpg')
