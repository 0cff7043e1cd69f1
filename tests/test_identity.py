import pytest

from portkey.identity import (
    Identity,
    ask_email,
    ask_extra_packages,
    ask_identity,
    validate_email,
)
from portkey.utils import InvalidFormat


@pytest.mark.parametrize('email', [
    'a@b.co',
    'a.b@c.d.com',
    'alice@example.com',
    'first+tag@sub-domain.example.org',
    'under_score%@example.io',
])
def test_valid_email(email):
    assert validate_email(email) == email


@pytest.mark.parametrize('email', [
    'a@b',
    'a@b.c',
    '@b.co',
    'a@.co',
    'a@b.c0',
    'a b@c.com',
    'alice@example.com ',
    'alice.example.com',
    '',
])
def test_invalid_email(email):
    with pytest.raises(InvalidFormat):
        validate_email(email)


def test_identity_rejects_invalid_email():
    with pytest.raises(InvalidFormat):
        Identity(username='alice', email='alice@example')


def test_identity_rejects_empty_username():
    with pytest.raises(InvalidFormat):
        Identity(username='  ', email='alice@example.com')


def test_ask_email_retries_until_valid(prompt):
    prompt.answers = ['a@b', 'not an email', 'alice@example.com']
    assert ask_email(prompt) == 'alice@example.com'
    assert len([line for line in prompt.output if 'Please try again' in line]) == 2


def test_ask_identity(prompt):
    prompt.answers = ['', 'alice', 'alice@example', 'alice@example.com']
    assert ask_identity(prompt) == Identity(username='alice', email='alice@example.com')


def test_no_extra_packages(prompt):
    prompt.confirmations = [False]
    assert ask_extra_packages(prompt) == {'gh'}


def test_extra_packages(prompt):
    prompt.confirmations = [True]
    prompt.answers = ['vim tmux']
    assert ask_extra_packages(prompt) == {'gh', 'vim', 'tmux'}
