"""
Portkey sets up, backs up and restores your SSH and GPG keys.

Run it without a command and it asks for your name and email address, then
offers a menu of operations:

\b
    s       Set up the environment (install git, ssh, gnupg and gh).
    ssg     Set up, generate SSH and GPG keys and configure git signing.
    bssh    Back up the SSH key to your home directory.
    bgpg    Back up the GPG key, secret key and ownertrust.
    rssh    Restore the SSH key.
    rgpg    Restore the GPG key and configure git signing.
    rgit    Restore both keys from a GitHub repository.

Backups are plain files named id_ed25519, id_ed25519.pub, id_rsa, id_rsa.pub,
id_gpg_public, id_gpg_private and gpg_ownertrust. Restoring looks for them in
the transfer directory, then your home directory, then a GitHub repository:

\b
    $ export PORTKEY_TRANSFER="/media/usb/keys"
    $ portkey

Restored bundles are deleted from your home directory once imported.
"""

__version__ = '1.0.0'
