"""SSH keys of a gitolite keydir.

- models: the SSHKey record and its canonical path
- codec: decoding key files back into records, removing key files
- key_set: per-owner collections with change tracking
- store: loading a keydir and diffing it against memory
"""

from gitolite_admin.keys.key_set import KeySet
from gitolite_admin.keys.models import DEFAULT_LOCATION, SSHKey
from gitolite_admin.keys.store import KeyDiff, KeyStore

__all__ = [
    "DEFAULT_LOCATION",
    "KeyDiff",
    "KeySet",
    "KeyStore",
    "SSHKey",
]
