"""gitolite-admin: manage the SSH keys and config of a gitolite-admin repository."""

__version__ = "0.1.0"

from gitolite_admin.admin import GitoliteAdmin  # noqa: E402
from gitolite_admin.config import PermissionsConfig  # noqa: E402
from gitolite_admin.keys import KeySet, KeyStore, SSHKey  # noqa: E402
from gitolite_admin.settings import AdminSettings, load_settings  # noqa: E402

__all__ = [
    "AdminSettings",
    "GitoliteAdmin",
    "KeySet",
    "KeyStore",
    "PermissionsConfig",
    "SSHKey",
    "load_settings",
]
