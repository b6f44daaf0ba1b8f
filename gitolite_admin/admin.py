"""Gitolite admin repository: load, change, commit, merge and push.

Ties a git working tree of ``gitolite-admin`` to the in-memory permissions
config and key store::

    admin = GitoliteAdmin("~/gitolite-admin", AdminSettings(hostname="git.example.org"))
    admin.add_key(SSHKey.from_string(key_line, owner="alice", location="laptop"))
    admin.save()
    admin.push()
"""

from __future__ import annotations

import logging
from pathlib import Path

from git import Actor

from gitolite_admin.config import PermissionsConfig
from gitolite_admin.errors import (
    GitoliteAdminError,
    InvalidLayout,
    NothingToCommit,
)
from gitolite_admin.keys.codec import remove_key_file
from gitolite_admin.keys.models import SSHKey
from gitolite_admin.keys.store import KeyStore
from gitolite_admin.settings import AdminSettings
from gitolite_admin.utils.git_ops import GitBackend

logger = logging.getLogger(__name__)

CONF_DIR = "conf"
KEY_DIR = "keydir"
CONFIG_FILE = "gitolite.conf"
CONFIG_PATH = f"{CONF_DIR}/{CONFIG_FILE}"

REQUIRED_PATHS = [CONF_DIR, KEY_DIR, CONFIG_PATH]


class GitoliteAdmin:
    """A checked-out gitolite-admin repository.

    Opening an empty or missing ``path`` clones the repository from
    ``settings.admin_url``. Opening an existing directory requires it to be a
    git working tree containing ``conf/``, ``keydir/`` and
    ``conf/gitolite.conf``.
    """

    def __init__(self, path: str | Path, settings: AdminSettings | None = None) -> None:
        self.settings = settings or AdminSettings()
        self.backend = self._open_or_clone(Path(path).expanduser())

        self.path = self.backend.working_dir
        self.conf_dir_path = self.path / CONF_DIR
        self.key_dir_path = self.path / KEY_DIR
        self.config_file_path = self.path / CONFIG_PATH

        self._config: PermissionsConfig | None = None
        self._ssh_keys: KeyStore | None = None

        self.reload()

    @staticmethod
    def is_admin_repo(path: str | Path) -> bool:
        """Check whether ``path`` is a non-empty gitolite-admin working tree."""
        try:
            backend = GitBackend.open(path)
        except GitoliteAdminError:
            return False
        return not backend.is_empty and not backend.missing_paths(REQUIRED_PATHS)

    def _open_or_clone(self, path: Path) -> GitBackend:
        credentials = self.settings.credentials
        if not path.exists() or (path.is_dir() and not any(path.iterdir())):
            logger.info("Cloning %s into %s", self.settings.admin_url, path)
            backend = GitBackend.clone(
                self.settings.admin_url, path, credentials, branch=self.settings.branch
            )
        else:
            backend = GitBackend.open(path, credentials)

        missing = backend.missing_paths(REQUIRED_PATHS)
        # A repository without commits has nothing to commit on top of
        if backend.is_empty:
            missing.append("HEAD")
        if missing:
            raise InvalidLayout(path, missing)
        return backend

    # ------------------------------------------------------------------
    # In-memory state
    # ------------------------------------------------------------------

    @property
    def config(self) -> PermissionsConfig:
        if self._config is None:
            self._config = PermissionsConfig.load(self.config_file_path)
        return self._config

    @config.setter
    def config(self, config: PermissionsConfig) -> None:
        self._config = config

    @property
    def ssh_keys(self) -> KeyStore:
        if self._ssh_keys is None:
            self._ssh_keys = KeyStore.load(self.key_dir_path)
        return self._ssh_keys

    @property
    def is_dirty(self) -> bool:
        """True once a key set was changed since the last reload."""
        return self._ssh_keys is not None and any(
            key_set.modified for _owner, key_set in self._ssh_keys.items()
        )

    def add_key(self, key: SSHKey) -> None:
        if not isinstance(key, SSHKey):
            raise TypeError("Key must be of type SSHKey")
        self.ssh_keys.add(key)

    def remove_key(self, key: SSHKey) -> None:
        if not isinstance(key, SSHKey):
            raise TypeError("Key must be of type SSHKey")
        self.ssh_keys.remove(key)

    def reload(self) -> None:
        """Drop in-memory state and decode config and keys from the working tree."""
        self._ssh_keys = KeyStore.load(self.key_dir_path)
        self._config = PermissionsConfig.load(self.config_file_path)

    def reset(self) -> None:
        """Hard-reset to the upstream branch, dropping local changes, then reload."""
        self.backend.reset_hard(self.settings.upstream)
        self.backend.clean([CONF_DIR, KEY_DIR])
        self.reload()

    # ------------------------------------------------------------------
    # Commit / sync
    # ------------------------------------------------------------------

    @property
    def _commit_author(self) -> Actor:
        return Actor(self.settings.author_name, self.settings.author_email)

    def save(self, message: str | None = None) -> str:
        """Write changed config and keys, stage them and commit on top of HEAD.

        Returns the new commit's SHA.

        Raises:
            NothingToCommit: If the resulting tree is identical to HEAD's.
        """
        staging = self.backend.staging()

        if self._config is not None:
            written = self._config.to_file(self.conf_dir_path)
            staging.add(written.relative_to(self.path).as_posix())

        if self._ssh_keys is not None:
            diff = self._ssh_keys.diff(self.key_dir_path)

            for rel_path in diff.to_delete:
                remove_key_file(self.key_dir_path, rel_path)
                staging.remove(f"{KEY_DIR}/{rel_path}")

            for key in diff.to_write:
                key.to_file(self.key_dir_path)
                staging.add(f"{KEY_DIR}/{key.relative_path}")

        tree = staging.write_tree()
        head = self.backend.head_commit
        if tree.hexsha == head.tree.hexsha:
            raise NothingToCommit("No changes to commit")

        commit = self.backend.create_commit(
            tree,
            message or self.settings.commit_msg,
            parents=[head],
            author=self._commit_author,
        )
        logger.info("Committed %s: %s", commit.hexsha[:12], commit.summary)
        return commit.hexsha

    def push(self) -> None:
        """Push the local branch to the remote. Rejections are not retried."""
        branch = self.settings.branch
        self.backend.push(self.settings.remote, [f"refs/heads/{branch}:refs/heads/{branch}"])

    def save_and_push(self, message: str | None = None) -> str:
        sha = self.save(message)
        self.push()
        return sha

    def update(self) -> str | None:
        """Reset to upstream, fetch, and merge the remote branch into the local one.

        Only ``<remote>/<branch>`` into ``<branch>`` is supported. Returns the
        merge commit's SHA, or None when the local branch already contains the
        remote head.

        Raises:
            MergeConflict: If the two heads cannot be merged cleanly. The
                repository is left at the reset state.
        """
        self.reset()
        self.backend.fetch(self.settings.remote)

        local = self.backend.branch_target(self.settings.branch)
        upstream = self.backend.branch_target(self.settings.upstream)

        if self.backend.is_ancestor(upstream, local):
            logger.info("%s is already up to date with %s", self.settings.branch, self.settings.upstream)
            self.reload()
            return None

        merged = self.backend.merge_commits(local, upstream)
        commit = self.backend.create_commit(
            merged.write_tree(),
            f"Merged `{self.settings.upstream}` into `{self.settings.branch}`",
            parents=[local, upstream],
            author=self._commit_author,
        )
        self.backend.reset_hard("HEAD")
        logger.info("Merged %s into %s as %s", upstream.hexsha[:12], local.hexsha[:12], commit.hexsha[:12])

        self.reload()
        return commit.hexsha
