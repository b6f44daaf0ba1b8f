"""Settings for opening, committing to and pushing a gitolite-admin repository."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path

import yaml


@dataclass(frozen=True)
class SshCredentials:
    """SSH identity used to talk to the gitolite server.

    Only the git backend looks inside; everything else passes it through.
    """

    username: str
    public_key: str
    private_key: str


@dataclass(frozen=True)
class AdminSettings:
    """Connection and commit settings for ``GitoliteAdmin``.

    The clone URL is ``url`` when set, otherwise
    ``ssh://<git_user>@<hostname>[:<port>]/gitolite-admin.git``.
    """

    # Clone / push
    git_user: str = "git"
    hostname: str = "localhost"
    port: int | None = None
    url: str | None = None
    public_key: str | None = None
    private_key: str | None = None
    remote: str = "origin"
    branch: str = "master"

    # Commits
    author_name: str = "gitolite-admin"
    author_email: str = "gitolite-admin@localhost"
    commit_msg: str = "Committed by gitolite-admin"

    @property
    def admin_url(self) -> str:
        if self.url:
            return self.url
        host = f"{self.hostname}:{self.port}" if self.port else self.hostname
        return f"ssh://{self.git_user}@{host}/gitolite-admin.git"

    @property
    def upstream(self) -> str:
        """The remote-tracking branch, e.g. ``origin/master``."""
        return f"{self.remote}/{self.branch}"

    @property
    def credentials(self) -> SshCredentials | None:
        if not self.private_key:
            return None
        return SshCredentials(
            username=self.git_user,
            public_key=self.public_key or f"{self.private_key}.pub",
            private_key=self.private_key,
        )

    @classmethod
    def from_dict(cls, data: dict) -> AdminSettings:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(unknown)}")
        return cls(**data)


def load_settings(path: str | Path) -> AdminSettings:
    """Load settings from a YAML mapping, e.g.::

        hostname: git.example.org
        port: 2222
        private_key: ~/.ssh/gitolite_admin
        author_name: Admin Bot
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping of settings")

    for key in ("public_key", "private_key"):
        if data.get(key):
            data[key] = str(Path(data[key]).expanduser())

    return AdminSettings.from_dict(data)
