"""Shared fixtures: a throwaway bare gitolite-admin remote seeded with config and keys."""

from pathlib import Path

import pytest
from git import Actor, Repo

from gitolite_admin.settings import AdminSettings

ACTOR = Actor("Seed Admin", "seed@example.org")

BLOB = "AAAAC3NzaC1lZDI1NTE5AAAAIOMqqnkVzrm0SdG6UOoqKLsabgH5C9okWi0dh2l9GKJl"
ADMIN_KEY = f"ssh-ed25519 {BLOB} admin@example.org\n"
BOB_KEY = f"ssh-rsa {BLOB} bob@example.org\n"

GITOLITE_CONF = """repo gitolite-admin
    RW+     =   admin

repo testing
    RW+     =   @all
"""


def make_remote(root: Path) -> Path:
    """Create ``root/remote.git`` holding one commit of a gitolite-admin tree."""
    remote = root / "remote.git"
    Repo.init(remote, bare=True, initial_branch="master")

    seed_path = root / "seed"
    seed = Repo.init(seed_path, initial_branch="master")
    (seed_path / "conf").mkdir()
    (seed_path / "conf" / "gitolite.conf").write_text(GITOLITE_CONF)
    (seed_path / "keydir" / "bob").mkdir(parents=True)
    (seed_path / "keydir" / "admin.pub").write_text(ADMIN_KEY)
    (seed_path / "keydir" / "bob" / "bob.pub").write_text(BOB_KEY)

    seed.index.add(["conf/gitolite.conf", "keydir/admin.pub", "keydir/bob/bob.pub"])
    seed.index.commit("Initial commit", author=ACTOR, committer=ACTOR)
    seed.create_remote("origin", str(remote)).push("refs/heads/master:refs/heads/master")
    return remote


@pytest.fixture
def remote(tmp_path) -> Path:
    return make_remote(tmp_path)


@pytest.fixture
def settings(remote) -> AdminSettings:
    return AdminSettings(
        url=str(remote),
        author_name="Test Admin",
        author_email="admin@example.org",
        commit_msg="Update keys",
    )
