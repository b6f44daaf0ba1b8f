"""Git operations: open, clone, stage, commit, merge and push the admin repo."""

from __future__ import annotations

import logging
import os
import shlex
import tempfile
from contextlib import contextmanager
from pathlib import Path

from git import (
    Actor,
    BaseIndexEntry,
    Blob,
    Commit,
    GitCommandError,
    IndexEntry,
    IndexFile,
    InvalidGitRepositoryError,
    NoSuchPathError,
    PushInfo,
    Repo,
)
from git.util import hex_to_bin

from gitolite_admin.errors import (
    CloneFailed,
    FetchFailed,
    MergeConflict,
    NotAGitRepo,
    PushRejected,
)
from gitolite_admin.settings import SshCredentials

logger = logging.getLogger(__name__)

_PUSH_FAILED = (
    PushInfo.ERROR | PushInfo.REJECTED | PushInfo.REMOTE_REJECTED | PushInfo.REMOTE_FAILURE
)


def ssh_environment(credentials: SshCredentials | None) -> dict[str, str]:
    """Return the git environment that makes ssh use ``credentials``."""
    if credentials is None:
        return {}
    command = [
        "ssh",
        "-i", credentials.private_key,
        "-o", "IdentitiesOnly=yes",
        "-l", credentials.username,
    ]
    return {"GIT_SSH_COMMAND": " ".join(shlex.quote(part) for part in command)}


class StagingArea:
    """In-memory view of the repository index.

    Additions and removals only touch the index file on disk when
    ``write_tree()`` is called, so an aborted save leaves it untouched.
    """

    def __init__(self, repo: Repo) -> None:
        self.repo = repo
        self.index: IndexFile = repo.index

    def add(self, path: str) -> None:
        self.index.add([path], write=False)

    def remove(self, path: str) -> None:
        for key in [k for k in self.index.entries if k[0] == path]:
            del self.index.entries[key]

    def paths(self) -> list[str]:
        return sorted({path for path, _stage in self.index.entries})

    def write_tree(self):
        """Write the index to disk and return the tree object it describes."""
        tree = self.index.write_tree()
        self.index.write()
        return tree


class GitBackend:
    """Thin wrapper around a GitPython ``Repo`` for the admin repository."""

    def __init__(self, repo: Repo, credentials: SshCredentials | None = None) -> None:
        self.repo = repo
        self.credentials = credentials

    @classmethod
    def open(cls, path: str | Path, credentials: SshCredentials | None = None) -> GitBackend:
        """Open an existing working tree.

        Raises:
            NotAGitRepo: If ``path`` is not the root of a git working tree.
        """
        try:
            repo = Repo(path)
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise NotAGitRepo(path) from None
        if repo.bare:
            raise NotAGitRepo(path)
        return cls(repo, credentials)

    @classmethod
    def clone(
        cls,
        url: str,
        path: str | Path,
        credentials: SshCredentials | None = None,
        branch: str | None = None,
    ) -> GitBackend:
        """Clone ``url`` into ``path``."""
        kwargs = {"branch": branch} if branch else {}
        try:
            repo = Repo.clone_from(url, Path(path), env=ssh_environment(credentials), **kwargs)
        except GitCommandError as e:
            raise CloneFailed(f"Could not clone {url}: {e.stderr.strip() or e}") from e
        return cls(repo, credentials)

    @property
    def working_dir(self) -> Path:
        return Path(self.repo.working_tree_dir)

    @property
    def is_empty(self) -> bool:
        return not self.repo.head.is_valid()

    def missing_paths(self, required: list[str]) -> list[str]:
        """Return the entries of ``required`` that do not exist in the working tree."""
        return [p for p in required if not (self.working_dir / p).exists()]

    @contextmanager
    def _environment(self):
        with self.repo.git.custom_environment(**ssh_environment(self.credentials)):
            yield

    # ------------------------------------------------------------------
    # Local history
    # ------------------------------------------------------------------

    @property
    def head_commit(self) -> Commit:
        return self.repo.head.commit

    def branch_target(self, name: str) -> Commit:
        """Resolve a local or remote-tracking branch name to its commit."""
        return self.repo.commit(name)

    def is_ancestor(self, ancestor: Commit, descendant: Commit) -> bool:
        return self.repo.is_ancestor(ancestor, descendant)

    def reset_hard(self, ref: str = "HEAD") -> None:
        """Point the current branch at ``ref`` and discard index and working tree changes."""
        self.repo.head.reset(commit=ref, index=True, working_tree=True)

    def clean(self, paths: list[str]) -> None:
        """Delete untracked files and directories below ``paths``."""
        self.repo.git.clean("-f", "-d", "--", *paths)

    def staging(self) -> StagingArea:
        return StagingArea(self.repo)

    def create_commit(
        self,
        tree,
        message: str,
        parents: list[Commit],
        author: Actor,
        committer: Actor | None = None,
        update_ref: bool = True,
    ) -> Commit:
        """Create a commit of ``tree``; moves the current branch when ``update_ref``."""
        return Commit.create_from_tree(
            self.repo,
            tree,
            message,
            parent_commits=parents,
            head=update_ref,
            author=author,
            committer=committer or author,
        )

    def merge_commits(self, ours: Commit, theirs: Commit) -> IndexFile:
        """Three-way merge ``theirs`` into ``ours`` in memory.

        Trees are merged first; files changed on both sides are then merged
        line by line with ``git merge-file``. Returns an index holding the
        merged tree.

        Raises:
            MergeConflict: If any path cannot be merged without manual help.
        """
        bases = self.repo.merge_base(ours, theirs)
        if not bases:
            raise MergeConflict(ours.hexsha, theirs.hexsha, ["<no common ancestor>"])

        index = IndexFile.from_tree(self.repo, bases[0], ours, theirs)
        conflicts = []
        for path, blobs in index.unmerged_blobs().items():
            stages = dict(blobs)
            # Modified on one side, deleted on the other
            if 2 not in stages or 3 not in stages:
                conflicts.append(str(path))
                continue

            merged = self._merge_file(stages.get(1), stages[2], stages[3])
            if merged is None:
                conflicts.append(str(path))
                continue

            for stage in stages:
                del index.entries[(path, stage)]
            entry = BaseIndexEntry((stages[2].mode, hex_to_bin(merged), 0, path))
            index.entries[(path, 0)] = IndexEntry.from_base(entry)

        if conflicts:
            raise MergeConflict(ours.hexsha, theirs.hexsha, sorted(conflicts))
        return index

    def _merge_file(self, base: Blob | None, ours: Blob, theirs: Blob) -> str | None:
        """Merge three versions of a file and store the result as a blob.

        Returns the blob SHA, or None when the changes overlap.
        """
        with tempfile.TemporaryDirectory() as tmpdir:
            files = {}
            for name, blob in (("base", base), ("ours", ours), ("theirs", theirs)):
                files[name] = os.path.join(tmpdir, name)
                with open(files[name], "wb") as f:
                    f.write(blob.data_stream.read() if blob is not None else b"")

            # merge-file exits with the number of conflicts and rewrites "ours" in place
            status, _stdout, _stderr = self.repo.git.merge_file(
                files["ours"],
                files["base"],
                files["theirs"],
                with_extended_output=True,
                with_exceptions=False,
            )
            if status != 0:
                return None
            return self.repo.git.hash_object("-w", files["ours"])

    # ------------------------------------------------------------------
    # Remote
    # ------------------------------------------------------------------

    def fetch(self, remote: str = "origin") -> None:
        try:
            with self._environment():
                self.repo.remote(remote).fetch()
        except (GitCommandError, ValueError) as e:
            raise FetchFailed(f"Could not fetch from {remote}: {e}") from e

    def push(self, remote: str, refspecs: list[str]) -> None:
        """Push ``refspecs`` to ``remote``.

        Raises:
            PushRejected: If the push is refused or the transport fails.
        """
        try:
            with self._environment():
                infos = self.repo.remote(remote).push(refspecs)
        except (GitCommandError, ValueError) as e:
            raise PushRejected(f"Push to {remote} failed: {e}") from e

        failed = [info for info in infos if info.flags & _PUSH_FAILED]
        if failed or not infos:
            reasons = "; ".join(
                f"{info.remote_ref_string}: {info.summary.strip()}" for info in failed
            )
            raise PushRejected(f"Push to {remote} was rejected: {reasons or 'nothing pushed'}")

        for info in infos:
            logger.info("Pushed %s to %s (%s)", info.local_ref, remote, info.summary.strip())
