"""Errors raised while reading, changing and syncing a gitolite-admin repository."""

from __future__ import annotations


class GitoliteAdminError(Exception):
    """Base class for gitolite-admin errors."""


class NotFound(GitoliteAdminError):  # noqa: N818
    """Raised when an expected key file or directory does not exist."""

    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"{self.path} does not exist")


class InvalidKeyFormat(GitoliteAdminError, ValueError):  # noqa: N818
    """Raised when key text does not contain at least a type and a blob."""

    def __init__(self, key_string: str, path=None):
        self.key_string = key_string
        self.path = str(path) if path is not None else None
        where = f" in {self.path}" if self.path else ""
        super().__init__(f"'{key_string.strip()}'{where} is not a valid SSH key string")


class MissingOwner(GitoliteAdminError, ValueError):  # noqa: N818
    """Raised when a key is constructed without an owner."""

    def __init__(self, key_string: str = ""):
        self.key_string = key_string
        super().__init__("An owner is required to construct an SSH key")


class KeyLoadError(GitoliteAdminError):
    """Raised when a key file under the key directory cannot be decoded."""

    def __init__(self, path, cause: Exception):
        self.path = str(path)
        self.cause = cause
        super().__init__(f"Could not load key {self.path}: {cause}")


class NotAGitRepo(GitoliteAdminError):  # noqa: N818
    """Raised when a path exists but is not a git working tree."""

    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"{self.path} exists but is not a git repository")


class InvalidLayout(GitoliteAdminError):  # noqa: N818
    """Raised when a repository has no commit or lacks conf/, keydir/ or conf/gitolite.conf."""

    def __init__(self, path, missing: list[str]):
        self.path = str(path)
        self.missing = missing
        super().__init__(
            f"{self.path} is not a gitolite-admin repository (missing: {', '.join(missing)})"
        )


class RemoteError(GitoliteAdminError):
    """Base class for failures talking to the gitolite server."""


class CloneFailed(RemoteError):  # noqa: N818
    """Raised when the admin repository cannot be cloned."""


class FetchFailed(RemoteError):  # noqa: N818
    """Raised when fetching from the remote fails."""


class PushRejected(RemoteError):  # noqa: N818
    """Raised when the remote refuses a push or the transport fails."""


class MergeConflict(GitoliteAdminError):  # noqa: N818
    """Raised when the local and remote heads cannot be merged cleanly."""

    def __init__(self, ours: str, theirs: str, paths: list[str]):
        self.ours = ours
        self.theirs = theirs
        self.paths = paths
        super().__init__(
            f"Merging {theirs[:12]} into {ours[:12]} conflicts in: {', '.join(paths)}"
        )


class NothingToCommit(GitoliteAdminError):  # noqa: N818
    """Raised by save() when the staged tree is identical to HEAD."""
