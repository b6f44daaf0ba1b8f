"""SSH key model: one public key file under the gitolite keydir.

A key lives at ``<keydir>/[<subfolder>/...]/[<location>/]<owner>.pub``.
Multiple keys for one owner are told apart by their location::

    owner: bob                    => <keydir>/bob.pub
    owner: bob, location: desktop => <keydir>/desktop/bob.pub
    owner: bob, location: server1,
    subfolders: [bob, deploy]     => <keydir>/bob/deploy/server1/bob.pub
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from pathlib import Path

from gitolite_admin.errors import MissingOwner

KEY_SUFFIX = ".pub"

# Location of a key that is not subdivided by location; never part of a path.
DEFAULT_LOCATION = ""


@dataclass(frozen=True)
class SSHKey:
    """A single SSH public key and where it is stored in the keydir."""

    owner: str
    key_type: str
    blob: str
    comment: str = ""  # Falls back to the owner
    location: str = DEFAULT_LOCATION
    subfolders: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.owner:
            raise MissingOwner()
        if not self.comment:
            object.__setattr__(self, "comment", self.owner)
        if self.location is None:
            object.__setattr__(self, "location", DEFAULT_LOCATION)
        object.__setattr__(self, "subfolders", tuple(self.subfolders or ()))

    @classmethod
    def from_string(cls, key_string: str, owner: str | None = None, **attrs) -> SSHKey:
        """Build a key from a ``<type> <blob> [<comment>]`` line."""
        from gitolite_admin.keys.codec import from_string

        return from_string(key_string, owner=owner, **attrs)

    @classmethod
    def from_file(cls, key_root: str | Path, key_path: str | Path) -> SSHKey:
        """Read a key file and derive owner, location and subfolders from its path."""
        from gitolite_admin.keys.codec import decode_path

        return decode_path(key_root, key_path)

    @property
    def filename(self) -> str:
        return f"{self.owner}{KEY_SUFFIX}"

    @property
    def relative_path(self) -> str:
        return encode_path(self.subfolders, self.location, self.owner)

    @property
    def has_location(self) -> bool:
        return bool(self.location) and self.location != DEFAULT_LOCATION

    def to_file(self, key_root: str | Path) -> Path:
        """Write the key below ``key_root``, creating directories as needed.

        Returns the absolute path of the written file.
        """
        key_file = Path(key_root) / self.relative_path
        key_file.parent.mkdir(parents=True, exist_ok=True)
        key_file.write_text(str(self))
        return key_file.resolve()

    def __str__(self) -> str:
        return " ".join([self.key_type, self.blob, self.comment])


def encode_path(subfolders, location: str | None, owner: str) -> str:
    """Return the canonical POSIX path of a key relative to the keydir.

    Empty segments and the default location are left out, so the result never
    contains a doubled separator.
    """
    segments = [s for s in subfolders or () if s]
    if location and location != DEFAULT_LOCATION:
        segments.append(location)
    segments.append(f"{owner}{KEY_SUFFIX}")
    return posixpath.join(*segments)
