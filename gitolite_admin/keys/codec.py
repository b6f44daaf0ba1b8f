"""Key path codec: map key files to SSHKey records and back.

The owner is always the file name without ``.pub``. Everything between the
keydir and the file is split into a location (the immediate parent) and
subfolders (the rest), with one exception kept for older trees: a key stored
as ``<owner>/<owner>.pub`` has no location and a single subfolder named after
its owner.
"""

from __future__ import annotations

import errno
import logging
from pathlib import Path

from gitolite_admin.errors import InvalidKeyFormat, MissingOwner, NotFound
from gitolite_admin.keys.models import DEFAULT_LOCATION, KEY_SUFFIX, SSHKey

logger = logging.getLogger(__name__)

# rmdir failures that only mean the directory has to stay
_CLEANUP_ERRNOS = {errno.ENOTEMPTY, errno.EEXIST, errno.EACCES, errno.EPERM}


def from_string(
    key_string: str,
    owner: str | None = None,
    location: str | None = None,
    subfolders=None,
) -> SSHKey:
    """Construct an SSHKey from a ``<type> <blob> [<comment>]`` line.

    Args:
        key_string: The public key line.
        owner: The key owner (required).
        location: Optional location of a multi-key owner.
        subfolders: Optional folders above the location.

    Raises:
        MissingOwner: If no owner is given.
        InvalidKeyFormat: If the line has fewer than two tokens.
    """
    if not owner:
        raise MissingOwner(key_string)

    parts = key_string.split()
    if len(parts) < 2:
        raise InvalidKeyFormat(key_string)

    comment = parts[2] if len(parts) > 2 else ""

    return SSHKey(
        owner=owner,
        key_type=parts[0],
        blob=parts[1],
        comment=comment,
        location=location or DEFAULT_LOCATION,
        subfolders=tuple(subfolders or ()),
    )


def decode_path(key_root: str | Path, key_path: str | Path) -> SSHKey:
    """Read the key at ``key_path`` and decode its place below ``key_root``.

    Raises:
        NotFound: If the key file does not exist.
        InvalidKeyFormat: If the file does not hold a valid key line.
    """
    path = Path(key_path)
    if not path.is_absolute():
        path = Path(key_root) / path
    if not path.is_file():
        raise NotFound(path)

    owner = path.name[: -len(KEY_SUFFIX)] if path.name.endswith(KEY_SUFFIX) else path.name
    location, subfolders = extract_structure(key_root, path, owner)

    text = path.read_text()
    try:
        return from_string(text, owner=owner, location=location, subfolders=subfolders)
    except InvalidKeyFormat:
        raise InvalidKeyFormat(text, path=path) from None


def extract_structure(
    key_root: str | Path, key_path: str | Path, owner: str
) -> tuple[str, tuple[str, ...]]:
    """Return ``(location, subfolders)`` for a key file below ``key_root``."""
    root_path = Path(key_root).resolve()
    key_path = Path(key_path).resolve()

    # Key directly in the keydir
    if key_path.parent == root_path:
        return DEFAULT_LOCATION, ()

    location_dir = key_path.parent
    location = location_dir.name

    # Old-style [<folder>/...]<owner>/<owner>.pub: the directory is a folder, not a location
    if location == owner:
        return DEFAULT_LOCATION, _key_folders(location_dir.parent, root_path) + (owner,)

    return location, _key_folders(location_dir.parent, root_path)


def _key_folders(key_parent: Path, root_path: Path) -> tuple[str, ...]:
    if key_parent == root_path:
        return ()
    return key_parent.relative_to(root_path).parts


def relative_path(key: SSHKey) -> str:
    """Return the canonical path of ``key`` relative to the keydir."""
    return key.relative_path


def remove_key_file(key_root: str | Path, relative_key: str) -> SSHKey:
    """Unlink a key file and remove the directories it leaves empty.

    Cleanup walks up from the location directory through the key's subfolders
    and stops at the first directory that is not empty, or at ``key_root``.
    Returns the decoded key that was removed.
    """
    root_path = Path(key_root).resolve()
    key_path = (root_path / relative_key).resolve()

    key = decode_path(root_path, key_path)
    key_path.unlink()

    location_dir = key_path.parent
    remaining = location_dir
    if key.has_location and location_dir.name == key.location and location_dir != root_path:
        if not delete_dir_if_empty(location_dir):
            return key
        remaining = location_dir.parent

    for folder in reversed(key.subfolders):
        if remaining == root_path or remaining.name != folder:
            break
        if not delete_dir_if_empty(remaining):
            break
        remaining = remaining.parent

    return key


def delete_dir_if_empty(directory: Path) -> bool:
    """Remove ``directory`` if it holds nothing. Returns True if it was removed.

    A directory that cannot be removed because it is not empty or not
    writable is logged and left in place.
    """
    if not directory.is_dir():
        return False
    try:
        if any(directory.iterdir()):
            return False
        directory.rmdir()
    except OSError as e:
        if e.errno not in _CLEANUP_ERRNOS:
            raise
        logger.warning("Couldn't delete directory '%s': %s", directory, e.strerror)
        return False
    return True
