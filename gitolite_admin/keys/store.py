"""Key store: all keys of a keydir, grouped by owner.

Loads every ``*.pub`` file below the keydir and works out which files have to
be written or deleted to bring the keydir in line with the in-memory keys.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from gitolite_admin.errors import GitoliteAdminError, KeyLoadError
from gitolite_admin.keys.codec import decode_path
from gitolite_admin.keys.key_set import KeySet
from gitolite_admin.keys.models import KEY_SUFFIX, SSHKey

logger = logging.getLogger(__name__)


@dataclass
class KeyDiff:
    """Filesystem changes needed to materialize the key store."""

    to_write: list[SSHKey] = field(default_factory=list)
    to_delete: list[str] = field(default_factory=list)  # Relative to the keydir

    @property
    def is_empty(self) -> bool:
        return not self.to_write and not self.to_delete


def list_key_files(key_root: str | Path) -> list[str]:
    """Return every key file below ``key_root`` as a sorted relative POSIX path."""
    root = Path(key_root)
    if not root.is_dir():
        return []
    return sorted(
        p.relative_to(root).as_posix()
        for p in root.rglob(f"*{KEY_SUFFIX}")
        if p.is_file()
    )


class KeyStore:
    """Mapping of owner to the ``KeySet`` holding that owner's keys.

    Looking up an owner never creates a set; use ``get_or_create`` for that.
    """

    def __init__(self) -> None:
        self._sets: dict[str, KeySet] = {}

    @classmethod
    def load(cls, key_root: str | Path) -> KeyStore:
        """Decode every key file below ``key_root`` and mark all sets clean.

        Raises:
            KeyLoadError: On the first key file that cannot be decoded.
        """
        store = cls()
        root = Path(key_root)
        for rel_path in list_key_files(root):
            try:
                key = decode_path(root, root / rel_path)
            except GitoliteAdminError as e:
                raise KeyLoadError(root / rel_path, e) from e
            store.get_or_create(key.owner).append(key)

        for key_set in store._sets.values():
            key_set.mark_clean()

        logger.debug("Loaded %d keys for %d owners from %s", store.key_count, len(store), root)
        return store

    # ------------------------------------------------------------------
    # Mapping access
    # ------------------------------------------------------------------

    def __getitem__(self, owner: str) -> KeySet:
        return self._sets[owner]

    def __contains__(self, owner: object) -> bool:
        return owner in self._sets

    def __iter__(self):
        return iter(self._sets)

    def __len__(self) -> int:
        return len(self._sets)

    def get(self, owner: str) -> KeySet | None:
        return self._sets.get(owner)

    def get_or_create(self, owner: str) -> KeySet:
        """Return the set for ``owner``, creating an empty clean one if needed."""
        if owner not in self._sets:
            self._sets[owner] = KeySet()
        return self._sets[owner]

    def owners(self) -> list[str]:
        return sorted(self._sets)

    def items(self):
        return self._sets.items()

    def all_keys(self) -> list[SSHKey]:
        return [key for key_set in self._sets.values() for key in key_set]

    @property
    def key_count(self) -> int:
        return sum(len(key_set) for key_set in self._sets.values())

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, key: SSHKey) -> None:
        """Add ``key`` to its owner's set, replacing a key stored at the same path."""
        key_set = self.get_or_create(key.owner)
        for i, existing in enumerate(key_set):
            if existing.relative_path == key.relative_path:
                key_set[i] = key
                return
        key_set.append(key)

    def remove(self, key: SSHKey) -> None:
        """Remove ``key`` from its owner's set.

        Raises:
            KeyError: If the store holds no such key.
        """
        key_set = self._sets.get(key.owner)
        if key_set is None or key not in key_set:
            raise KeyError(key.relative_path)
        key_set.remove(key)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def diff(self, key_root: str | Path) -> KeyDiff:
        """Compare the store against the key files below ``key_root``.

        Files on disk that no key maps to are deleted. Keys are written only
        for sets modified since load; untouched sets are assumed to be on disk
        already, even if a file was changed behind our back.
        """
        on_disk = set(list_key_files(key_root))
        in_memory = {key.relative_path for key in self.all_keys()}

        result = KeyDiff(to_delete=sorted(on_disk - in_memory))
        for owner in self.owners():
            key_set = self._sets[owner]
            if key_set.modified:
                result.to_write.extend(key_set)
        return result
