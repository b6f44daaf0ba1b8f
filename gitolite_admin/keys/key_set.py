"""Per-owner key collection that remembers whether it was changed."""

from __future__ import annotations

from collections.abc import MutableSequence

from gitolite_admin.keys.models import SSHKey


class KeySet(MutableSequence):
    """Ordered keys of a single owner with a ``modified`` flag.

    Every structural change sets ``modified``. Call ``mark_clean()`` right
    after loading from disk so that saving can skip sets nobody touched.
    """

    def __init__(self, keys: list[SSHKey] | None = None) -> None:
        self._keys: list[SSHKey] = list(keys or [])
        self.modified = False

    def __getitem__(self, index):
        return self._keys[index]

    def __setitem__(self, index, value) -> None:
        self._keys[index] = value
        self.modified = True

    def __delitem__(self, index) -> None:
        del self._keys[index]
        self.modified = True

    def __len__(self) -> int:
        return len(self._keys)

    def insert(self, index: int, value: SSHKey) -> None:
        self._keys.insert(index, value)
        self.modified = True

    def clear(self) -> None:
        self._keys.clear()
        self.modified = True

    def mark_clean(self) -> None:
        self.modified = False

    def __eq__(self, other) -> bool:
        if isinstance(other, KeySet):
            return self._keys == other._keys
        if isinstance(other, list):
            return self._keys == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"KeySet({self._keys!r}, modified={self.modified})"
