"""Permissions configuration: ``conf/gitolite.conf``.

The file is kept as opaque text: it is read on reload and written back
verbatim on save. Parsing repo rules is left to gitolite itself.
"""

from __future__ import annotations

from pathlib import Path

from gitolite_admin.errors import NotFound


class PermissionsConfig:
    """The gitolite permissions file of an admin repository."""

    DEFAULT_FILENAME = "gitolite.conf"

    def __init__(self, text: str = "", filename: str = DEFAULT_FILENAME) -> None:
        self.text = text
        self.filename = filename

    @classmethod
    def load(cls, path: str | Path) -> PermissionsConfig:
        path = Path(path)
        if not path.is_file():
            raise NotFound(path)
        return cls(text=path.read_text(), filename=path.name)

    def to_file(self, conf_dir: str | Path) -> Path:
        """Write the configuration into ``conf_dir`` and return the file path."""
        conf_dir = Path(conf_dir)
        conf_dir.mkdir(parents=True, exist_ok=True)
        path = conf_dir / self.filename
        path.write_text(self.text)
        return path

    def __eq__(self, other) -> bool:
        if not isinstance(other, PermissionsConfig):
            return NotImplemented
        return self.text == other.text and self.filename == other.filename

    def __repr__(self) -> str:
        return f"PermissionsConfig(filename={self.filename!r}, {len(self.text)} chars)"
