"""Tests for admin settings, credentials and the permissions config file."""

import tempfile
from pathlib import Path

import pytest
import yaml

from gitolite_admin.config import PermissionsConfig
from gitolite_admin.errors import NotFound
from gitolite_admin.settings import AdminSettings, SshCredentials, load_settings
from gitolite_admin.utils.git_ops import ssh_environment


def test_default_settings():
    settings = AdminSettings()
    assert settings.admin_url == "ssh://git@localhost/gitolite-admin.git"
    assert settings.upstream == "origin/master"
    assert settings.credentials is None


def test_admin_url_with_port():
    settings = AdminSettings(git_user="gitolite", hostname="git.example.org", port=2222)
    assert settings.admin_url == "ssh://gitolite@git.example.org:2222/gitolite-admin.git"


def test_explicit_url_wins():
    settings = AdminSettings(hostname="ignored", url="/srv/git/gitolite-admin.git")
    assert settings.admin_url == "/srv/git/gitolite-admin.git"


def test_credentials_from_key_pair():
    settings = AdminSettings(private_key="/home/admin/.ssh/id_ed25519")
    assert settings.credentials == SshCredentials(
        username="git",
        public_key="/home/admin/.ssh/id_ed25519.pub",
        private_key="/home/admin/.ssh/id_ed25519",
    )


def test_ssh_environment():
    assert ssh_environment(None) == {}
    env = ssh_environment(SshCredentials("git", "/keys/admin.pub", "/keys/my admin"))
    assert env["GIT_SSH_COMMAND"] == "ssh -i '/keys/my admin' -o IdentitiesOnly=yes -l git"


def test_load_settings_from_yaml():
    data = {
        "hostname": "git.example.org",
        "port": 2222,
        "private_key": "~/.ssh/gitolite",
        "author_name": "Admin Bot",
        "branch": "main",
    }
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(data, f)
        f.flush()
        settings = load_settings(f.name)

    assert settings.hostname == "git.example.org"
    assert settings.port == 2222
    assert settings.author_name == "Admin Bot"
    assert settings.upstream == "origin/main"
    assert settings.private_key == str(Path("~/.ssh/gitolite").expanduser())
    assert settings.author_email == AdminSettings().author_email


def test_load_settings_rejects_unknown_keys():
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump({"hostname": "x", "colour": "blue"}, f)
        f.flush()
        with pytest.raises(ValueError, match="colour"):
            load_settings(f.name)


def test_load_empty_settings_file():
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        f.write("")
        f.flush()
        assert load_settings(f.name) == AdminSettings()


# --- Permissions config ---


def test_config_round_trip():
    text = "repo gitolite-admin\n    RW+ = admin\n\nrepo testing\n    RW+ = @all\n"
    with tempfile.TemporaryDirectory() as tmpdir:
        conf_dir = Path(tmpdir) / "conf"
        conf_dir.mkdir()
        (conf_dir / "gitolite.conf").write_text(text)

        config = PermissionsConfig.load(conf_dir / "gitolite.conf")
        assert config.text == text

        out_dir = Path(tmpdir) / "out"
        written = config.to_file(out_dir)
        assert written == out_dir / "gitolite.conf"
        assert written.read_text() == text


def test_config_missing_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(NotFound):
            PermissionsConfig.load(Path(tmpdir) / "gitolite.conf")
