"""Tests for the gitolite-admin command line."""

from click.testing import CliRunner
from git import Repo

from conftest import BOB_KEY
from gitolite_admin.cli import main


def _invoke(tmp_path, remote, *args):
    settings_file = tmp_path / "settings.yaml"
    settings_file.write_text(f"url: {remote}\nauthor_name: CLI Admin\n")
    runner = CliRunner()
    return runner.invoke(
        main, ["--repo", str(tmp_path / "admin"), "--settings", str(settings_file), *args]
    )


def test_keys_lists_owners(tmp_path, remote):
    result = _invoke(tmp_path, remote, "keys")
    assert result.exit_code == 0, result.output
    assert "admin" in result.output
    assert "bob" in result.output


def test_add_key_commits(tmp_path, remote):
    key_file = tmp_path / "carol.pub"
    key_file.write_text(BOB_KEY)

    result = _invoke(tmp_path, remote, "add-key", "carol", str(key_file), "--location", "laptop")

    assert result.exit_code == 0, result.output
    commit = Repo(tmp_path / "admin").head.commit
    assert commit.message == "Add key laptop/carol.pub"
    assert commit.author.name == "CLI Admin"
    assert (tmp_path / "admin" / "keydir" / "laptop" / "carol.pub").is_file()


def test_add_key_rejects_invalid_key(tmp_path, remote):
    key_file = tmp_path / "bad.pub"
    key_file.write_text("not_a_real_key")

    result = _invoke(tmp_path, remote, "add-key", "carol", str(key_file))

    assert result.exit_code == 1
    assert "not a valid SSH key" in result.output


def test_rm_key_unknown_owner(tmp_path, remote):
    result = _invoke(tmp_path, remote, "rm-key", "nobody")
    assert result.exit_code == 1
    assert "No keys found for nobody" in result.output


def test_rm_key_commits_removal(tmp_path, remote):
    result = _invoke(tmp_path, remote, "rm-key", "bob", "--push")

    assert result.exit_code == 0, result.output
    assert "keydir/bob/bob.pub" not in {
        item.path for item in Repo(remote).heads.master.commit.tree.traverse()
    }


def test_save_with_nothing_to_commit(tmp_path, remote):
    result = _invoke(tmp_path, remote, "save")
    assert result.exit_code == 0
    assert "Nothing to commit" in result.output


def test_update_when_up_to_date(tmp_path, remote):
    result = _invoke(tmp_path, remote, "update")
    assert result.exit_code == 0, result.output
    assert "Already up to date" in result.output
