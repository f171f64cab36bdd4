"""Tests for src/theme/: pin file, fetching and template loading."""

import datetime as dt
from pathlib import Path
from unittest.mock import patch

import pytest
from inkpress.config import InkpressConfig
from inkpress.exceptions import GitError, ThemeError
from inkpress.scaffold import STARTER_THEME_DIR
from inkpress.theme.fetch import ThemeFetcher, update_theme_pin
from inkpress.theme.loader import Theme
from inkpress.theme.lock import ThemeLock, load_theme_lock, save_theme_lock

SHA = "0123456789abcdef0123456789abcdef01234567"
OTHER_SHA = "fedcba9876543210fedcba9876543210fedcba98"


@pytest.fixture
def git_config(tmp_path: Path) -> InkpressConfig:
    cfg = InkpressConfig(root=tmp_path)
    cfg.theme.repository = "https://example.com/theme.git"
    cfg.theme.name = "fancy"
    return cfg


class TestThemeLock:
    def test_missing_lock_is_none(self, tmp_path):
        assert load_theme_lock(tmp_path / "theme.lock.json") is None

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "theme.lock.json"
        lock = ThemeLock(repository="r", revision=SHA, requested="v1")
        save_theme_lock(lock, path)
        loaded = load_theme_lock(path)
        assert loaded == lock
        assert path.read_text().endswith("\n")

    def test_corrupt_lock_raises(self, tmp_path):
        path = tmp_path / "theme.lock.json"
        path.write_text("{not json")
        with pytest.raises(ThemeError, match="Corrupt theme lock"):
            load_theme_lock(path)

    def test_short_revision(self):
        assert ThemeLock(repository="r", revision=SHA).short_revision == SHA[:12]


class TestThemeFetcherVendored:
    def test_uses_vendored_path(self, tmp_path):
        cfg = InkpressConfig(root=tmp_path)
        cfg.theme.path = str(STARTER_THEME_DIR)
        assert ThemeFetcher(cfg).ensure() == STARTER_THEME_DIR

    def test_missing_vendored_dir(self, tmp_path):
        cfg = InkpressConfig(root=tmp_path)
        cfg.theme.path = "themes/missing"
        with pytest.raises(ThemeError, match="submodule"):
            ThemeFetcher(cfg).ensure()

    def test_vendored_dir_without_templates(self, tmp_path):
        (tmp_path / "themes" / "empty").mkdir(parents=True)
        cfg = InkpressConfig(root=tmp_path)
        cfg.theme.path = "themes/empty"
        with pytest.raises(ThemeError, match="no templates"):
            ThemeFetcher(cfg).ensure()


class TestThemeFetcherGit:
    def test_unpinned_raises(self, git_config):
        with pytest.raises(ThemeError, match="not pinned"):
            ThemeFetcher(git_config).ensure()

    @patch("inkpress.theme.fetch.run_git")
    def test_clone_and_checkout(self, mock_git, git_config):
        checkout = git_config.theme_cache_dir / "fancy"

        def fake_git(args, cwd=None, timeout=120):
            if args[0] == "clone":
                (checkout / "templates").mkdir(parents=True)
                (checkout / ".git").mkdir()
            if args[0] == "cat-file":
                raise GitError("missing")
            if args[0] == "rev-parse":
                return SHA
            return ""

        mock_git.side_effect = fake_git
        lock = ThemeLock(repository=git_config.theme.repository, revision=SHA)
        assert ThemeFetcher(git_config).ensure(lock) == checkout

        commands = [c.args[0][0] for c in mock_git.call_args_list]
        assert commands == ["clone", "cat-file", "fetch", "checkout", "rev-parse"]
        checkout_args = mock_git.call_args_list[3].args[0]
        assert checkout_args == ["checkout", "--force", "--detach", SHA]

    @patch("inkpress.theme.fetch.run_git")
    def test_existing_checkout_skips_clone_and_fetch(self, mock_git, git_config):
        checkout = git_config.theme_cache_dir / "fancy"
        (checkout / ".git").mkdir(parents=True)
        (checkout / "templates").mkdir()
        mock_git.side_effect = lambda args, cwd=None, timeout=120: SHA if args[0] == "rev-parse" else ""

        ThemeFetcher(git_config).ensure(ThemeLock(repository="r", revision=SHA))
        commands = [c.args[0][0] for c in mock_git.call_args_list]
        assert commands == ["cat-file", "checkout", "rev-parse"]

    @patch("inkpress.theme.fetch.run_git")
    def test_git_failure_becomes_theme_error(self, mock_git, git_config):
        mock_git.side_effect = GitError("git clone exited 128: not found")
        with pytest.raises(ThemeError, match="Could not fetch theme"):
            ThemeFetcher(git_config).ensure(ThemeLock(repository="r", revision=SHA))

    @patch("inkpress.theme.fetch.run_git")
    def test_head_mismatch_raises(self, mock_git, git_config):
        checkout = git_config.theme_cache_dir / "fancy"
        (checkout / ".git").mkdir(parents=True)
        mock_git.side_effect = lambda args, cwd=None, timeout=120: (
            OTHER_SHA if args[0] == "rev-parse" else ""
        )
        with pytest.raises(ThemeError, match="expected pinned"):
            ThemeFetcher(git_config).ensure(ThemeLock(repository="r", revision=SHA))


class TestResolveAndUpdate:
    def test_full_sha_not_resolved_remotely(self, git_config):
        with patch("inkpress.theme.fetch.run_git") as mock_git:
            assert ThemeFetcher(git_config).resolve("r", SHA) == SHA
            mock_git.assert_not_called()

    @patch("inkpress.theme.fetch.run_git")
    def test_annotated_tag_peeled(self, mock_git, git_config):
        mock_git.return_value = f"{OTHER_SHA}\trefs/tags/v1\n{SHA}\trefs/tags/v1^{{}}"
        assert ThemeFetcher(git_config).resolve("r", "v1") == SHA

    @patch("inkpress.theme.fetch.run_git")
    def test_unknown_ref(self, mock_git, git_config):
        mock_git.return_value = ""
        with pytest.raises(ThemeError, match="not found"):
            ThemeFetcher(git_config).resolve("r", "nope")

    @patch("inkpress.theme.fetch.run_git")
    def test_update_writes_lock(self, mock_git, git_config):
        mock_git.return_value = f"{SHA}\tHEAD"
        lock = update_theme_pin(git_config)
        assert lock.revision == SHA
        assert lock.requested == "HEAD"
        assert load_theme_lock(git_config.theme_lock_path) == lock

    def test_update_requires_repository(self, tmp_path):
        with pytest.raises(ThemeError, match="No theme repository"):
            update_theme_pin(InkpressConfig(root=tmp_path))


class TestTheme:
    def test_starter_metadata(self):
        theme = Theme(STARTER_THEME_DIR)
        assert theme.name == "starter"
        assert theme.version == "1.0.0"
        assert theme.has_template("list.html")

    def test_not_a_theme(self, tmp_path):
        with pytest.raises(ThemeError, match="no templates"):
            Theme(tmp_path)

    def test_missing_layout(self):
        with pytest.raises(ThemeError, match="no 'gallery' layout"):
            Theme(STARTER_THEME_DIR).template_for("gallery")

    def test_absolute_url(self):
        theme = Theme(STARTER_THEME_DIR, base_url="https://example.com/blog")
        assert theme.absolute_url("/posts/foo/") == "https://example.com/blog/posts/foo/"

    def test_filters(self, tmp_path):
        (tmp_path / "templates").mkdir()
        (tmp_path / "templates" / "t.html").write_text(
            "{{ d | date_format('%Y/%m/%d') }} {{ d | isoformat }} {{ 'Hi There' | slugify }}"
        )
        out = Theme(tmp_path).template_for("t").render(d=dt.date(2026, 1, 2))
        assert out == "2026/01/02 2026-01-02 hi-there"

    def test_undefined_variable_is_error(self, tmp_path):
        (tmp_path / "templates").mkdir()
        (tmp_path / "templates" / "t.html").write_text("{{ nope }}")
        from jinja2 import UndefinedError

        with pytest.raises(UndefinedError):
            Theme(tmp_path).template_for("t").render()
