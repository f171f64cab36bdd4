"""Tests for src/scaffold.py: ``init`` and ``new``."""

import datetime as dt

import pytest
import yaml
from inkpress.build import SiteBuilder
from inkpress.config import load_config
from inkpress.content.frontmatter import read_content_file
from inkpress.exceptions import InkpressError
from inkpress.scaffold import WORKFLOW_PATH, init_site, new_post
from inkpress.theme.fetch import ThemeFetcher


class TestInitSite:
    def test_creates_buildable_site(self, tmp_path):
        root = tmp_path / "blog"
        created = init_site(root, 'My "Quoted" Blog')

        assert root / "inkpress.toml" in created
        cfg = load_config(root / "inkpress.toml")
        assert cfg.site.title == 'My "Quoted" Blog'
        assert cfg.theme.path == "themes/starter"

        theme_dir = ThemeFetcher(cfg).ensure()
        result = SiteBuilder(cfg, theme_dir).build()
        assert "about/index.html" in result.files

    def test_workflow_triggers_on_branch(self, tmp_path):
        init_site(tmp_path, trigger_branch="trunk")
        workflow = yaml.safe_load((tmp_path / WORKFLOW_PATH).read_text())
        assert workflow["jobs"]["deploy"]["steps"][-1]["run"] == "inkpress deploy"
        assert workflow[True]["push"]["branches"] == ["trunk"]
        text = (tmp_path / WORKFLOW_PATH).read_text()
        assert "${{ secrets.GITHUB_TOKEN }}" in text

    def test_external_theme(self, tmp_path):
        init_site(tmp_path, theme_repository="https://github.com/me/Paper-Theme.git")
        cfg = load_config(tmp_path / "inkpress.toml")
        assert cfg.theme.repository == "https://github.com/me/Paper-Theme.git"
        assert cfg.theme.name == "paper-theme"
        assert not (tmp_path / "themes").exists()

    def test_existing_files_kept(self, tmp_path):
        (tmp_path / "inkpress.toml").write_text('[site]\ntitle = "Mine"\n')
        created = init_site(tmp_path, "Other")
        assert tmp_path / "inkpress.toml" not in created
        assert load_config(tmp_path / "inkpress.toml").site.title == "Mine"
        assert init_site(tmp_path, "Other") == []


class TestNewPost:
    def test_writes_front_matter(self, config):
        path = new_post(config, "Hello, World!", on=dt.date(2026, 2, 3))
        assert path == config.content_dir / "posts" / "hello-world.md"
        fm, body = read_content_file(path)
        assert fm.title == "Hello, World!"
        assert fm.date == dt.date(2026, 2, 3)
        assert fm.draft is True
        assert body == ""

    def test_refuses_existing(self, config):
        with pytest.raises(InkpressError, match="already exists"):
            new_post(config, "Foo")

    def test_refuses_unsluggable_title(self, config):
        with pytest.raises(InkpressError, match="file name"):
            new_post(config, "!!!")
