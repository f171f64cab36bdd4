"""Tests for src/pipeline.py: fetch → build → publish orchestration."""

import shutil
from unittest.mock import patch

import pytest
from inkpress.errors import load_report
from inkpress.exceptions import PipelineLockedError
from inkpress.pipeline import LOCK_FILENAME, pipeline_lock, run_pipeline
from inkpress.scaffold import STARTER_THEME_DIR


class TestPipelineLock:
    def test_lock_released(self, tmp_path):
        with pipeline_lock(tmp_path) as path:
            assert path.exists()
        assert not (tmp_path / LOCK_FILENAME).exists()

    def test_second_run_refused(self, tmp_path):
        with pipeline_lock(tmp_path):
            with pytest.raises(PipelineLockedError, match="in progress"):
                with pipeline_lock(tmp_path):
                    pass

    def test_released_on_error(self, tmp_path):
        with pytest.raises(RuntimeError):
            with pipeline_lock(tmp_path):
                raise RuntimeError("boom")
        assert not (tmp_path / LOCK_FILENAME).exists()


class TestRunPipeline:
    def test_successful_run_publishes(self, config):
        report = run_pipeline(config, notify=False)

        assert report.success, report.summary_text()
        assert report.published is True
        assert report.stages_completed == ["fetch", "build", "publish"]
        assert (report.posts, report.pages) == (1, 1)
        assert report.location.endswith("deployed")
        assert report.output_digest
        deployed = config.root / "deployed"
        assert "Hello" in (deployed / "posts" / "foo" / "index.html").read_text()

    def test_report_saved(self, config):
        run_pipeline(config, notify=False)
        saved = load_report(config.root)
        assert saved is not None
        assert saved.published is True

    def test_dry_run_does_not_publish(self, config):
        report = run_pipeline(config, publish=False, notify=False)
        assert report.success
        assert report.published is False
        assert not (config.root / "deployed").exists()

    def test_invalid_content_never_published(self, config, write_file):
        run_pipeline(config, notify=False)
        deployed = config.root / "deployed"
        before = sorted(p.relative_to(deployed) for p in deployed.rglob("*"))

        write_file(config.content_dir / "posts" / "bad.md", "---\ntitle: Bad\n")
        report = run_pipeline(config, notify=False)

        assert report.success is False
        assert report.published is False
        assert report.stages_completed == ["fetch"]
        assert report.error.stage == "build"
        assert report.error.error_type == "ContentValidationError"
        assert sorted(p.relative_to(deployed) for p in deployed.rglob("*")) == before

    def test_theme_failure_stops_before_build(self, config):
        config.theme.path = "themes/missing"
        report = run_pipeline(config, notify=False)
        assert report.success is False
        assert report.error.stage == "fetch"
        assert not config.output_dir.exists()

    def test_locked_run_fails(self, config):
        with pipeline_lock(config.state_dir):
            report = run_pipeline(config, notify=False)
        assert report.success is False
        assert report.error.error_type == "PipelineLockedError"

    @patch("inkpress.pipeline.send_notification")
    def test_notifies(self, mock_notify, config):
        report = run_pipeline(config)
        mock_notify.assert_called_once_with(config.notifications, report, site_title="Test Blog")

    @patch("inkpress.pipeline.send_notification")
    def test_notify_disabled(self, mock_notify, config):
        run_pipeline(config, notify=False)
        mock_notify.assert_not_called()

    @patch("inkpress.pipeline.send_notification")
    def test_theme_filter_failure_reported(self, mock_notify, config, tmp_path):
        theme = tmp_path / "broken-theme"
        shutil.copytree(STARTER_THEME_DIR, theme)
        (theme / "templates" / "post.html").write_text("{{ page.title | date_format }}")
        config.theme.path = str(theme)

        report = run_pipeline(config)

        assert report.success is False
        assert report.error.stage == "build"
        assert report.error.error_type == "BuildError"
        assert "AttributeError" in report.error.message
        assert load_report(config.root).error.error_type == "BuildError"
        mock_notify.assert_called_once()
        assert not (config.root / "deployed").exists()

    def test_unexpected_exception_reported(self, config):
        with patch("inkpress.pipeline.create_publisher", side_effect=RuntimeError("boom")):
            report = run_pipeline(config, notify=False)
        assert report.success is False
        assert report.error.stage == "publish"
        assert report.error.error_type == "RuntimeError"
        assert load_report(config.root) is not None
