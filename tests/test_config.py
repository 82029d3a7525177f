"""Tests for folio.config: defaults, TOML loading, env vars, CLI overrides."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from folio.config import FolioConfig, load_config, merge_cli_overrides
from folio.errors import ConfigError
from folio.models import DraftPolicy


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove env vars that _apply_env_vars reads so tests see TOML values."""
    for key in ("FOLIO_SITE_URL", "FOLIO_SITE_TITLE", "FOLIO_DRAFTS", "FOLIO_WORKERS"):
        monkeypatch.delenv(key, raising=False)


class TestDefaults:
    def test_site(self):
        cfg = FolioConfig()
        assert cfg.site.title == "Blog"
        assert cfg.site.url == ""
        assert cfg.publishes_feeds is False

    def test_content(self):
        cfg = FolioConfig()
        assert cfg.content.posts_dir == "_posts"
        assert cfg.content.drafts_dir == "_drafts"
        assert cfg.content.layouts_dir == "_layouts"
        assert "folio.toml" in cfg.content.exclude

    def test_build(self):
        cfg = FolioConfig()
        assert cfg.build.drafts == DraftPolicy.EXCLUDE
        assert cfg.build.workers == 1
        assert cfg.build.clean is False
        assert cfg.build.feed_limit == 20

    def test_url_trailing_slash_stripped(self):
        cfg = FolioConfig.model_validate({"site": {"url": "https://blog.example/"}})
        assert cfg.site.url == "https://blog.example"
        assert cfg.publishes_feeds is True

    def test_workers_must_be_positive(self):
        with pytest.raises(ValidationError):
            FolioConfig.model_validate({"build": {"workers": 0}})

    def test_unknown_draft_policy(self):
        with pytest.raises(ValidationError):
            FolioConfig.model_validate({"build": {"drafts": "publish"}})


class TestLoadConfig:
    def test_no_file(self, tmp_path: Path):
        assert load_config(tmp_path) == FolioConfig()

    def test_reads_folio_toml_from_source(self, tmp_path: Path):
        (tmp_path / "folio.toml").write_text(
            '[site]\ntitle = "Field Notes"\nauthor = "A. Writer"\n\n'
            '[content]\nposts_dir = "posts"\n\n'
            '[build]\ndrafts = "preview"\nworkers = 4\n',
            encoding="utf-8",
        )
        cfg = load_config(tmp_path)
        assert cfg.site.title == "Field Notes"
        assert cfg.site.author == "A. Writer"
        assert cfg.content.posts_dir == "posts"
        assert cfg.build.drafts == DraftPolicy.PREVIEW
        assert cfg.build.workers == 4

    def test_explicit_path(self, tmp_path: Path):
        path = tmp_path / "elsewhere.toml"
        path.write_text('[site]\nurl = "https://x.example"\n', encoding="utf-8")
        assert load_config(tmp_path, path).site.url == "https://x.example"

    def test_explicit_missing_path_uses_defaults(self, tmp_path: Path):
        assert load_config(tmp_path, tmp_path / "missing.toml") == FolioConfig()

    def test_invalid_toml_uses_defaults(self, tmp_path: Path, caplog):
        (tmp_path / "folio.toml").write_text("[site\ntitle = ", encoding="utf-8")
        with caplog.at_level("WARNING"):
            assert load_config(tmp_path) == FolioConfig()
        assert "Failed to parse" in caplog.text

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch):
        (tmp_path / "folio.toml").write_text('[site]\nurl = "https://file.example"\n', encoding="utf-8")
        monkeypatch.setenv("FOLIO_SITE_URL", "https://env.example")
        monkeypatch.setenv("FOLIO_DRAFTS", "preview")
        monkeypatch.setenv("FOLIO_WORKERS", "3")
        cfg = load_config(tmp_path)
        assert cfg.site.url == "https://env.example"
        assert cfg.build.drafts == DraftPolicy.PREVIEW
        assert cfg.build.workers == 3


class TestMergeCliOverrides:
    def test_none_values_ignored(self):
        cfg = merge_cli_overrides(FolioConfig(), drafts=None, workers=None, clean=None, site_url=None)
        assert cfg == FolioConfig()

    def test_overrides_applied(self):
        cfg = merge_cli_overrides(
            FolioConfig(),
            drafts=DraftPolicy.PREVIEW,
            workers=2,
            clean=True,
            site_url="https://cli.example/",
        )
        assert cfg.build.drafts == DraftPolicy.PREVIEW
        assert cfg.build.workers == 2
        assert cfg.build.clean is True
        assert cfg.site.url == "https://cli.example"

    def test_unknown_keys_ignored(self):
        assert merge_cli_overrides(FolioConfig(), verbose=True) == FolioConfig()


class TestInvalidValues:
    def test_file_value(self, tmp_path: Path):
        path = tmp_path / "folio.toml"
        path.write_text("[build]\nworkers = 0\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="build.workers") as exc_info:
            load_config(tmp_path)
        assert exc_info.value.path == path

    @pytest.mark.parametrize(
        ("env_var", "value", "where"),
        [
            ("FOLIO_WORKERS", "abc", "build.workers (from FOLIO_WORKERS)"),
            ("FOLIO_DRAFTS", "bogus", "build.drafts (from FOLIO_DRAFTS)"),
        ],
    )
    def test_env_value(self, tmp_path: Path, monkeypatch, env_var: str, value: str, where: str):
        monkeypatch.setenv(env_var, value)
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path)
        assert str(exc_info.value).startswith(where)

    def test_cli_value(self):
        with pytest.raises(ConfigError, match=r"build\.workers \(from --workers\)"):
            merge_cli_overrides(FolioConfig(), workers=0)
