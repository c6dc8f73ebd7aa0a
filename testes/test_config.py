import json
import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from cms_migrator.config import SitesConfig, StorageConfig, load_config
from cms_migrator.exceptions import ConfigError

ENV_VARS = (
    "AIRTABLE_API_KEY",
    "ANTHROPIC_API_KEY",
    "GOOGLE_API_KEY",
    "LLM_PROVIDER",
    "WEBSITE_ASSETS_BUCKET_ACCESS_KEY_ID",
    "WEBSITE_ASSETS_BUCKET_SECRET_ACCESS_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_file(tmp_path):
    config = load_config(str(tmp_path / "missing.json"))
    assert config.llm.provider == "claude"
    assert config.llm.default_model.startswith("claude")
    assert config.migration.insert_delay == 0.5
    assert config.airtable.api_key == ""


def test_file_values_and_environment_secrets(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"llm": {"provider": "gemini"}, "migration": {"insert_delay": 1.0, "limit": 5}}),
        encoding="utf-8",
    )
    monkeypatch.setenv("AIRTABLE_API_KEY", "pat123")
    monkeypatch.setenv("GOOGLE_API_KEY", "g-key")

    config = load_config(str(path), dry_run=True)

    assert config.llm.provider == "gemini"
    assert config.llm.default_model == "gemini-2.5-flash"
    assert config.llm.google_api_key == "g-key"
    assert config.airtable.api_key == "pat123"
    assert config.migration.insert_delay == 1.0
    assert config.migration.limit == 5
    assert config.migration.dry_run is True


def test_unknown_keys_are_rejected(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"sites": {"typo_url": "x"}}), encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_invalid_json_is_a_config_error(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_unknown_provider_is_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "openai")
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing.json"))


def test_negative_limit_is_rejected(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing.json"), limit=-1)


def test_site_urls():
    sites = SitesConfig()
    assert sites.old_project_url("p") == "https://cms.bluedot.org/projects/p/"
    assert sites.staging_project_url("p") == "https://website-staging.k8s.bluedot.org/projects/p"
    assert sites.staging_blog_url("b") == "https://website-staging.k8s.bluedot.org/blog/b"


def test_public_url_root():
    assert StorageConfig().public_url_root == "https://storage.k8s.bluedot.org/website-assets"
    assert StorageConfig(public_base_url="https://cdn.example/").public_url_root == "https://cdn.example/website-assets"
