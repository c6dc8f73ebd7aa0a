"""
Configuration loading for the CMS migrator.

A single :class:`MigrationConfig` is built once at program start by
:func:`load_config` and handed to every component.  Values come from
three layers, later layers winning:

1. the defaults declared on the dataclasses below,
2. the JSON file (``config/migration_config.json`` by default), whose
   top-level keys mirror the section names (``airtable``, ``llm``,
   ``sites``, ``storage``, ``migration``),
3. environment variables for credentials (a ``.env`` file is honoured).

Credentials are never validated here; the client that needs a key raises
:class:`~cms_migrator.exceptions.ConfigError` when it is constructed
without one, so commands that never touch a service do not require its
secret.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .exceptions import ConfigError

DEFAULT_CONFIG_FILE = os.path.join("config", "migration_config.json")


@dataclass
class AirtableConfig:
    api_key: str = ""
    base_url: str = "https://api.airtable.com/v0"
    requests_per_minute: int = 240
    timeout: float = 30.0
    # Partial overrides of the table definitions in models.airtable_tables
    tables: Dict[str, Dict[str, Any]] = field(default_factory=dict)


@dataclass
class LLMConfig:
    provider: str = "claude"
    model: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""
    rewrite_max_tokens: int = 20_000
    check_max_tokens: int = 4_000

    @property
    def default_model(self) -> str:
        if self.model:
            return self.model
        if self.provider == "gemini":
            return "gemini-2.5-flash"
        return "claude-sonnet-4-20250514"


@dataclass
class SitesConfig:
    old_site_url: str = "https://cms.bluedot.org"
    staging_site_url: str = "https://website-staging.k8s.bluedot.org"
    new_content_selectors: List[str] = field(
        default_factory=lambda: [".section__body > .markdown-extended-renderer"]
    )
    old_blog_selectors: List[str] = field(default_factory=lambda: [".content"])
    old_project_selectors: List[str] = field(
        default_factory=lambda: ["section.post .container .grid .col-24-sm .row"]
    )

    def old_project_url(self, slug: str) -> str:
        return f"{self.old_site_url.rstrip('/')}/projects/{slug}/"

    def staging_project_url(self, slug: str) -> str:
        return f"{self.staging_site_url.rstrip('/')}/projects/{slug}"

    def old_blog_url(self, slug: str) -> str:
        return f"{self.old_site_url.rstrip('/')}/blog/{slug}/"

    def staging_blog_url(self, slug: str) -> str:
        return f"{self.staging_site_url.rstrip('/')}/blog/{slug}"


@dataclass
class StorageConfig:
    endpoint_url: str = "https://storage.k8s.bluedot.org"
    region: str = "minio"
    bucket: str = "website-assets"
    public_base_url: str = ""
    key_prefix: str = "migrated"
    access_key_id: str = ""
    secret_access_key: str = ""
    # Asset URLs on the old CMS that get rehosted
    old_asset_url_pattern: str = r"""https?://cms\.bluedot\.org/u/([^"'\s)]+)"""

    @property
    def public_url_root(self) -> str:
        base = self.public_base_url or self.endpoint_url
        return f"{base.rstrip('/')}/{self.bucket}"


@dataclass
class MigrationSettings:
    blogs_file: str = os.path.join("data", "posts.xml")
    projects_file: str = os.path.join("data", "projects.xml")
    insert_delay: float = 0.5
    render_settle_ms: int = 1000
    navigation_timeout_ms: int = 30_000
    dry_run: bool = False
    limit: Optional[int] = None
    log_level: str = "INFO"
    report_dir: str = os.path.join("reports", "migration")


@dataclass
class MigrationConfig:
    """Application configuration, passed explicitly to every component."""

    airtable: AirtableConfig = field(default_factory=AirtableConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    sites: SitesConfig = field(default_factory=SitesConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    migration: MigrationSettings = field(default_factory=MigrationSettings)


def _apply_section(section: Any, values: Optional[Dict[str, Any]]) -> Any:
    """Return a copy of ``section`` with known keys from ``values`` applied."""
    if not values:
        return section
    if not isinstance(values, dict):
        raise ConfigError(f"Expected an object for {type(section).__name__}, got {type(values).__name__}")
    known = {f.name for f in fields(section)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown keys for {type(section).__name__}: {', '.join(unknown)}")
    return replace(section, **values)


def _read_config_file(config_file: Optional[str]) -> Dict[str, Any]:
    if not config_file or not os.path.exists(config_file):
        return {}
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Could not decode {config_file}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file} must contain a JSON object")
    return data


def load_config(
    config_file: Optional[str] = DEFAULT_CONFIG_FILE,
    *,
    dry_run: Optional[bool] = None,
    limit: Optional[int] = None,
    log_level: Optional[str] = None,
) -> MigrationConfig:
    """Load configuration from file and environment and apply CLI overrides."""
    load_dotenv()
    data = _read_config_file(config_file)

    config = MigrationConfig(
        airtable=_apply_section(AirtableConfig(), data.get("airtable")),
        llm=_apply_section(LLMConfig(), data.get("llm")),
        sites=_apply_section(SitesConfig(), data.get("sites")),
        storage=_apply_section(StorageConfig(), data.get("storage")),
        migration=_apply_section(MigrationSettings(), data.get("migration")),
    )

    # Secrets from the environment fill whatever the file left empty
    config.airtable.api_key = config.airtable.api_key or os.getenv("AIRTABLE_API_KEY", "")
    config.llm.anthropic_api_key = config.llm.anthropic_api_key or os.getenv("ANTHROPIC_API_KEY", "")
    config.llm.google_api_key = config.llm.google_api_key or os.getenv("GOOGLE_API_KEY", "")
    config.llm.provider = os.getenv("LLM_PROVIDER", config.llm.provider)
    config.storage.access_key_id = config.storage.access_key_id or os.getenv(
        "WEBSITE_ASSETS_BUCKET_ACCESS_KEY_ID", ""
    )
    config.storage.secret_access_key = config.storage.secret_access_key or os.getenv(
        "WEBSITE_ASSETS_BUCKET_SECRET_ACCESS_KEY", ""
    )

    if dry_run is not None:
        config.migration.dry_run = dry_run
    if limit is not None:
        config.migration.limit = limit
    if log_level:
        config.migration.log_level = log_level

    if config.llm.provider not in ("claude", "gemini"):
        raise ConfigError(f"Unknown LLM provider: {config.llm.provider}. Use 'claude' or 'gemini'.")
    if config.migration.limit is not None and config.migration.limit < 0:
        raise ConfigError("migration.limit cannot be negative.")
    if config.migration.insert_delay < 0:
        raise ConfigError("migration.insert_delay cannot be negative.")
    return config
