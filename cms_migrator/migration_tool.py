"""
High-level orchestration of the WordPress → Airtable CMS migration.

This module defines a :class:`CmsMigrationTool` class that ties together
the extractors, parsers, migrators, reviewers and services into the
pipelines exposed by the command line:

* ``migrate_blogs`` / ``migrate_projects`` read a WordPress export,
  normalize it into records and insert them into Airtable one at a time,
  pausing after every write;
* ``fix_blog_bodies`` / ``fix_project_bodies`` render every record that
  has no AI rewritten body on both the old and the staging site and ask
  the LLM for repaired Markdown;
* ``check_project_rendering`` asks the LLM whether each project page on
  the staging site rendered properly;
* ``migrate_assets`` rehosts files still served by the old CMS.

Every pipeline returns a :class:`~cms_migrator.utils.report.RunReport`.
Per-record failures are logged, written to the JSON Lines event log and
recorded in the report; the batch carries on.  Systemic failures
(missing credentials, unreachable store) propagate to the caller.

Collaborators are built lazily from the configuration, or injected,
which is how the tests run the pipelines without network access.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from .config import MigrationConfig
from .exceptions import AssetError, IngestError, RenderError, StoreError
from .extractors.wordpress_extractor import normalize_blogs, normalize_projects
from .extractors.wxr_tree import read_wxr_file
from .migrators.airtable_migrator import AirtableStore, RecordStore
from .migrators.asset_migrator import rehost_url, replace_old_cms_urls
from .models.airtable_tables import AirtableTable, blog_table, project_table
from .models.cms_records import CmsRecord
from .reviewers.body_rewriter import get_rewritten_body
from .reviewers.rendering_checker import check_rendering
from .services.llm import LLMProvider, get_llm_provider
from .utils.errors import report_error, report_ok, set_report_dir
from .utils.pre_flight_checks import run_airtable_pre_flight_checks
from .utils.report import RunReport

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CmsMigrationTool:
    """
    Encapsulates all state and behavior required to migrate WordPress
    content into the Airtable CMS and to review it afterwards.
    """

    def __init__(
        self,
        config: MigrationConfig,
        *,
        store: Optional[RecordStore] = None,
        llm: Optional[LLMProvider] = None,
        renderer: Optional[Any] = None,
        object_store: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self._store = store
        self._llm = llm
        self._renderer = renderer
        self._object_store = object_store
        self._sleep = sleep

        tables = config.airtable.tables
        self.blog_table = blog_table(tables.get("blog"))
        self.project_table = project_table(tables.get("project"))
        set_report_dir(config.migration.report_dir)

    def log_message(self, message: str, level: str = "INFO") -> None:
        logger.log(getattr(logging, level.upper(), logging.INFO), message)

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------
    def _connect_store(self, tables: Sequence[AirtableTable]) -> RecordStore:
        if self._store is None:
            run_airtable_pre_flight_checks(self.config.airtable, tables)
            self._store = AirtableStore(self.config.airtable)
        return self._store

    @property
    def llm(self) -> LLMProvider:
        if self._llm is None:
            self._llm = get_llm_provider(self.config.llm)
        return self._llm

    @property
    def renderer(self):
        if self._renderer is None:
            from .services.renderer import PlaywrightRenderer

            self._renderer = PlaywrightRenderer(self.config.migration)
        return self._renderer

    @property
    def object_store(self):
        if self._object_store is None:
            from .services.object_store import S3ObjectStore

            self._object_store = S3ObjectStore(self.config.storage)
        return self._object_store

    def _apply_limit(self, items: List[T]) -> List[T]:
        limit = self.config.migration.limit
        if limit is not None and len(items) > limit:
            self.log_message(f"Limiting run to the first {limit} of {len(items)} records")
            return items[:limit]
        return items

    def _scan(self, table: AirtableTable, report: RunReport) -> Optional[List[Dict[str, Any]]]:
        store = self._connect_store([table])
        self.log_message(f"Fetching {table.name} records from Airtable...")
        try:
            records = store.scan(table)
        except StoreError as e:
            report_error("STORE_SCAN", {"slug": table.name, "title": table.name}, e)
            report.add_failed(table.name, table.name, "store scan failed")
            return None
        self.log_message(f"Successfully fetched {len(records)} {table.name} records from Airtable")
        return records

    def _update(
        self,
        table: AirtableTable,
        record: Dict[str, Any],
        fields: Dict[str, Any],
        report: RunReport,
    ) -> bool:
        slug, title = record.get("slug", ""), record.get("title", "")
        if self.config.migration.dry_run:
            self.log_message(f"Dry-run: would update {table.name} '{slug}' fields {sorted(fields)}")
            report.add_skipped(slug, title, "dry run")
            return False
        try:
            self._store.update(table, record["id"], fields)
        except StoreError as e:
            report_error("STORE_UPDATE", record, e)
            report.add_failed(slug, title, "store update failed")
            return False
        finally:
            self._sleep(self.config.migration.insert_delay)
        report_ok("UPDATED", record, {"record_id": record["id"], "fields": sorted(fields)})
        report.add_succeeded(slug, title, record["id"])
        return True

    # ------------------------------------------------------------------
    # Migration from the WordPress export
    # ------------------------------------------------------------------
    def _ingest(self, path: str, report: RunReport):
        self.log_message(f"Reading WordPress export {path}")
        try:
            return read_wxr_file(path, strict=True)
        except IngestError as e:
            report_error("INGEST_FAILED", {"slug": path, "title": None}, e)
            report.add_failed(path, "", "ingest failed")
            return None

    def _insert_records(self, table: AirtableTable, records: Sequence[CmsRecord], report: RunReport) -> None:
        if not records:
            return
        kind = table.name.lower()
        dry_run = self.config.migration.dry_run
        store = None if dry_run else self._connect_store([table])

        sample = json.dumps(records[0].to_store_fields(), ensure_ascii=False)
        self.log_message(f"Sample {kind}: {sample[:500]}", "DEBUG")

        total = len(records)
        for index, record in enumerate(records, start=1):
            self.log_message(f"[{index}/{total}] Processing {kind}: {record.title}")
            fields = record.to_store_fields()
            if dry_run:
                self.log_message(f"Dry-run: would insert {kind} '{record.slug}'")
                report.add_skipped(record.id, record.title, "dry run")
                continue
            try:
                record_id = store.insert(table, fields)
            except StoreError as e:
                report_error("STORE_INSERT", record, e)
                report.add_failed(record.id, record.title, "store insert failed")
            else:
                report_ok("INSERTED", record, {"record_id": record_id})
                report.add_succeeded(record.id, record.title, record_id)
            finally:
                self._sleep(self.config.migration.insert_delay)

    def migrate_blogs(self, file_path: Optional[str] = None) -> RunReport:
        """Insert every blog post of a WordPress export into the blog table.

        :param file_path: Path of the WXR export; defaults to
            ``migration.blogs_file``.
        :return: The run report.
        """
        report = RunReport("migrate-blogs")
        items = self._ingest(file_path or self.config.migration.blogs_file, report)
        if items is None:
            return report
        records = self._apply_limit(normalize_blogs(items, self.config.sites, report))
        self.log_message(f"Found {len(records)} blogs to migrate")
        self._insert_records(self.blog_table, records, report)
        self.log_message(report.summary())
        return report

    def migrate_projects(self, file_path: Optional[str] = None) -> RunReport:
        """Insert every project of a WordPress export into the project table.

        Attachment items of the same export resolve the cover images.
        """
        report = RunReport("migrate-projects")
        items = self._ingest(file_path or self.config.migration.projects_file, report)
        if items is None:
            return report
        records = self._apply_limit(normalize_projects(items, self.config.sites, report))
        self.log_message(f"Found {len(records)} projects to migrate")
        self._insert_records(self.project_table, records, report)
        self.log_message(report.summary())
        return report

    # ------------------------------------------------------------------
    # AI repair of migrated bodies
    # ------------------------------------------------------------------
    def _fix_bodies(
        self,
        table: AirtableTable,
        command: str,
        kind: str,
        urls: Callable[[Dict[str, Any]], Tuple[str, str]],
        old_selectors: Sequence[str],
    ) -> RunReport:
        report = RunReport(command)
        records = self._scan(table, report)
        if records is None:
            return report
        pending = self._apply_limit([r for r in records if not r.get("aiRewrittenBody")])
        if not pending:
            self.log_message(f"No {kind}s found in Airtable that need fixing")
            return report

        sites = self.config.sites
        total = len(pending)
        self.log_message(f"Processing {total} {kind}s...")
        for index, record in enumerate(pending, start=1):
            slug, title = record.get("slug", ""), record.get("title", "")
            self.log_message(f"[{index}/{total}] Processing {kind}: {title}")

            old_url, new_url = urls(record)
            old_html = self.renderer.render(old_url, old_selectors, fallback_to_document=False).html
            new_html = self.renderer.render(new_url, sites.new_content_selectors).html
            self.log_message(f"Old site HTML: {old_html[:200]}...", "DEBUG")
            self.log_message(f"New site HTML: {new_html[:200]}...", "DEBUG")
            if not old_html or not new_html:
                missing = old_url if not old_html else new_url
                report_error("RENDER", record, RenderError(f"nothing rendered for {missing}"))
                report.add_failed(slug, title, "render failed")
                continue

            new_body = get_rewritten_body(
                self.llm,
                old_html,
                new_html,
                record.get("body", ""),
                kind=kind,
                max_tokens=self.config.llm.rewrite_max_tokens,
            )
            self._update(table, record, {"aiRewrittenBody": new_body}, report)

        self.log_message(report.summary())
        return report

    def fix_blog_bodies(self) -> RunReport:
        sites = self.config.sites

        def urls(record: Dict[str, Any]):
            slug = record.get("slug", "")
            return (
                record.get("oldSiteUrl") or sites.old_blog_url(slug),
                record.get("stagingSiteUrl") or sites.staging_blog_url(slug),
            )

        return self._fix_bodies(self.blog_table, "fix-blogs", "blog post", urls, sites.old_blog_selectors)

    def fix_project_bodies(self) -> RunReport:
        sites = self.config.sites

        def urls(record: Dict[str, Any]):
            slug = record.get("slug", "")
            return sites.old_project_url(slug), sites.staging_project_url(slug)

        return self._fix_bodies(
            self.project_table, "fix-projects", "project page", urls, sites.old_project_selectors
        )

    # ------------------------------------------------------------------
    # Rendering check
    # ------------------------------------------------------------------
    def check_project_rendering(self) -> RunReport:
        """Ask the LLM whether each staging project page rendered properly.

        Problematic projects are collected in ``report.issues`` as
        ``{"title", "slug", "url", "issues"}`` entries.
        """
        report = RunReport("check-rendering")
        records = self._scan(self.project_table, report)
        if records is None:
            return report
        projects = self._apply_limit(sorted(records, key=lambda r: r.get("slug", "")))
        if not projects:
            self.log_message("No projects found in Airtable")
            return report

        sites = self.config.sites
        total = len(projects)
        self.log_message(f"Checking rendering for {total} projects...")
        for index, project in enumerate(projects, start=1):
            slug, title = project.get("slug", ""), project.get("title", "")
            self.log_message(f"[{index}/{total}] Checking project: {title}")

            url = sites.staging_project_url(slug)
            rendered = self.renderer.render(url, sites.new_content_selectors, screenshot=True)
            verdict = check_rendering(
                self.llm,
                rendered.html,
                project,
                screenshot=rendered.screenshot,
                max_tokens=self.config.llm.check_max_tokens,
            )
            if verdict["isProperlyRendered"]:
                self.log_message(f"Project rendered properly: {title}")
                report_ok("RENDER_OK", project, {"url": url})
                report.add_succeeded(slug, title, project.get("id"))
                continue

            self.log_message(f"RENDERING ISSUES DETECTED for project: {title} ({url})", "WARNING")
            for issue in verdict["issues"]:
                self.log_message(f"- {issue}", "WARNING")
            report_ok("RENDER_ISSUES", project, {"url": url, "issues": verdict["issues"]})
            report.issues.append({"title": title, "slug": slug, "url": url, "issues": verdict["issues"]})
            report.add_failed(slug, title, "rendering issues")

        if report.issues:
            self.log_message("==== SUMMARY OF PROBLEMATIC PROJECTS ====")
            self.log_message(f"Found {len(report.issues)} projects with rendering issues:")
            for n, entry in enumerate(report.issues, start=1):
                self.log_message(f"{n}. {entry['title']} - {entry['url']}")
                for issue in entry["issues"]:
                    self.log_message(f"   - {issue}")
        else:
            self.log_message("All projects rendered properly!")
        return report

    # ------------------------------------------------------------------
    # Asset rehosting
    # ------------------------------------------------------------------
    def migrate_assets(self) -> RunReport:
        """Rehost old CMS files referenced by blog bodies, project bodies
        and project cover images, then update the changed records."""
        report = RunReport("migrate-assets")
        pattern = re.compile(self.config.storage.old_asset_url_pattern)
        objects = self.object_store
        download, upload = objects.download, objects.upload

        for table, has_cover in ((self.blog_table, False), (self.project_table, True)):
            records = self._scan(table, report)
            if records is None:
                continue
            records = self._apply_limit(records)
            self.log_message(f"Found {len(records)} {table.name} records")
            urls_processed = 0

            for record in records:
                slug, title = record.get("slug", ""), record.get("title", "")
                self.log_message(f"Processing {table.name.lower()}: {title}")
                body, url_map = replace_old_cms_urls(record.get("body", ""), download, upload, pattern)
                fields: Dict[str, Any] = {}
                if url_map:
                    fields["body"] = body

                cover = record.get("coverImageSrc", "") if has_cover else ""
                if cover and pattern.search(cover):
                    try:
                        self.log_message(f"Processing cover image: {cover}")
                        fields["coverImageSrc"] = rehost_url(cover, download, upload)
                        urls_processed += 1
                    except AssetError as e:
                        report_error("ASSET_UPLOAD", record, e)

                if not fields:
                    report.add_skipped(slug, title, "no old CMS files")
                    continue
                urls_processed += len(url_map)
                self.log_message(f"Updating {table.name.lower()} '{title}' with {len(url_map)} replaced URLs")
                if self._update(table, record, fields, report):
                    report_ok("ASSET_MIGRATED", record, {"urls": url_map, "cover": fields.get("coverImageSrc")})

            self.log_message(f"Processed {urls_processed} URLs across {table.name} records")

        self.log_message(report.summary())
        return report

