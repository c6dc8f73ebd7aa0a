"""
Top-level package for the WordPress → Airtable CMS migration utility.

This package bundles all components required to read WordPress WXR
exports, convert HTML bodies to Markdown with embed directives, insert
the resulting records into Airtable, and review them afterwards with a
headless browser and an LLM.  Modules are split into subpackages:

* :mod:`cms_migrator.extractors` – WXR parsing and field extraction
* :mod:`cms_migrator.parsers` – HTML to Markdown conversion
* :mod:`cms_migrator.models` – record models and Airtable table schemas
* :mod:`cms_migrator.migrators` – Airtable store and asset rehosting
* :mod:`cms_migrator.reviewers` – AI body repair and rendering checks
* :mod:`cms_migrator.services` – LLM, headless browser and object store clients
* :mod:`cms_migrator.utils` – event logs, run reports, logging and pre-flight checks

Orchestration lives in :mod:`cms_migrator.migration_tool`; the command
line in :mod:`cms_migrator.cli`.
"""

__version__ = "0.1.0"
