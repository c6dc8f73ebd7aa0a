"""
Airtable table definitions for the two CMS record types.

A table maps every record key (the camelCase aliases of
:mod:`cms_migrator.models.cms_records`) to an Airtable column and tags it
with a value type: ``string``, ``boolean``, ``string[]`` or ``number``.
Columns are either all field names or all field ids (``fld...``); ids
are robust against column renames but must then be used everywhere.

The defaults below can be overridden per key from the ``airtable.tables``
section of the configuration file.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

FIELD_TYPES = ("string", "boolean", "string[]", "number")


class AirtableTable(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    base_id: str = Field(..., alias="baseId", min_length=1)
    table_id: str = Field(..., alias="tableId", min_length=1)
    mappings: Dict[str, str]
    schema_: Dict[str, str] = Field(..., alias="schema")

    @model_validator(mode="after")
    def _check_columns(self) -> "AirtableTable":
        missing = sorted(set(self.mappings) ^ set(self.schema_))
        if missing:
            raise ValueError(f"Table {self.name}: mappings and schema disagree on {', '.join(missing)}")
        bad_types = sorted(k for k, t in self.schema_.items() if t not in FIELD_TYPES)
        if bad_types:
            raise ValueError(f"Table {self.name}: unknown field type for {', '.join(bad_types)}")
        ids = [c.startswith("fld") for c in self.mappings.values()]
        if any(ids) and not all(ids):
            raise ValueError(f"Table {self.name}: mix of field ids and field names in mappings")
        return self

    @property
    def uses_field_ids(self) -> bool:
        return bool(self.mappings) and all(c.startswith("fld") for c in self.mappings.values())

    def to_fields(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Translate record keys to columns, coercing values by type.

        Keys without a column (such as ``id``) are left out.
        """
        fields: Dict[str, Any] = {}
        for key, value in record.items():
            column = self.mappings.get(key)
            if column is None:
                continue
            fields[column] = coerce_value(value, self.schema_[key])
        return fields

    def from_fields(self, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Translate a stored row back to record keys.

        Airtable leaves empty cells out of responses; they come back as the
        empty value of their type.
        """
        record: Dict[str, Any] = {"id": record_id}
        for key, column in self.mappings.items():
            record[key] = coerce_value(fields.get(column), self.schema_[key])
        return record


def coerce_value(value: Any, field_type: str) -> Any:
    if field_type == "boolean":
        return bool(value)
    if field_type == "number":
        if value in (None, ""):
            return 0
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return value
        try:
            return int(value)
        except (TypeError, ValueError):
            try:
                return float(value)
            except (TypeError, ValueError):
                return 0
    if field_type == "string[]":
        if value in (None, ""):
            return []
        if isinstance(value, (list, tuple, set)):
            return [str(v) for v in value if v is not None]
        return [str(value)]
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


_DEFAULT_BASE_ID = "app63L1YChHfS6RJF"

_BLOG_TABLE: Dict[str, Any] = {
    "name": "Blog",
    "baseId": _DEFAULT_BASE_ID,
    "tableId": "tblT8jgeG4QWX2Fj4",
    "mappings": {
        "title": "Title",
        "slug": "Slug",
        "body": "Body",
        "publishedAt": "Published at",
        "authorName": "Author name",
        "authorUrl": "Author URL",
        "isPublic": "Is public",
        "sitesPublishedOn": "Sites published on",
        "oldSiteUrl": "Old site URL",
        "stagingSiteUrl": "Staging site URL",
        "aiRewrittenBody": "AI rewritten body",
    },
    "schema": {
        "title": "string",
        "slug": "string",
        "body": "string",
        "publishedAt": "string",
        "authorName": "string",
        "authorUrl": "string",
        "isPublic": "boolean",
        "sitesPublishedOn": "string[]",
        "oldSiteUrl": "string",
        "stagingSiteUrl": "string",
        "aiRewrittenBody": "string",
    },
}

_PROJECT_TABLE: Dict[str, Any] = {
    "name": "Project",
    "baseId": _DEFAULT_BASE_ID,
    "tableId": "Project",
    "mappings": {
        "title": "Title",
        "slug": "Slug",
        "body": "Body",
        "authorName": "Author name",
        "authorUrl": "Author URL",
        "coverImageSrc": "Cover image src",
        "publishedAt": "Published at",
        "publicationStatus": "Publication status",
        "course": "Course",
        "tag": "Tag",
        "aiRewrittenBody": "AI rewritten body",
    },
    "schema": {
        "title": "string",
        "slug": "string",
        "body": "string",
        "authorName": "string",
        "authorUrl": "string",
        "coverImageSrc": "string",
        "publishedAt": "number",
        "publicationStatus": "string",
        "course": "string",
        "tag": "string[]",
        "aiRewrittenBody": "string",
    },
}


def _merge(defaults: Dict[str, Any], override: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in defaults.items()}
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


def blog_table(override: Optional[Dict[str, Any]] = None) -> AirtableTable:
    return AirtableTable.model_validate(_merge(_BLOG_TABLE, override))


def project_table(override: Optional[Dict[str, Any]] = None) -> AirtableTable:
    return AirtableTable.model_validate(_merge(_PROJECT_TABLE, override))
