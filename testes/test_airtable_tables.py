import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
from pydantic import ValidationError

from cms_migrator.models.airtable_tables import AirtableTable, blog_table, coerce_value, project_table
from cms_migrator.models.cms_records import BlogRecord, ProjectRecord


def test_default_tables_cover_record_fields():
    blog_keys = set(BlogRecord(title="t").model_dump(by_alias=True)) - {"id"}
    project_keys = set(ProjectRecord(title="t").model_dump(by_alias=True)) - {"id"}
    assert set(blog_table().mappings) == blog_keys
    assert set(project_table().mappings) == project_keys


def test_to_fields_maps_columns_and_drops_id():
    table = project_table()
    fields = table.to_fields({"id": "10", "title": "P", "publishedAt": "1700000000", "tag": "solo"})
    assert fields == {"Title": "P", "Published at": 1700000000, "Tag": ["solo"]}


def test_from_fields_fills_missing_cells_with_empty_values():
    table = blog_table()
    record = table.from_fields("rec1", {"Title": "Hello", "Is public": True})
    assert record["id"] == "rec1"
    assert record["title"] == "Hello"
    assert record["isPublic"] is True
    assert record["sitesPublishedOn"] == []
    assert record["aiRewrittenBody"] == ""


def test_override_merges_with_defaults():
    table = blog_table({"tableId": "tblOther", "mappings": {"title": "Name"}})
    assert table.table_id == "tblOther"
    assert table.base_id == "app63L1YChHfS6RJF"
    assert table.mappings["title"] == "Name"
    assert table.mappings["slug"] == "Slug"


def test_field_ids_and_names_cannot_be_mixed():
    with pytest.raises(ValidationError):
        blog_table({"mappings": {"title": "fldAAAAAAAAAAAAAA"}})


def test_all_field_ids_are_detected():
    table = AirtableTable(
        name="T",
        baseId="app1",
        tableId="tbl1",
        mappings={"title": "fld1", "slug": "fld2"},
        schema={"title": "string", "slug": "string"},
    )
    assert table.uses_field_ids


def test_schema_must_match_mappings():
    with pytest.raises(ValidationError):
        AirtableTable(
            name="T", baseId="app1", tableId="tbl1", mappings={"title": "Title"}, schema={}
        )
    with pytest.raises(ValidationError):
        AirtableTable(
            name="T",
            baseId="app1",
            tableId="tbl1",
            mappings={"title": "Title"},
            schema={"title": "date"},
        )


def test_coerce_value():
    assert coerce_value(None, "string") == ""
    assert coerce_value(["a", "b"], "string") == "a, b"
    assert coerce_value("", "boolean") is False
    assert coerce_value("12", "number") == 12
    assert coerce_value("1.5", "number") == 1.5
    assert coerce_value("abc", "number") == 0
    assert coerce_value(None, "string[]") == []
    assert coerce_value(("a", None), "string[]") == ["a"]


def test_record_dedup_keeps_first_occurrence_order():
    record = ProjectRecord(tag=["b", "a", "b"])
    assert record.tag == ["b", "a"]
    blog = BlogRecord.model_validate({"sitesPublishedOn": ["x", "x", "y"]})
    assert blog.sites_published_on == ["x", "y"]
