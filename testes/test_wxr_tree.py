import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from cms_migrator.exceptions import IngestError
from cms_migrator.extractors.wxr_tree import (
    Branch,
    Repeated,
    Scalar,
    TextWrapper,
    attribute,
    child,
    iter_nodes,
    load_wxr_items,
    parse_wxr,
    read_wxr_file,
    resolve_text,
)
from wxr_factory import item, wxr


def test_single_item_category_and_postmeta_are_always_repeated():
    xml = wxr(item(categories=[("category", "News")], meta={"author": "Ada"}))
    channel = child(parse_wxr(xml), "channel")

    items = child(channel, "item")
    assert isinstance(items, Repeated)
    assert len(items.items) == 1

    only = items.items[0]
    assert isinstance(only, Branch)
    assert isinstance(child(only, "category"), Repeated)
    assert isinstance(child(only, "wp:postmeta"), Repeated)


def test_namespaced_tags_use_document_prefixes():
    items = load_wxr_items(wxr(item(post_id="7", creator="bob", body="<p>x</p>")))
    node = items[0]
    assert resolve_text(child(node, "wp:post_id")) == "7"
    assert resolve_text(child(node, "dc:creator")) == "bob"
    assert resolve_text(child(node, "content:encoded")) == "<p>x</p>"


def test_element_with_attributes_becomes_text_wrapper():
    node = load_wxr_items(wxr(item(categories=[("post_tag", "AI Safety")])))[0]
    category = next(iter_nodes(child(node, "category")))
    assert isinstance(category, TextWrapper)
    assert category.text == "AI Safety"
    assert attribute(category, "domain") == "post_tag"
    assert attribute(category, "nicename") == "ai-safety"


def test_repeated_non_array_tag_collapses_only_when_single():
    xml = wxr("<item><title>a</title><guid>1</guid><guid>2</guid></item>")
    node = load_wxr_items(xml)[0]
    assert isinstance(child(node, "title"), Scalar)
    guids = child(node, "guid")
    assert isinstance(guids, Repeated)
    assert [resolve_text(g) for g in guids.items] == ["1", "2"]


def test_resolve_text_handles_every_shape():
    assert resolve_text(None) == ""
    assert resolve_text(Scalar("a")) == "a"
    assert resolve_text(TextWrapper("b", {"domain": "x"})) == "b"
    assert resolve_text(Branch(text="c")) == "c"
    assert resolve_text(Repeated((Scalar("first"), Scalar("second")))) == "first"
    assert resolve_text(Repeated(())) == ""


def test_iter_nodes_and_child_helpers():
    assert list(iter_nodes(None)) == []
    assert list(iter_nodes(Scalar("a"))) == [Scalar("a")]
    assert child(Scalar("a"), "title") is None
    assert attribute(Scalar("a"), "domain") == ""


def test_items_keep_document_order():
    xml = wxr(item(title="first", post_id="1"), item(title="second", post_id="2"))
    assert [resolve_text(child(i, "title")) for i in load_wxr_items(xml)] == ["first", "second"]


def test_control_characters_and_leading_whitespace_are_removed():
    xml = "\n   " + wxr(item(title="Bad\x0bchar\x01"))
    node = load_wxr_items(xml)[0]
    assert resolve_text(child(node, "title")) == "Badchar"


def test_malformed_xml_yields_empty_sequence():
    assert load_wxr_items("<rss><channel><item></channel>") == []
    assert load_wxr_items("") == []
    assert load_wxr_items("this is not xml") == []


def test_malformed_xml_raises_in_strict_mode():
    with pytest.raises(IngestError):
        load_wxr_items("<rss><channel><item></channel>", strict=True)


def test_document_without_channel_is_rejected():
    assert load_wxr_items("<rss version='2.0'></rss>") == []
    with pytest.raises(IngestError):
        parse_wxr("<feed><entry/></feed>")


def test_empty_channel_has_no_items():
    assert load_wxr_items(wxr()) == []


def test_read_wxr_file(tmp_path):
    path = tmp_path / "posts.xml"
    path.write_text(wxr(item(title="From file")), encoding="utf-8")
    items = read_wxr_file(str(path))
    assert resolve_text(child(items[0], "title")) == "From file"


def test_read_missing_file(tmp_path):
    missing = str(tmp_path / "nope.xml")
    assert read_wxr_file(missing) == []
    with pytest.raises(IngestError):
        read_wxr_file(missing, strict=True)
