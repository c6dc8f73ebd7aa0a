"""
Readers for WordPress eXtended RSS (WXR) exports.

:mod:`.wxr_tree` turns the XML into a tree of typed nodes;
:mod:`.wordpress_extractor` reads fields from ``<item>`` nodes and builds
blog and project records from them.
"""
