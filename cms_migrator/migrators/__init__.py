"""
Writers to the destination systems.

This subpackage talks to the Airtable REST API (rate limiting, automatic
retries, field mapping) and rehosts files of the old CMS on the object
store.
"""
