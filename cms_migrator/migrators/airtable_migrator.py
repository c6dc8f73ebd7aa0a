"""
Record store backed by the Airtable REST API.

This module implements the three store operations the pipelines need:
``scan`` (list every row of a table, following pagination), ``insert``
(create one row) and ``update`` (patch some fields of one row).  Rows are
translated to and from record dictionaries through an
:class:`~cms_migrator.models.airtable_tables.AirtableTable`, so callers
only ever see camelCase record keys.

A simple rate limiter keeps requests under Airtable's limit of five
requests per second per base, and a generic retry wrapper handles
transient network errors and rate limiting responses (429 or 5xx).

Usage example::

    from cms_migrator.config import load_config
    from cms_migrator.models.airtable_tables import blog_table
    from cms_migrator.migrators.airtable_migrator import AirtableStore

    store = AirtableStore(load_config().airtable)
    table = blog_table()
    record_id = store.insert(table, {"title": "Hello", "slug": "hello"})
    store.update(table, record_id, {"aiRewrittenBody": "..."})
    rows = store.scan(table)
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import requests

from ..config import AirtableConfig
from ..exceptions import ConfigError, StoreError
from ..models.airtable_tables import AirtableTable

logger = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)

###############################################################################
# Rate limiting and retry utilities
###############################################################################

class RateLimiter:
    """
    Simple time-based rate limiter.  Ensures that no more than ``rpm``
    requests are dispatched per minute.
    """

    def __init__(self, rpm: int = 240) -> None:
        self.rpm = max(1, rpm)
        self.interval = 60.0 / float(self.rpm)
        self._last = 0.0

    def wait(self, time_fn: Callable[[], float] = time.time, sleep_fn: Callable[[float], None] = time.sleep) -> None:
        now = time_fn()
        dt = now - self._last
        if dt < self.interval:
            sleep_fn(self.interval - dt)
        self._last = time_fn()


def with_retries(
    fn: Callable[[], requests.Response],
    *,
    max_attempts: int = 5,
    base_delay: float = 0.7,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> requests.Response:
    """
    Execute a function returning a ``requests.Response``, retrying on
    transient HTTP errors.  Retries are attempted on status codes 429
    (too many requests) and 5xx server errors, and on connection errors.
    Backoff is exponential unless the server sends ``Retry-After``.

    :param fn: A zero-argument callable that performs the HTTP request.
    :param max_attempts: Maximum number of attempts before giving up.
    :param base_delay: Base delay in seconds for exponential backoff.
    :return: The successful ``requests.Response``.
    :raises requests.HTTPError: if all attempts fail.
    """
    attempt = 0
    while True:
        try:
            resp = fn()
            resp.raise_for_status()
            return resp
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status not in RETRY_STATUSES or attempt >= max_attempts - 1:
                raise
            retry_after = e.response.headers.get("Retry-After")
            try:
                wait = float(retry_after) if retry_after else base_delay * (2 ** attempt)
            except ValueError:
                wait = base_delay * (2 ** attempt)
            logger.warning("HTTP %s, retrying in %.1fs", status, wait)
            sleep_fn(wait)
            attempt += 1
        except requests.RequestException as e:
            if attempt >= max_attempts - 1:
                raise
            wait = base_delay * (2 ** attempt)
            logger.warning("Network error (%s), retrying in %.1fs", e, wait)
            sleep_fn(wait)
            attempt += 1


def _error_details(e: requests.RequestException) -> str:
    response = getattr(e, "response", None)
    if response is not None:
        return f"{response.status_code} {response.text}"
    return str(e)


###############################################################################
# Store interface
###############################################################################

class RecordStore(ABC):
    """Destination store for CMS records."""

    @abstractmethod
    def scan(self, table: AirtableTable) -> List[Dict[str, Any]]:
        """Return every record of ``table`` as a dict keyed by record keys, including ``id``."""

    @abstractmethod
    def insert(self, table: AirtableTable, record: Dict[str, Any]) -> str:
        """Insert ``record`` (without ``id``) and return the id assigned by the store."""

    @abstractmethod
    def update(self, table: AirtableTable, record_id: str, fields: Dict[str, Any]) -> None:
        """Overwrite the given fields of the record ``record_id``."""


class AirtableStore(RecordStore):
    """:class:`RecordStore` talking to the Airtable REST API with ``requests``."""

    def __init__(self, cfg: AirtableConfig, session: Optional[requests.Session] = None) -> None:
        if not cfg.api_key:
            raise ConfigError("AIRTABLE_API_KEY environment variable is not set")
        self.cfg = cfg
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {cfg.api_key}"})
        self._limiter = RateLimiter(cfg.requests_per_minute)

    def table_url(self, table: AirtableTable) -> str:
        return f"{self.cfg.base_url.rstrip('/')}/{table.base_id}/{table.table_id}"

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        def do_request() -> requests.Response:
            self._limiter.wait()
            return self.session.request(method, url, timeout=self.cfg.timeout, **kwargs)

        return with_retries(do_request)

    def scan(self, table: AirtableTable) -> List[Dict[str, Any]]:
        url = self.table_url(table)
        params: Dict[str, Any] = {"pageSize": 100}
        if table.uses_field_ids:
            params["returnFieldsByFieldId"] = "true"
        records: List[Dict[str, Any]] = []
        while True:
            try:
                payload = self._request("GET", url, params=dict(params)).json()
            except requests.RequestException as e:
                raise StoreError(f"Failed to list {table.name} records: {_error_details(e)}") from e
            for row in payload.get("records", []):
                records.append(table.from_fields(row.get("id", ""), row.get("fields") or {}))
            offset = payload.get("offset")
            if not offset:
                break
            params["offset"] = offset
        logger.debug("Scanned %d %s records", len(records), table.name)
        return records

    def insert(self, table: AirtableTable, record: Dict[str, Any]) -> str:
        body = {"fields": table.to_fields(record), "typecast": True}
        try:
            resp = self._request("POST", self.table_url(table), json=body)
        except requests.RequestException as e:
            raise StoreError(f"Failed to insert {table.name} record: {_error_details(e)}") from e
        record_id = resp.json().get("id")
        if not record_id:
            raise StoreError(f"Airtable did not return an id for the new {table.name} record")
        return record_id

    def update(self, table: AirtableTable, record_id: str, fields: Dict[str, Any]) -> None:
        if not record_id:
            raise StoreError(f"Cannot update a {table.name} record without an id")
        body = {"fields": table.to_fields(fields), "typecast": True}
        try:
            self._request("PATCH", f"{self.table_url(table)}/{record_id}", json=body)
        except requests.RequestException as e:
            raise StoreError(f"Failed to update {table.name} record {record_id}: {_error_details(e)}") from e
