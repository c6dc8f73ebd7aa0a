import logging
from typing import Iterable, Optional

import requests

from ..config import AirtableConfig
from ..exceptions import PreFlightCheckError
from ..models.airtable_tables import AirtableTable

logger = logging.getLogger(__name__)


def run_airtable_pre_flight_checks(
    cfg: AirtableConfig,
    tables: Iterable[AirtableTable],
    session: Optional[requests.Session] = None,
) -> None:
    """
    Verifies that Airtable is reachable with the configured credentials
    before any record is written.

    Args:
        cfg: The Airtable section of the configuration.
        tables: The tables the run is going to read or write.
        session: Optional HTTP session (mostly for tests).

    Raises:
        PreFlightCheckError: If any check fails.
    """
    logger.info("Running pre-flight checks...")

    if not cfg.api_key:
        raise PreFlightCheckError("AIRTABLE_API_KEY environment variable is not set.")

    http = session or requests
    headers = {"Authorization": f"Bearer {cfg.api_key}"}

    for table in tables:
        url = f"{cfg.base_url.rstrip('/')}/{table.base_id}/{table.table_id}"
        try:
            response = http.get(url, headers=headers, params={"pageSize": 1}, timeout=10)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status in (401, 403):
                raise PreFlightCheckError("The Airtable API key is invalid or has no access to this base.")
            if status == 404:
                raise PreFlightCheckError(
                    f"Airtable table '{table.name}' ({table.base_id}/{table.table_id}) was not found."
                )
            raise PreFlightCheckError(f"Unexpected error while checking table '{table.name}': {e}")
        except requests.RequestException as e:
            raise PreFlightCheckError(f"Network error while connecting to Airtable: {e}")

    logger.info("Pre-flight checks passed successfully.")
