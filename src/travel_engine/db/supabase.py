"""Supabase client and table names used by the record store backend."""

import logging
from functools import lru_cache
from supabase import create_client, Client
from ..config import settings

logger = logging.getLogger(__name__)

CLIENT_FACTS_TABLE = "client_facts"
CLIENTS_TABLE = "clients"
TRIPS_TABLE = "travel_costs"
AUTHORIZATION_LOGS_TABLE = "travel_authorization_logs"

RECORD_STORE_TABLES = (CLIENT_FACTS_TABLE, CLIENTS_TABLE, TRIPS_TABLE, AUTHORIZATION_LOGS_TABLE)


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase credentials not configured (missing URL or key)")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        return None


def check_tables(client) -> dict[str, bool]:
    """Report which record store tables answer a minimal select."""
    status: dict[str, bool] = {}
    for table in RECORD_STORE_TABLES:
        try:
            client.table(table).select("*").limit(1).execute()
            status[table] = True
        except Exception as e:
            logger.warning(f"Supabase table '{table}' is not reachable: {e}")
            status[table] = False
    return status
