"""
Supabase client for the optional durable session store
"""
import logging
from typing import Optional

from supabase import create_client, Client

from molgeno_tutor.config import get_settings

logger = logging.getLogger(__name__)

_supabase_client: Optional[Client] = None


def get_supabase_client() -> Optional[Client]:
    """
    Get or create the Supabase client singleton.

    Returns:
        Client, or None when SUPABASE_URL / SUPABASE_SERVICE_KEY are not set
    """
    global _supabase_client

    if _supabase_client is None:
        settings = get_settings()
        if not settings.supabase_enabled:
            logger.info("SUPABASE_URL / SUPABASE_SERVICE_KEY not set, sessions stay in memory")
            return None

        # Use service role key in backend for table access
        _supabase_client = create_client(settings.supabase_url, settings.supabase_service_key)

    return _supabase_client
