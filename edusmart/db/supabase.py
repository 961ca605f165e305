import logging
from functools import lru_cache

from supabase import create_client, Client
from edusmart.core.config import settings

logger = logging.getLogger(__name__)


def create_supabase_client() -> Client:
    """
    Create and validate Supabase client connection.

    Returns:
        Client: Configured Supabase client

    Raises:
        RuntimeError: If connection validation fails
    """
    try:
        # Service role key: row access is decided by the authorization policy, not RLS
        client: Client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)

        # Validate connection by attempting a simple query
        client.table("users").select("id").limit(1).execute()
        logger.info("Supabase connection validated successfully")

        return client

    except Exception as e:
        error_msg = f"Failed to connect to Supabase: {str(e)}"
        logger.error(error_msg)
        raise RuntimeError(error_msg) from e


@lru_cache
def get_supabase() -> Client:
    """FastAPI dependency returning the shared client, created on first use."""
    return create_supabase_client()
