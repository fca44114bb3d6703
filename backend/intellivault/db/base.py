from __future__ import annotations

from functools import lru_cache

from supabase import Client, create_client
from supabase.lib.client_options import ClientOptions

from intellivault.config import settings
from intellivault.utils.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """Return a cached Supabase admin client using the service role key.

    Used only by operational probes; request handling always goes through a
    request-scoped client so row-level security applies.
    """
    logger.debug("Initializing Supabase admin client")
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise RuntimeError("supabase_url and supabase_service_role_key are required for admin client")
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
        options=ClientOptions(auto_refresh_token=False, persist_session=False),
    )


def create_request_supabase_client(bearer_token: str | None = None) -> Client:
    """Create a request-scoped Supabase client using the anon key.

    If a JWT is provided, set it as the PostgREST bearer so that RLS policies
    are enforced for all table operations in this request.
    """
    logger.debug("Creating request-scoped Supabase client")
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise RuntimeError("supabase_url and supabase_anon_key are required for request client")

    client = create_client(
        settings.supabase_url,
        settings.supabase_anon_key,
        options=ClientOptions(auto_refresh_token=False, persist_session=False),
    )
    if bearer_token:
        client.postgrest.auth(bearer_token)
    return client
