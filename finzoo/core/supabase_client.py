# finzoo/core/supabase_client.py
from functools import lru_cache
from supabase import create_client, Client, ClientOptions

from finzoo.core.config import get_settings

settings = get_settings()


def _server_options() -> ClientOptions:
    # The backend never keeps a user session on a shared client.
    return ClientOptions(auto_refresh_token=False, persist_session=False)


def supabase_public() -> Client:
    """
    Create a Supabase client with the anon/public key.

    Use cases:
      - password sign-in / sign-up
      - OAuth code exchange

    A fresh client is returned on every call: auth calls store the
    resulting session on the client, so sharing one across requests
    would leak sessions between users.

    Note: This client still respects RLS.
    """
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY, _server_options())


@lru_cache
def supabase_admin() -> Client:
    """
    Create a Supabase client with the service role key.

    Use cases:
      - uploading to the pet media bucket
      - admin Auth operations (sign-out, delete user)

    WARNING:
      - Never expose service role key to frontend.
      - Only backend should call this.

    Raises:
        RuntimeError: if SUPABASE_SERVICE_ROLE_KEY is not set.
    """
    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError("Missing SUPABASE_SERVICE_ROLE_KEY in .env")
    return create_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_ROLE_KEY,
        _server_options(),
    )
