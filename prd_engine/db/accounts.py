"""Database operations for accounts."""

from typing import Any

from prd_engine.db.supabase_client import get_supabase as get_client


def get_account_by_auth_id(auth_user_id: str) -> dict[str, Any] | None:
    """Get the local account linked to an identity-provider user id."""
    client = get_client()
    result = client.table("accounts").select("*").eq("auth_user_id", auth_user_id).execute()
    if result.data:
        return result.data[0]
    return None
