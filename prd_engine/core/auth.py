"""Identity resolution for FastAPI routes."""

import logging
from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from prd_engine.db.accounts import get_account_by_auth_id

logger = logging.getLogger(__name__)

# HTTP Bearer scheme for Authorization header
security = HTTPBearer(auto_error=False)


class AuthContext:
    """Context object containing the caller's local account."""

    def __init__(self, account: dict[str, Any], auth_user_id: str):
        self.account = account
        self.auth_user_id = auth_user_id
        self.account_id = str(account["id"])


async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """
    Resolve the identity-provider user id behind a Bearer token.

    Returns None when no token is present or it fails verification.
    """
    if not credentials:
        return None

    token = credentials.credentials

    try:
        from prd_engine.db.supabase_client import get_supabase

        client = get_supabase()

        # Validates the JWT signature and expiration
        auth_response = client.auth.get_user(token)

        if not auth_response or not auth_response.user:
            return None

        return str(auth_response.user.id)

    except Exception as e:
        logger.warning(f"Auth error: {e}")
        return None


async def require_auth(
    auth_user_id: Optional[str] = Depends(get_identity),
) -> AuthContext:
    """
    Require an authenticated caller with a local account.

    Raises 401 without identity and 404 when the identity has no account.
    """
    if not auth_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    account = get_account_by_auth_id(auth_user_id)
    if not account:
        logger.info(f"No account found for identity {auth_user_id}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return AuthContext(account=account, auth_user_id=auth_user_id)
