from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from portal.core.directory import get_store
from portal.core.exceptions import AuthenticationError, AuthorizationError
from portal.core.logging_config import set_user_id, set_level
from portal.core.security import decode_token
from portal.modules.auth.session import SessionProvider
from portal.schemas.user import Identity
from portal.services.directory_store import DirectoryStore

security = HTTPBearer(auto_error=False)


async def get_session_provider(store: DirectoryStore = Depends(get_store)) -> SessionProvider:
    return SessionProvider(store)


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Identity:
    """Identity from the bearer token's claims"""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = decode_token(credentials.credentials)

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    if not payload.get("sub"):
        raise AuthenticationError("Invalid token payload")

    identity = Identity.from_claims(payload)
    set_user_id(identity.id)
    set_level(identity.level or "")
    return identity


async def get_current_admin(
    identity: Identity = Depends(get_current_identity)
) -> Identity:
    """Require admin role"""
    if not identity.is_admin:
        raise AuthorizationError("Admin access required")
    return identity
