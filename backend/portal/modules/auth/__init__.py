# Authentication module

from portal.modules.auth.dependencies import (
    get_current_identity,
    get_current_admin,
    get_session_provider,
)
from portal.modules.auth.session import SessionProvider

__all__ = [
    "get_current_identity",
    "get_current_admin",
    "get_session_provider",
    "SessionProvider",
]
