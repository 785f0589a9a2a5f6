"""
Session provider: password sign-in against the users table.

Produces an explicit `Identity` that callers pass on; there is no
module-level "current user".
"""
from typing import Optional

from portal.core.config import settings
from portal.core.exceptions import (
    AuthenticationError,
    DirectoryStoreError,
    ValidationError,
    UserNotFoundError,
)
from portal.core.logging_config import logger
from portal.core.security import get_password_hash, verify_password
from portal.schemas.user import Identity, User, UserCreate
from portal.services.directory_store import DirectoryStore, USER_PUBLIC_COLUMNS

INVALID_CREDENTIALS = "Invalid email or password"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class SessionProvider:
    """Issues and looks up identities"""

    def __init__(self, store: DirectoryStore):
        self._store = store
        self._table = settings.USERS_TABLE

    async def _find_by_email(self, email: str, include_password: bool = False) -> Optional[dict]:
        columns = "*" if include_password else USER_PUBLIC_COLUMNS
        rows = await self._store.select(
            self._table,
            filters={"email": normalize_email(email)},
            columns=columns,
        )
        return rows[0] if rows else None

    async def login(self, email: str, password: str) -> Identity:
        """
        Check credentials and return the user's identity.

        Raises:
            AuthenticationError: unknown email or wrong password
        """
        row = await self._find_by_email(email, include_password=True)

        if row is None or not verify_password(password, row.get("password") or ""):
            logger.log_auth_event("login", success=False, user_email=email, reason="bad credentials")
            raise AuthenticationError(INVALID_CREDENTIALS)

        identity = Identity.from_user(User.model_validate(row))
        logger.log_auth_event("login", success=True, user_email=identity.email)
        return identity

    async def register(self, data: UserCreate) -> Identity:
        """
        Create a user row with a hashed password.

        Raises:
            ValidationError: email already registered
        """
        email = normalize_email(data.email)
        if await self._find_by_email(email) is not None:
            logger.log_auth_event("register", success=False, user_email=email, reason="duplicate email")
            raise ValidationError("Email is already registered", field="email")

        rows = await self._store.insert(
            self._table,
            [{
                "email": email,
                "password": get_password_hash(data.password),
                "full_name": data.full_name,
                "role": data.role.value,
                "level": data.level,
            }],
        )
        if not rows:
            logger.log_auth_event("register", success=False, user_email=email, reason="insert returned no rows")
            raise DirectoryStoreError("Insert returned no rows", table=self._table)
        identity = Identity.from_user(User.model_validate(rows[0]))
        logger.log_auth_event("register", success=True, user_email=email, role=identity.role)
        return identity

    async def get_identity(self, user_id: str) -> Identity:
        rows = await self._store.select(
            self._table,
            filters={"id": user_id},
            columns=USER_PUBLIC_COLUMNS,
        )
        if not rows:
            raise UserNotFoundError(user_id)
        return Identity.from_user(User.model_validate(rows[0]))

    async def sign_out(self, identity: Identity) -> None:
        # Tokens are stateless; signing out only ends the client's session
        logger.log_auth_event("logout", success=True, user_email=identity.email)
