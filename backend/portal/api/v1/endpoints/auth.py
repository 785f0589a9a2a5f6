"""
Authentication endpoints: sign in, student self-registration, current identity.
"""
from fastapi import APIRouter, Depends, status

from portal.core.exceptions import ValidationError
from portal.core.security import create_access_token
from portal.modules.auth.dependencies import get_current_identity, get_session_provider
from portal.modules.auth.session import SessionProvider
from portal.schemas.user import Identity, Token, UserCreate, UserLogin, UserRole

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _issue_token(identity: Identity) -> Token:
    return Token(access_token=create_access_token(identity.to_claims()), identity=identity)


@router.post("/login", response_model=Token)
async def login(
    credentials: UserLogin,
    sessions: SessionProvider = Depends(get_session_provider),
):
    """Exchange email and password for an access token"""
    identity = await sessions.login(credentials.email, credentials.password)
    return _issue_token(identity)


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserCreate,
    sessions: SessionProvider = Depends(get_session_provider),
):
    """Student self-registration; staff accounts are created by an admin"""
    if data.role != UserRole.STUDENT:
        raise ValidationError("Only student accounts can self-register", field="role")
    identity = await sessions.register(data)
    return _issue_token(identity)


@router.get("/me", response_model=Identity)
async def me(identity: Identity = Depends(get_current_identity)):
    return identity


@router.post("/logout")
async def logout(
    identity: Identity = Depends(get_current_identity),
    sessions: SessionProvider = Depends(get_session_provider),
):
    await sessions.sign_out(identity)
    return {"success": True}
