from pydantic import BaseModel, EmailStr, Field, ConfigDict, model_validator
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"
    LECTURER = "lecturer"


class User(BaseModel):
    """A user row as returned by the directory store (password column is dropped)"""
    id: str
    email: str
    full_name: Optional[str] = None
    role: UserRole = UserRole.STUDENT
    level: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore", use_enum_values=True)


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: Optional[str] = None
    role: UserRole = UserRole.STUDENT
    level: Optional[str] = None

    @model_validator(mode='after')
    def validate_student_level(self):
        """Students are always filtered by level, so they must have one"""
        if self.role == UserRole.STUDENT and not (self.level and self.level.strip()):
            raise ValueError("Level is required for students")
        return self


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    full_name: Optional[str] = None
    role: Optional[UserRole] = None
    level: Optional[str] = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Identity(BaseModel):
    """
    Claims of the signed-in user.

    Passed explicitly into every component that needs to know who is
    looking; nothing reads it from ambient state.
    """
    id: str
    email: str
    full_name: Optional[str] = None
    role: UserRole = UserRole.STUDENT
    level: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True, frozen=True)

    @property
    def display_name(self) -> str:
        if self.full_name:
            return self.full_name
        local_part = self.email.split("@")[0] if self.email else ""
        return local_part or "User"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def to_claims(self) -> Dict[str, Any]:
        return {
            "sub": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "level": self.level,
        }

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Identity":
        return cls(
            id=claims["sub"],
            email=claims.get("email", ""),
            full_name=claims.get("full_name"),
            role=claims.get("role") or UserRole.STUDENT,
            level=claims.get("level"),
        )

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
            level=user.level,
        )


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    identity: Identity
