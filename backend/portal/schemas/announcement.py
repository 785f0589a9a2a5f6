from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime

from portal.schemas.user import User


class Announcement(BaseModel):
    id: str
    message: str
    level: Optional[str] = None  # None = broadcast to every level
    posted_by: Optional[str] = None
    created_at: Optional[datetime] = None
    author: Optional[User] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def is_broadcast(self) -> bool:
        return self.level is None


class AnnouncementCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    level: Optional[str] = None
