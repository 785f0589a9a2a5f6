from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime

from portal.schemas.user import User


class Course(BaseModel):
    id: str
    course_code: str
    course_title: str
    level: str
    lecturer_id: Optional[str] = None
    created_at: Optional[datetime] = None
    lecturer: Optional[User] = None

    model_config = ConfigDict(extra="ignore")


class CourseCreate(BaseModel):
    course_code: str = Field(..., min_length=1, max_length=32)
    course_title: str = Field(..., min_length=1, max_length=255)
    level: str = Field(..., min_length=1)
    lecturer_id: Optional[str] = None


class CourseUpdate(BaseModel):
    course_code: Optional[str] = Field(None, min_length=1, max_length=32)
    course_title: Optional[str] = Field(None, min_length=1, max_length=255)
    level: Optional[str] = Field(None, min_length=1)
    lecturer_id: Optional[str] = None
