from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ReviewStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ReviewCreate(BaseModel):
    slug: str = Field(min_length=1)
    name: Optional[str] = None
    rating: float = Field(ge=1, le=5)
    comment: str = Field(min_length=1)

    @field_validator("slug", "comment", mode="before")
    @classmethod
    def strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v


class ReviewStatusUpdate(BaseModel):
    status: str
