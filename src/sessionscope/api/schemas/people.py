"""People DTOs: pure Pydantic, no ORM imports."""
from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, Field, field_validator


class PersonCreate(BaseModel):
    id: int | None = Field(default=None, ge=1)
    full_name: str
    job_title: str
    year_born: int = Field(ge=0, le=9999)

    @field_validator("full_name")
    @classmethod
    def full_name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("full_name must not be empty")
        return v

    @field_validator("job_title")
    @classmethod
    def job_title_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("job_title must not be empty")
        return v


class PersonRead(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    full_name: str
    job_title: str
    year_born: int
    created_at: datetime | None = None


class PersonList(BaseModel):
    items: list[PersonRead]
    total: int
