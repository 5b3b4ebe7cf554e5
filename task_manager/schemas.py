from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskBase(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None


class TaskCreate(TaskBase):
    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value


class TaskOut(TaskBase):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    completed: bool
