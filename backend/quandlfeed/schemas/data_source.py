from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class DataSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    count: int = Field(default=0, ge=0)
    description: str = ""
    code: str
