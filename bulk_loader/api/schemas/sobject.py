"""Pydantic models describing object metadata."""

from pydantic import BaseModel, ConfigDict, Field


class FieldMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    label: str | None = None
    type: str | None = None
    external_id: bool = Field(False, alias="externalId")
