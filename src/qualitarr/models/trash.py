"""Models for upstream TRaSH Guides custom format records."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TrashSpecification(BaseModel):
    """One upstream condition. ``fields`` holds ``value`` or, for sizes, ``min``/``max``."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    implementation: str = ""
    negate: bool = False
    required: bool = False
    fields: dict[str, Any] = Field(default_factory=dict)


class TrashFormat(BaseModel):
    """An upstream custom format record."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    trash_id: str
    name: str
    include_when_renaming: bool = Field(default=False, alias="includeCustomFormatWhenRenaming")
    specifications: list[TrashSpecification] = Field(default_factory=list)
