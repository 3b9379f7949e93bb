"""Base model classes for the Exam Coach System."""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field


class BaseModel(PydanticBaseModel):
    """Package-wide pydantic base.

    Enum members stay enums, assignments are re-validated and wire aliases
    (``botMessage``) and field names (``message``) are both accepted.
    """

    model_config = ConfigDict(
        use_enum_values=False,
        validate_assignment=True,
        populate_by_name=True,
    )


class IdentifiableModel(BaseModel):
    """Carries a random ``session_id``."""

    session_id: str = Field(default_factory=lambda: str(uuid4()), description="Session identifier")


class TimestampedModel(BaseModel):
    """Tracks creation and last-change times."""

    created_at: datetime = Field(default_factory=datetime.now, description="Creation time")
    updated_at: Optional[datetime] = Field(default=None, description="Last state change")

    def touch(self) -> None:
        self.updated_at = datetime.now()
