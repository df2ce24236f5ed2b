"""
Base schemas shared by booking DTOs.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


class StrictRequestModel(BaseModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, use_enum_values=True)


class ResponseModel(BaseModel):
    """Response DTO base built straight from ORM rows."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True, populate_by_name=True)


def _require_aware(value: datetime) -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError("datetime must include a timezone offset")
    return value


AwareDatetime = Annotated[datetime, AfterValidator(_require_aware)]

# Non-negative amount with cent precision; serialized as a string so no
# float rounding reaches clients
Money = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)]

TaxRate = Annotated[Decimal, Field(ge=0, le=1, max_digits=6, decimal_places=4)]
