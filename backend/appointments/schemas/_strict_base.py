"""Strict schema baselines with forbidden extras by default."""

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Response DTO base, readable straight from ORM objects."""

    model_config = ConfigDict(extra="forbid", from_attributes=True)


class StrictRequestModel(BaseModel):
    """Request DTO base that rejects unexpected fields and trims strings."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, validate_assignment=True)
