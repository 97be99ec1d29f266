"""
Data models for the queryable entities
Using Pydantic for validation

Series and Event are read-only from this service's point of view: instances are
built fresh per request by the row mapper and never mutated afterwards.
Validation is strict so a row whose column types disagree with the entity
shape is rejected instead of coerced.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class Series(BaseModel):
    """A named series that events can belong to"""
    model_config = ConfigDict(frozen=True, strict=True)

    id: int
    name: str
    description: Optional[str] = None


class Event(BaseModel):
    """An event, optionally part of one series"""
    model_config = ConfigDict(frozen=True, strict=True, populate_by_name=True)

    id: int
    title: str
    # None both when the foreign key is null and when the relation was not requested
    part_of: Optional[Series] = Field(default=None, alias="partOf")
