"""
GraphQL schema

Strawberry types for Series and Event plus the root Query. Each list field
turns the caller's selection into a FieldTree and hands it to the
QueryResolver found in the request context, so the statement that runs is
chosen from what was actually requested.

Failures raised by the resolver carry `extensions` ({"code", "retryable"})
which end up on the error entry of the response.
"""

from typing import Optional

import strawberry
from strawberry.types import Info

from models import Event, Series
from query import API_VERSION, FieldTree, QueryResolver


@strawberry.type(name="Series")
class SeriesType:
    id: int
    name: str
    description: Optional[str]

    @classmethod
    def from_model(cls, series: Series) -> "SeriesType":
        return cls(id=series.id, name=series.name, description=series.description)


@strawberry.type(name="Event")
class EventType:
    id: int
    title: str
    part_of: Optional[SeriesType]

    @classmethod
    def from_model(cls, event: Event) -> "EventType":
        return cls(
            id=event.id,
            title=event.title,
            part_of=SeriesType.from_model(event.part_of) if event.part_of else None,
        )


def requested_fields(info: Info) -> FieldTree:
    """Fields requested below the field being resolved."""
    return FieldTree.from_selection(
        selection
        for field in info.selected_fields
        for selection in field.selections
    )


def _resolver(info: Info) -> QueryResolver:
    return info.context["resolver"]


@strawberry.type
class Query:

    @strawberry.field(name="apiVersion")
    def api_version(self) -> str:
        return API_VERSION

    @strawberry.field
    async def series(self, info: Info) -> list[SeriesType]:
        rows = await _resolver(info).resolve_series_list(requested_fields(info))
        return [SeriesType.from_model(s) for s in rows]

    @strawberry.field
    async def event(self, info: Info) -> list[EventType]:
        rows = await _resolver(info).resolve_event_list(requested_fields(info))
        return [EventType.from_model(e) for e in rows]


schema = strawberry.Schema(query=Query)
