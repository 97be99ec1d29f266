"""
Row Mapper

Converts database rows into Series/Event models. Rows are read by column
name following the aliases declared in the entity registry; a joined event row
carries the related series columns under the relationship's prefix, so the
nested Series is built from the same row without a second query.

Pure functions: no I/O, no shared state.
"""

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from errors import MalformedRow
from models import Event, Series

from .entities import ENTITIES

logger = logging.getLogger(__name__)

SERIES = ENTITIES["series"]
EVENTS = ENTITIES["events"]
PART_OF = EVENTS.relationships["partOf"]


def _read(row: Mapping[str, Any], column: str) -> Any:
    try:
        return row[column]
    except (KeyError, IndexError) as e:
        raise MalformedRow(
            f"Row has no column '{column}'",
            detail={"column": column},
        ) from e


def _build(model, entity: str, **values):
    try:
        return model(**values)
    except ValidationError as e:
        first = e.errors()[0]
        field_name = ".".join(str(p) for p in first["loc"])
        raise MalformedRow(
            f"Cannot build {entity} from row: field '{field_name}' {first['msg'].lower()}",
            detail={"entity": entity, "field": field_name},
        ) from e


def map_series(row: Mapping[str, Any], prefix: str = "") -> Series:
    """
    Build a Series from the columns ``{prefix}id``, ``{prefix}name`` and
    ``{prefix}description``.

    Raises:
        MalformedRow: a column is missing or holds a value of the wrong type
    """
    return _build(
        Series,
        "Series",
        id=_read(row, f"{prefix}id"),
        name=_read(row, f"{prefix}name"),
        description=_read(row, f"{prefix}description"),
    )


def map_event(row: Mapping[str, Any], include_relation: bool) -> Event:
    """
    Build an Event from ``id`` and ``title``.

    With include_relation the row must also carry the joined series columns;
    a null related id means the event belongs to no series. Without it the
    relation is never read and stays None.

    Raises:
        MalformedRow: a column is missing or holds a value of the wrong type
    """
    part_of = None
    if include_relation:
        prefix = PART_OF.column_prefix
        if _read(row, f"{prefix}{PART_OF.target_key}") is not None:
            part_of = map_series(row, prefix=prefix)

    return _build(
        Event,
        "Event",
        id=_read(row, "id"),
        title=_read(row, "title"),
        part_of=part_of,
    )


def check_columns(row: Mapping[str, Any], expected: tuple[str, ...]) -> None:
    """
    Verify a row carries exactly the columns a plan declared.

    Raises:
        MalformedRow: the row's columns disagree with the plan's contract
    """
    actual = tuple(row.keys())
    if actual != expected:
        logger.error(f"Row columns {actual} do not match planned columns {expected}")
        raise MalformedRow(
            "Row columns do not match the planned statement",
            detail={"expected": list(expected), "actual": list(actual)},
        )
