"""
Query Planner

Chooses the statement for a top-level field from the fields the caller
requested. Series has no relations, so it always has one statement. Events
have two fixed shapes:

- BASE: event columns only, never touching the series table
- JOINED: event columns plus every series column through a LEFT JOIN on the
  foreign key, chosen as soon as ``partOf`` is requested at all

There is no per-column pruning inside the join: once the relation is
requested its full row is fetched. All statements order by identifier.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from errors import UnplannableRequest

from .entities import ENTITIES, EntityConfig, RelationshipDef
from .fields import FieldTree

logger = logging.getLogger(__name__)


class PlanVariant(str, Enum):
    BASE = "base"
    JOINED = "joined"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class QueryPlan:
    """A statement, its parameters and the column contract of its rows."""
    entity: str
    variant: PlanVariant
    sql: str
    params: tuple
    columns: tuple[str, ...]
    include_relation: bool = False


class QueryPlanner:
    """Builds parameterized SQL for the series and event top-level fields."""

    def _select_parts(self, entity_config: EntityConfig, field_names: list[str], prefix: str = "") -> list[str]:
        alias = entity_config.table_alias
        return [
            f"{alias}.{entity_config.fields[name].column} AS {prefix}{name}"
            for name in field_names
        ]

    def _join_clause(self, entity_config: EntityConfig, rel: RelationshipDef) -> str:
        target = ENTITIES[rel.target_entity]
        return (
            f"LEFT JOIN {target.table} {target.table_alias} "
            f"ON {entity_config.table_alias}.{rel.local_key} = {target.table_alias}.{rel.target_key}"
        )

    def _order_clause(self, entity_config: EntityConfig) -> str:
        id_column = entity_config.fields[entity_config.identifier].column
        return f"ORDER BY {entity_config.table_alias}.{id_column} ASC"

    def _check_recognized(self, entity: str, tree: FieldTree, strict: bool) -> bool:
        """Return False when nothing requested is a known field of the entity."""
        entity_config = ENTITIES[entity]
        if any(entity_config.recognizes(name) for name in tree.names):
            return True
        message = f"No recognized fields requested on '{entity}' (got {tree.names})"
        if strict:
            raise UnplannableRequest(message, detail={"entity": entity, "fields": tree.names})
        logger.warning(f"{message}; using fallback plan")
        return False

    def _build(self, entity: str, variant: PlanVariant, field_names: list[str],
               relation: Optional[RelationshipDef] = None) -> QueryPlan:
        entity_config = ENTITIES[entity]
        select_parts = self._select_parts(entity_config, field_names)
        columns = tuple(field_names)
        join_clause = ""

        if relation is not None:
            target = ENTITIES[relation.target_entity]
            target_fields = list(target.fields)
            select_parts += self._select_parts(target, target_fields, prefix=relation.column_prefix)
            columns += target.columns(relation.column_prefix)
            join_clause = self._join_clause(entity_config, relation)

        sql = (
            f"SELECT {', '.join(select_parts)} "
            f"FROM {entity_config.table} {entity_config.table_alias} "
            f"{join_clause} {self._order_clause(entity_config)}"
        )
        plan = QueryPlan(
            entity=entity,
            variant=variant,
            sql=" ".join(sql.split()),  # Normalize whitespace
            params=(),
            columns=columns,
            include_relation=relation is not None,
        )
        logger.debug(f"Planned {entity} ({variant.value}): {plan.sql}")
        return plan

    def plan_series_query(self, tree: FieldTree, strict: bool = False) -> QueryPlan:
        """Series always selects every column; the tree only decides fallback logging."""
        variant = PlanVariant.BASE
        if not self._check_recognized("series", tree, strict):
            variant = PlanVariant.FALLBACK
        return self._build("series", variant, list(ENTITIES["series"].fields))

    def plan_event_query(self, tree: FieldTree, strict: bool = False) -> QueryPlan:
        """
        Pick the event statement.

        Args:
            tree: fields requested on each event
            strict: raise UnplannableRequest instead of falling back when no
                requested field is recognized

        Returns:
            JOINED plan when ``partOf`` is requested, BASE plan otherwise,
            FALLBACK plan (identifier and required columns) for an
            unrecognized tree.
        """
        events = ENTITIES["events"]

        if not self._check_recognized("events", tree, strict):
            return self._build("events", PlanVariant.FALLBACK, events.required_fields)

        for rel_name, rel in events.relationships.items():
            if tree.contains(rel_name):
                return self._build("events", PlanVariant.JOINED, list(events.fields), relation=rel)

        return self._build("events", PlanVariant.BASE, list(events.fields))
