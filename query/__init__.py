"""
Field-aware query resolution for Series and Events

Inspects the fields a caller requested, picks the smallest statement that
satisfies them, runs exactly one query per top-level field and maps the rows
into typed models.
"""

from .entities import ENTITIES
from .fields import FieldTree, FieldNode
from .mapper import map_series, map_event, check_columns
from .planner import QueryPlanner, QueryPlan, PlanVariant
from .resolvers import QueryResolver, API_VERSION

__all__ = [
    'ENTITIES',
    'FieldTree',
    'FieldNode',
    'map_series',
    'map_event',
    'check_columns',
    'QueryPlanner',
    'QueryPlan',
    'PlanVariant',
    'QueryResolver',
    'API_VERSION',
]
