"""
Resolver Dispatch

One entry point per top-level query field. Each resolution plans its
statement from the requested fields, leases one connection, streams the rows
through the mapper and returns the whole list, or fails as a whole.

Flow:
1. Plan (base or joined statement)
2. Lease a connection
3. Execute and map each row
4. Release the lease (on every exit path)
"""

import logging
import time
from typing import Any, Callable, Optional

from database import ConnectionPool, DEFAULT_TIMEOUT
from errors import ConnectionFailure, PoolExhausted, QueryError, QueryFailed, UpstreamUnavailable
from models import Event, Series

from .fields import FieldTree
from .mapper import check_columns, map_event, map_series
from .planner import QueryPlan, QueryPlanner

logger = logging.getLogger(__name__)

API_VERSION = "1.0"


class QueryResolver:
    """Resolves the apiVersion, series and event fields against a pool."""

    def __init__(self, pool: ConnectionPool, acquire_timeout: Any = DEFAULT_TIMEOUT,
                 planner: Optional[QueryPlanner] = None):
        self.pool = pool
        self.acquire_timeout = acquire_timeout
        self.planner = planner or QueryPlanner()

    def api_version(self) -> str:
        return API_VERSION

    async def _run(self, plan: QueryPlan, map_row: Callable[[Any], Any]) -> list:
        try:
            async with self.pool.lease(self.acquire_timeout) as lease:
                results = []
                async with self.pool.execute(lease, plan.sql, plan.params) as rows:
                    async for row in rows:
                        if not results:
                            check_columns(row, plan.columns)
                        results.append(map_row(row))
                return results
        except (PoolExhausted, ConnectionFailure) as e:
            raise UpstreamUnavailable(
                f"Database unavailable: {e.reason}",
                detail={"cause": e.code},
            ) from e
        except QueryError as e:
            raise QueryFailed(e.reason, detail={"cause": e.code, **e.detail}) from e

    async def resolve_series_list(self, tree: FieldTree) -> list[Series]:
        """
        Resolve the `series` field.

        Raises:
            UpstreamUnavailable: no connection could be leased
            QueryFailed: the statement failed
            MalformedRow: a row does not match the Series shape
        """
        before = time.perf_counter()
        plan = self.planner.plan_series_query(tree)
        out = await self._run(plan, map_series)
        logger.info(f"Resolved {len(out)} series in {(time.perf_counter() - before) * 1000:.2f}ms")
        return out

    async def resolve_event_list(self, tree: FieldTree) -> list[Event]:
        """
        Resolve the `event` field. Requesting `partOf` switches to the joined
        statement; each row then yields one Event with at most one Series.

        Raises:
            UpstreamUnavailable: no connection could be leased
            QueryFailed: the statement failed
            MalformedRow: a row does not match the Event shape
        """
        plan = self.planner.plan_event_query(tree)
        include_relation = plan.include_relation
        return await self._run(plan, lambda row: map_event(row, include_relation))
