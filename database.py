"""
Database connection pool
Async PostgreSQL operations using asyncpg

Wraps an asyncpg pool. A caller borrows one connection through a Lease, runs
one statement over it and gives it back. A connection is only discarded when
the session itself is broken, never because a statement failed; asyncpg
opens a replacement on a later acquire.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

import asyncpg

from config import DatabaseConfig
from errors import ConnectionFailure, PoolExhausted, QueryError
from utils.error_messages import enhance_error_message

logger = logging.getLogger(__name__)

# Sentinel: use the configured acquire timeout
DEFAULT_TIMEOUT = object()

# Server-side conditions after which the session is gone
_CONNECTION_LEVEL_POSTGRES_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.AdminShutdownError,
    asyncpg.exceptions.CrashShutdownError,
    asyncpg.exceptions.CannotConnectNowError,
)


def is_connection_error(error: BaseException) -> bool:
    """
    Classify a failure as transport/connection level (True) or statement
    level (False).

    A command timeout is statement level: asyncpg cancels the statement and
    the session stays usable.
    """
    if isinstance(error, asyncio.TimeoutError):
        return False
    return isinstance(error, (
        ConnectionError,
        OSError,
        asyncpg.exceptions.InterfaceError,
        *_CONNECTION_LEVEL_POSTGRES_ERRORS,
    ))


class Lease:
    """Exclusive right to use one pooled connection until released."""

    def __init__(self, pool: "ConnectionPool", connection):
        self._pool = pool
        self._connection = connection
        self.released = False
        # Set by execute(): the session must be replaced / probed before reuse
        self.broken = False
        self.errored = False

    @property
    def connection(self):
        if self.released:
            raise RuntimeError("Lease already released")
        return self._connection

    def __repr__(self) -> str:
        state = "released" if self.released else "active"
        return f"<Lease {id(self._connection):#x} {state}>"


class RowStream:
    """
    Lazy, forward-only sequence of rows from one statement.

    Rows are pulled from a server-side cursor as the caller iterates; use it
    as an async context manager (or call aclose) to end the statement early.
    """

    def __init__(self, rows: AsyncIterator[Any]):
        self._rows = rows

    def __aiter__(self):
        return self

    async def __anext__(self):
        return await self._rows.__anext__()

    async def aclose(self):
        await self._rows.aclose()

    async def __aenter__(self) -> "RowStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


async def create_asyncpg_pool(config: DatabaseConfig) -> asyncpg.Pool:
    return await asyncpg.create_pool(
        config.asyncpg_dsn,
        min_size=config.min_pool_size,
        max_size=config.max_pool_size,
        command_timeout=config.command_timeout,
        ssl=config.ssl_setting,
    )


class ConnectionPool:
    """
    Bounded pool of PostgreSQL connections.

    Invariant: leased + idle == max_size at every instant, where leased
    counts the Leases handed out and not yet released. Every Lease is
    returned to the asyncpg pool exactly once, even when the releasing task
    is cancelled.
    """

    def __init__(
        self,
        config: DatabaseConfig,
        create_pool: Optional[Callable[[DatabaseConfig], Awaitable[Any]]] = None,
    ):
        self.config = config
        self._create_pool = create_pool or create_asyncpg_pool
        self.pool: Optional[asyncpg.Pool] = None
        self._leases: set[Lease] = set()
        self._open_lock = asyncio.Lock()
        self._closed = False

    async def open(self):
        """Initialize connection pool, opening min_pool_size connections up front"""
        async with self._open_lock:
            if self.pool is not None:
                logger.warning("Connection pool already initialized")
                return

            try:
                self.pool = await self._create_pool(self.config)
            except Exception as e:
                reason = enhance_error_message(e)
                logger.error(f"❌ Failed to connect to database: {reason}")
                raise ConnectionFailure(reason) from e

        logger.info(
            f"✅ Connected to PostgreSQL at {self.config.host}:{self.config.port} "
            f"(pool {self.config.min_pool_size}-{self.config.max_pool_size})"
        )

    async def close(self):
        """Close connection pool; waits for outstanding leases to be released"""
        self._closed = True
        if self.pool is not None:
            await self.pool.close()
        logger.info("Database connection pool closed")

    async def acquire(self, timeout: Any = DEFAULT_TIMEOUT) -> Lease:
        """
        Lease a connection, waiting while every connection is in use.

        Args:
            timeout: seconds to wait for a free connection; None waits
                forever. Defaults to the configured acquire timeout.

        Raises:
            PoolExhausted: no connection became free within the timeout
            ConnectionFailure: a session could not be opened
        """
        if self._closed:
            raise ConnectionFailure("Connection pool is closed")
        if self.pool is None:
            await self.open()
        if timeout is DEFAULT_TIMEOUT:
            timeout = self.config.acquire_timeout

        try:
            connection = await self.pool.acquire(timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"No database connection free within {timeout}s (pool size {self.config.max_pool_size})")
            raise PoolExhausted(
                f"No database connection available within {timeout}s",
                detail={"max_size": self.config.max_pool_size},
            ) from e
        except Exception as e:
            reason = enhance_error_message(e)
            logger.error(f"❌ Failed to open database connection: {reason}")
            raise ConnectionFailure(reason) from e

        lease = Lease(self, connection)
        self._leases.add(lease)
        logger.debug(f"Leased {lease!r} ({len(self._leases)}/{self.config.max_pool_size} in use)")
        return lease

    async def release(self, lease: Lease):
        """
        Return a leased connection to the pool. Must be called exactly once
        per acquire(); later calls are ignored.
        """
        if lease.released:
            logger.warning(f"Ignoring second release of {lease!r}")
            return
        lease.released = True
        connection = lease._connection

        try:
            if lease.errored and not lease.broken and self.config.health_check_on_error:
                # Stays broken if the probe is interrupted
                lease.broken = True
                lease.broken = not await self._probe(connection)
        finally:
            self._leases.discard(lease)
            if lease.broken and not connection.is_closed():
                logger.warning(f"Discarding broken connection {lease!r}")
                connection.terminate()
            await self.pool.release(connection)
            logger.debug(f"Released {lease!r} ({len(self._leases)}/{self.config.max_pool_size} in use)")

    async def _probe(self, connection) -> bool:
        try:
            return await connection.fetchval("SELECT 1", timeout=5) == 1
        except Exception as e:
            logger.warning(f"Health check after statement error failed: {e}")
            return False

    @asynccontextmanager
    async def lease(self, timeout: Any = DEFAULT_TIMEOUT):
        """
        Acquire a connection and release it on every exit path.

        Usage:
            async with pool.lease() as lease:
                async with pool.execute(lease, "SELECT ...") as rows:
                    async for row in rows:
                        ...
        """
        lease = await self.acquire(timeout)
        try:
            yield lease
        finally:
            await self.release(lease)

    def execute(self, lease: Lease, query: str, params: tuple = ()) -> RowStream:
        """
        Run a statement over a leased connection.

        Args:
            lease: active lease from acquire()/lease()
            query: SQL text with $1, $2 ... placeholders
            params: positional parameter values

        Returns:
            RowStream over the result rows. Database failures surface as
            QueryError while iterating.
        """
        if lease.released:
            raise RuntimeError("Cannot execute on a released lease")
        return RowStream(self._stream(lease, query, params))

    async def _stream(self, lease: Lease, query: str, params: tuple):
        connection = lease.connection
        try:
            async with connection.transaction(readonly=True):
                async for record in connection.cursor(query, *params):
                    yield record
        except asyncio.CancelledError:
            # Interrupted mid-statement: session state is unknown
            lease.broken = True
            raise
        except Exception as e:
            lost = is_connection_error(e)
            if lost:
                lease.broken = True
            else:
                lease.errored = True
            reason = enhance_error_message(e)
            logger.error(f"Error during database operation: {reason}", exc_info=True)
            detail = {"sqlstate": e.sqlstate} if getattr(e, "sqlstate", None) else None
            raise QueryError(reason, connection_lost=lost, detail=detail) from e

    async def check_connection(self) -> bool:
        """
        Check if database connection is healthy

        Returns:
            True if a connection could be leased and answered SELECT 1
        """
        try:
            async with self.lease() as lease:
                return await lease.connection.fetchval("SELECT 1") == 1
        except Exception as e:
            logger.error(f"Connection check failed: {e}")
            return False

    async def get_pool_stats(self) -> Dict[str, Any]:
        """
        Get connection pool statistics for monitoring.

        Returns:
            Dictionary with pool stats (size, leased, free connections, etc.)
        """
        leased = len(self._leases)
        if self.pool is None:
            status = 'closed' if self._closed else 'disconnected'
            size = freesize = 0
        else:
            status = 'closed' if self._closed else 'connected'
            size = self.pool.get_size()
            freesize = self.pool.get_idle_size()

        return {
            'status': status,
            'size': size,
            'freesize': freesize,
            'leased': leased,
            'idle': self.config.max_pool_size - leased,
            'min_size': self.config.min_pool_size,
            'max_size': self.config.max_pool_size,
        }


# Singleton instance
_pool_instance: Optional[ConnectionPool] = None


def get_database(config: Optional[DatabaseConfig] = None) -> ConnectionPool:
    """
    Get or create the connection pool instance

    Args:
        config: Database configuration (uses environment if not provided)
    """
    global _pool_instance

    if _pool_instance is None:
        if config is None:
            config = DatabaseConfig.from_environment()
        _pool_instance = ConnectionPool(config)

    return _pool_instance
