"""
HTTP transport for the GraphQL endpoint.

Routes:
- GET /: GraphiQL explorer (redirects to /graphql, which serves it to browsers)
- GET|POST /graphql: query submission
- GET /healthz: database health and pool statistics
- anything else: 404
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR
from strawberry.fastapi import GraphQLRouter
import uvicorn

from database import ConnectionPool, get_database
from query import QueryResolver
from schema import schema

logger = logging.getLogger(__name__)


def create_app(pool: ConnectionPool) -> FastAPI:
    """
    Build the FastAPI app around a connection pool.

    The pool is opened on startup and closed on shutdown; every request
    shares it through one QueryResolver.
    """
    resolver = QueryResolver(pool)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await pool.open()
        logger.info(f"Connected to database: {pool.config.database} at {pool.config.host}")
        try:
            yield
        finally:
            await pool.close()

    async def get_context():
        return {"resolver": resolver}

    app = FastAPI(title="Series/Event GraphQL", lifespan=lifespan)
    app.include_router(
        GraphQLRouter(schema, context_getter=get_context, graphql_ide="graphiql"),
        prefix="/graphql",
    )

    @app.get("/")
    async def explorer(request: Request):
        """Interactive query explorer"""
        return RedirectResponse(url="/graphql")

    @app.get("/healthz")
    async def health_check():
        """Health check endpoint"""
        stats = await pool.get_pool_stats()
        if await pool.check_connection():
            return JSONResponse(content={"status": "healthy", "database": "connected", "pool": stats})

        content = {"status": "unhealthy", "database": "unreachable", "pool": stats}
        return JSONResponse(status_code=HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    return app


def run_http_server(host: str = "127.0.0.1", port: int = 3000):
    """
    Run the GraphQL server.

    Args:
        host: Host to bind to
        port: Port to listen on
    """
    app = create_app(get_database())
    logger.info(f"Listening on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level="info")
