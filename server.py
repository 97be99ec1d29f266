"""
Series/Event GraphQL Server
Entry point: parses the command line and starts the HTTP transport.
"""

import logging
import sys

from config import ServerConfig

__version__ = "1.0.0"

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def cli_entry():
    """Entry point for console script"""
    import argparse

    defaults = ServerConfig.from_environment()

    parser = argparse.ArgumentParser(description="Series/Event GraphQL Server")
    parser.add_argument('--version', '-v', action='store_true', help='Show version')
    parser.add_argument('--port', type=int, default=defaults.port, help=f'Port to listen on (default: {defaults.port})')
    parser.add_argument('--host', type=str, default=defaults.host, help=f'Host to bind to (default: {defaults.host})')

    args = parser.parse_args()

    if args.version:
        print(f"series-graphql-server version {__version__}")
        sys.exit(0)

    from transport.http import run_http_server
    try:
        run_http_server(host=args.host, port=args.port)
    except Exception as e:
        logger.error(f"Failed to start server: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    cli_entry()
