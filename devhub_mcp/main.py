"""
Main entry point for DevHub MCP Server.

Configures logging, serves the MCP protocol over stdio and closes the
service HTTP clients on shutdown.
"""

import asyncio

import structlog
from mcp.server.stdio import stdio_server

from .confluence import confluence_client
from .figma import figma_client
from .gitlab import gitlab_client
from .logging import configure_logging
from .mattermost import mattermost_client
from .memory import memory_store
from .tools import server

logger = structlog.get_logger(__name__)


async def close_clients():
    for client in (gitlab_client, confluence_client, figma_client, mattermost_client):
        await client.aclose()


async def serve():
    logger.info("server_starting", name=server.name, memory_file=str(memory_store.path))
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await close_clients()
        logger.info("server_stopped")


def main():
    """Main entry point."""
    configure_logging()
    asyncio.run(serve())


if __name__ == "__main__":
    main()
