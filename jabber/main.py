"""Jabber server entry point."""

import asyncio
import logging

from jabber.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
logger = logging.getLogger(__name__)


async def _serve() -> None:
    from jabber.server import JabberServer

    server = JabberServer()
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main() -> None:
    """Run the HTTP API until interrupted."""
    logger.info(
        "Starting Jabber with chat provider %s (context window %d, memory cap %d)...",
        settings.chat_provider,
        settings.context_window,
        settings.conversation_max_messages,
    )
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
