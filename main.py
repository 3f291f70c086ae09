"""
Teletext data core entry point.
Builds the application context, resolves every page once and keeps the
background refresh running.
"""

import asyncio

from loguru import logger

from teletext.context import build_context
from teletext.datasource.models import DataEnvelope
from teletext.settings import global_settings


def log_envelope(category: str, envelope: DataEnvelope) -> None:
    notice = f" [{envelope.notice}]" if envelope.notice else ""
    logger.info(
        f"{envelope.section}/{category}: {envelope.provenance.value} "
        f"from {envelope.source}{notice}"
    )


async def main() -> None:
    """Main function."""
    logger.info("Starting teletext data core...")
    context = None

    try:
        logger.info("Building application context...")
        context = await build_context(global_settings)

        logger.info("Performing initial refresh...")
        for envelope in (await context.scheduler.refresh_now()).values():
            log_envelope(envelope.category, envelope)

        context.scheduler.subscribe(log_envelope)

        logger.info("Data core is running. Press Ctrl+C to stop.")
        while True:
            await asyncio.sleep(60)

    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Received interrupt signal, shutting down...")
    except Exception as e:
        logger.error(f"Error in main loop: {e}")
    finally:
        if context is not None:
            await context.close()
        logger.info("Data core stopped")


if __name__ == "__main__":
    asyncio.run(main())
