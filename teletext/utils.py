import functools
import time

from loguru import logger


def logged_job(func):
    """
    Decorator for periodic async jobs.

    Features:
    - Logs job name on entry
    - Logs duration on success
    - Logs the exception and re-raises it
    - Preserves function metadata and return values
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        func_name = func.__name__
        logger.info(f"Entering {func_name}")
        started = time.monotonic()

        try:
            result = await func(*args, **kwargs)
            logger.info(f"{func_name} finished in {time.monotonic() - started:.2f}s")
            return result
        except Exception as e:
            logger.error(f"{func_name} failed: {type(e).__name__}: {e}")
            raise

    return wrapper
