import asyncio
import logging

logger = logging.getLogger(__name__)


async def retry_async(func, *args, max_attempts=2, delay=1.0, backoff=1.0,
                      exceptions=(Exception,), sleep=asyncio.sleep,
                      description="request", **kwargs):
    """
    Await func(*args, **kwargs) up to max_attempts times.

    Waits `delay` seconds after a failed attempt, multiplied by `backoff`
    after each further failure (backoff=1.0 keeps the delay fixed). Only
    exceptions listed in `exceptions` are retried; the last one is re-raised
    once every attempt has failed.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    wait = delay
    for attempt in range(1, max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except exceptions as e:
            logger.warning(f"{description} attempt {attempt}/{max_attempts} failed: {e}")
            if attempt == max_attempts:
                logger.error(f"All {max_attempts} attempts failed for {description}")
                raise
            await sleep(wait)
            wait *= backoff
