import time
import logging
from functools import wraps

logger = logging.getLogger(__name__)

def time_api_call(func):
    """A decorator to time async API calls and log the duration."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            duration = time.perf_counter() - start_time
            logger.debug(f"API call '{func.__name__}' took {duration:.4f} seconds.")
    return wrapper
