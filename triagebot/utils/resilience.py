"""
Resilience utilities for collaborator calls.

Only idempotent reads are wrapped; mutations (comments, labels, check runs)
are issued exactly once.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar, ParamSpec
from functools import wraps

from triagebot.errors import TransientError

logger = logging.getLogger(__name__)

P = ParamSpec('P')
T = TypeVar('T')


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: tuple = (TransientError,)
):
    """
    Decorator for retrying coroutine functions with exponential backoff.
    
    Args:
        max_retries: Maximum number of attempts (default: 3)
        base_delay: Initial delay in seconds between retries (default: 1.0)
        max_delay: Maximum delay in seconds between retries (default: 60.0)
        exponential_base: Base for exponential backoff calculation (default: 2.0)
        exceptions: Exception types that trigger a retry (default: TransientError)
    
    Example:
        @retry_with_backoff(max_retries=3, base_delay=1.0)
        async def get_commit(self, owner, repo, sha):
            ...
    """
    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            for attempt in range(max_retries):
                try:
                    result = await func(*args, **kwargs)
                    
                    if attempt > 0:
                        logger.info(
                            f"{func.__name__} succeeded on attempt {attempt + 1}/{max_retries}"
                        )
                    
                    return result
                
                except exceptions as e:
                    if attempt == max_retries - 1:
                        logger.error(
                            f"{func.__name__} failed after {max_retries} attempts: {e}"
                        )
                        raise
                    
                    delay = min(base_delay * (exponential_base ** attempt), max_delay)
                    
                    logger.warning(
                        f"{func.__name__} failed on attempt {attempt + 1}/{max_retries}: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )
                    
                    await asyncio.sleep(delay)
            
            raise RuntimeError(f"{func.__name__} called with max_retries={max_retries}")
        
        return wrapper
    
    return decorator
