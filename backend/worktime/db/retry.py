import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError

from worktime.settings import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS = (OperationalError, InterfaceError)


async def run_read(
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    session_factory=None,
    attempts: int | None = None,
    base_delay: float | None = None,
    **kwargs: Any,
) -> T:
    """
    Run an idempotent read in a fresh session, retrying connection-level
    failures with exponential backoff (base_delay * 2**attempt).
    Never use for writes.
    """
    settings = get_settings()
    attempts = attempts or settings.READ_RETRY_ATTEMPTS
    base_delay = settings.READ_RETRY_BASE_DELAY if base_delay is None else base_delay
    if session_factory is None:
        from worktime.db.session import AsyncSessionLocal
        session_factory = AsyncSessionLocal

    for attempt in range(attempts):
        try:
            async with session_factory() as session:
                return await fn(session, *args, **kwargs)
        except RETRYABLE_ERRORS as e:
            if attempt == attempts - 1:
                logger.error("Read %s failed after %d attempts: %s", fn.__name__, attempts, e)
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Read %s failed (attempt %d/%d): %s. Retrying in %.2fs",
                fn.__name__, attempt + 1, attempts, e, delay,
            )
            await asyncio.sleep(delay)
    raise RuntimeError("unreachable")
