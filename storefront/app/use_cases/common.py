"""Helpers shared by use cases: domain error conversion and retry on lost races"""

import logging
from typing import Awaitable, Callable, TypeVar
from storefront.app.services.unit_of_work import UnitOfWork
from storefront.domain.errors import ConcurrencyConflictError, StorefrontError
from storefront.libs.result import Error

logger = logging.getLogger(__name__)

T = TypeVar("T")


def to_error(exc: StorefrontError) -> Error:
    return Error(code=exc.code, message=exc.message, reason=exc.reason)


async def with_concurrency_retry(
    uow: UnitOfWork,
    attempts: int,
    operation: Callable[[], Awaitable[T]],
) -> T:
    """
    Run `operation` and retry it from scratch after a lost race

    The unit of work is rolled back before every retry, so `operation` must
    re-read everything it needs. After the last attempt the
    ConcurrencyConflictError propagates.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except ConcurrencyConflictError as e:
            await uow.rollback()
            if attempt == attempts:
                logger.error(f"Giving up after {attempts} attempts: {e.message}")
                raise
            logger.info(f"Concurrency conflict (attempt {attempt}/{attempts}), retrying: {e.message}")
