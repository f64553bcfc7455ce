import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from domain.errors import PersistenceConflict, PersistenceFailure
from domain.ports.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

R = TypeVar("R")


async def run_in_unit_of_work(
    uow_factory: Callable[[], UnitOfWork],
    work: Callable[[UnitOfWork], Awaitable[R]],
    max_attempts: int = 3,
) -> R:
    """
    Run `work` inside a fresh unit of work, retrying the whole transaction on
    PersistenceConflict. Exhausted retries surface as PersistenceFailure.
    """
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=0.02, min=0.01, max=0.5),
            retry=retry_if_exception_type(PersistenceConflict),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info("Retrying unit of work (attempt %s)", attempt.retry_state.attempt_number)
                async with uow_factory() as uow:
                    result = await work(uow)
                return result
    except PersistenceConflict as e:
        logger.error("Unit of work kept conflicting after %s attempts", max_attempts)
        raise PersistenceFailure("Too many concurrent updates, try again later", {"attempts": max_attempts}) from e
