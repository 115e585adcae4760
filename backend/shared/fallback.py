"""
Ordered fallback chains.

A chain is a list of named async strategies tried in sequence. The first
one that returns wins; when all of them fail, the errors of every attempt
are aggregated into a single AllStrategiesFailedError.

Example:
    reply = await run_with_fallback(
        [
            Strategy("anthropic", lambda: primary.ainvoke(messages)),
            Strategy("openai", lambda: secondary.ainvoke(messages)),
        ],
        service="llm",
    )
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

from .exceptions import AllStrategiesFailedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Strategy(Generic[T]):
    """A named attempt in a fallback chain."""

    name: str
    run: Callable[[], Awaitable[T]]


async def run_with_fallback(
    strategies: Sequence[Strategy[T]],
    service: str,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    give_up_on: tuple[type[BaseException], ...] = (),
) -> T:
    """
    Run strategies in order until one succeeds.

    Args:
        strategies: Strategies to try, highest preference first
        service: Name of the collaborator, used in logs and the final error
        retry_on: Exception types that move the chain to the next strategy
        give_up_on: Exception types that stop the chain and propagate as-is,
            even when they are also covered by retry_on

    Returns:
        The result of the first successful strategy

    Raises:
        AllStrategiesFailedError: If every strategy failed
    """
    errors: list[tuple[str, BaseException]] = []

    for strategy in strategies:
        try:
            return await strategy.run()
        except give_up_on:
            raise
        except retry_on as e:
            logger.warning(f"{service} strategy '{strategy.name}' failed: {e}")
            errors.append((strategy.name, e))

    raise AllStrategiesFailedError(service, errors)

