# shared/concurrency.py
import asyncio
from typing import Awaitable, List, TypeVar

from domain.models.pipeline_state import Settled

T = TypeVar("T")

async def _settle(awaitable: Awaitable[T]) -> Settled[T]:
    try:
        return Settled.success(await awaitable)
    except Exception as e:
        return Settled.failure(e)

async def settle_all(awaitables: List[Awaitable[T]]) -> List[Settled[T]]:
    """Run everything concurrently and wait for all of it; results keep submission order"""
    if not awaitables:
        return []
    return list(await asyncio.gather(*(_settle(awaitable) for awaitable in awaitables)))
