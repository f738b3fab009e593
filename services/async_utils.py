import asyncio
from typing import Any, Callable, Iterable, List


async def run_single_arg(func: Callable[[Any], Any], items: Iterable[Any], max_concurrency: int = 5) -> List[Any]:
    """
    Run a blocking single-argument function over ``items`` in worker threads
    via asyncio.to_thread, bounded by max_concurrency. Returns results in order.
    """
    sem = asyncio.Semaphore(max_concurrency)

    async def _run_one(item: Any) -> Any:
        async with sem:
            return await asyncio.to_thread(func, item)

    tasks = [asyncio.create_task(_run_one(item)) for item in items]
    return await asyncio.gather(*tasks)
