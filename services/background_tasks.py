"""
Fire-and-forget work for request handlers.

``run_background`` hands a callable to a shared thread pool and returns the
Future. Nobody waits on it; a done-callback drains any exception into the
log so background failures never reach an HTTP caller.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

import config
from services.spapi_errors import describe_error

logger = logging.getLogger(__name__)

_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=config.BACKGROUND_MAX_WORKERS,
                thread_name_prefix="InventoryBackground",
            )
        return _executor


def _drain(label: str, future: Future) -> None:
    if future.cancelled():
        logger.info("[Background] Task cancelled (%s)", label)
        return
    exc = future.exception()
    if exc is not None:
        logger.error("[Background] Task failed (%s): %s", label, describe_error(exc))
        return
    logger.debug("[Background] Task finished (%s) result=%s", label, future.result())


def run_background(label: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
    future = _get_executor().submit(func, *args, **kwargs)
    future.add_done_callback(lambda f: _drain(label, f))
    return future


def shutdown_background_tasks(wait: bool = False) -> None:
    """Stop accepting work; queued tasks are dropped unless ``wait``."""
    global _executor
    with _executor_lock:
        executor = _executor
        _executor = None
    if executor is not None:
        executor.shutdown(wait=wait, cancel_futures=not wait)
