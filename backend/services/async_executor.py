"""
Worker threads for blocking provider clients.

Gmail delivery through smtplib and the Cloudinary SDK are synchronous;
their calls are pushed onto a small pool so a slow handshake with the
provider never stalls request handling. The pool is created on first use
and torn down by the app lifespan.
"""
import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

BLOCKING_WORKERS = 4

R = TypeVar("R")

_pool: ThreadPoolExecutor | None = None


def _get_pool() -> ThreadPoolExecutor:
    global _pool
    if _pool is None:
        _pool = ThreadPoolExecutor(max_workers=BLOCKING_WORKERS, thread_name_prefix="bizchat-io")
        logger.info(f"Blocking worker pool started ({BLOCKING_WORKERS} threads)")
    return _pool


async def run_blocking(func: Callable[..., R], *args: Any, **kwargs: Any) -> R:
    """Await ``func(*args, **kwargs)`` executed on the worker pool."""
    call = functools.partial(func, *args, **kwargs)
    return await asyncio.get_running_loop().run_in_executor(_get_pool(), call)


def shutdown_executor() -> None:
    global _pool
    if _pool is None:
        return
    _pool.shutdown(wait=True)
    _pool = None
    logger.info("Blocking worker pool stopped")
