import asyncio
import functools

from errors import UpstreamTimeout


async def run_blocking(service: str, timeout: float, func, *args, **kwargs):
    """
    Runs a blocking collaborator call in the default executor.

    The wait is bounded by `timeout`; on expiry UpstreamTimeout is raised and
    the worker thread is left to finish on its own.
    """
    loop = asyncio.get_running_loop()
    call = functools.partial(func, *args, **kwargs)
    try:
        return await asyncio.wait_for(loop.run_in_executor(None, call), timeout)
    except asyncio.TimeoutError as e:
        raise UpstreamTimeout(service, timeout) from e
