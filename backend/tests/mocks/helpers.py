import asyncio
from typing import Callable

LEVEL = "100 ICT"
OTHER_LEVEL = "200 ICT"


async def wait_for(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Poll until predicate() is true"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)
