"""
Shared test doubles for source poller tests.
"""

import asyncio
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FakeResource:
    """Minimal resource exposing only a status."""

    status: str


class ScriptedFetcher:
    """
    Fetcher returning a scripted sequence of results.

    Each entry is either a resource to return or an exception to raise. The
    last entry repeats once the script is exhausted. When ``gated`` is set,
    every fetch waits for ``release()`` before returning.
    """

    def __init__(self, results: list[Any], gated: bool = False):
        self.results = list(results)
        self.calls: list[tuple[str, str]] = []
        self.gated = gated
        self._gate = asyncio.Event()
        self.started = asyncio.Event()

    def release(self) -> None:
        self._gate.set()

    async def fetch_source(self, source_id: str, client_secret: str) -> Any:
        self.calls.append((source_id, client_secret))
        index = min(len(self.calls), len(self.results)) - 1
        result = self.results[index]
        self.started.set()
        if self.gated:
            await self._gate.wait()
            self._gate.clear()
        if isinstance(result, Exception):
            raise result
        return result


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate()`` holds."""

    async def _poll():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout=timeout)
