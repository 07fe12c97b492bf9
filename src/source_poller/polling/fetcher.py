"""
Fetcher capability consumed by the source poller.

A fetcher performs one remote lookup of a source by id and client secret.
Native fetchers are coroutines; ``CallbackFetcher`` adapts callback-style
clients whose result may be delivered from any thread.
"""

import asyncio
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

import structlog

from ..exceptions import FetchError

logger = structlog.get_logger(__name__)

FetchCallback = Callable[[Any | None, Exception | None], None]
CallbackFetchFn = Callable[[str, str, FetchCallback], None]


@runtime_checkable
class SourceFetcher(Protocol):
    """Performs a single asynchronous source lookup."""

    async def fetch_source(self, source_id: str, client_secret: str) -> Any:
        """
        Retrieve the current state of a source.

        Args:
            source_id: Source identifier
            client_secret: Client secret scoping the lookup

        Returns:
            The source, exposing a ``status`` attribute

        Raises:
            Exception: Any failure; the poller reports it as a ``FetchError``
        """
        ...


class CallbackFetcher:
    """
    Adapter for callback-style lookups.

    ``fetch_fn(source_id, client_secret, callback)`` must invoke
    ``callback(resource, error)`` exactly once, from any thread. The result
    is handed back to the event loop that issued the fetch.
    """

    def __init__(self, fetch_fn: CallbackFetchFn):
        self.fetch_fn = fetch_fn

    async def fetch_source(self, source_id: str, client_secret: str) -> Any:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        def deliver(resource: Any | None, error: Exception | None) -> None:
            if future.done():
                logger.warning(
                    "Fetch callback invoked after delivery, ignoring",
                    source_id=source_id,
                )
                return
            if error is not None:
                future.set_exception(_as_fetch_error(error, source_id))
            else:
                future.set_result(resource)

        def callback(resource: Any | None, error: Exception | None) -> None:
            if loop.is_closed():
                logger.warning("Fetch result arrived after loop closed", source_id=source_id)
                return
            loop.call_soon_threadsafe(deliver, resource, error)

        self.fetch_fn(source_id, client_secret, callback)
        return await future


def _as_fetch_error(error: Any, source_id: str) -> Exception:
    """Ensure a callback error value is an exception."""
    if isinstance(error, Exception):
        return error
    return FetchError(str(error), source_id=source_id)
