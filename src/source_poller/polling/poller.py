"""
Source poller for the source poller package.

This module retrieves a source repeatedly until it reaches a terminal
status, the attempt cap is exceeded, or the caller stops polling.
"""

import asyncio
import threading
from collections.abc import Callable
from typing import Any

import structlog

from ..config import PollingConfig
from ..exceptions import (
    AttemptsExceededError,
    ConfigurationError,
    FetchError,
    SourcePollerError,
)
from ..models import PollOutcome, PollState, is_terminal_status
from .backoff import BackoffPolicy
from .fetcher import SourceFetcher

logger = structlog.get_logger(__name__)

CompletionCallback = Callable[[PollOutcome], None]
UpdateCallback = Callable[[Any], None]
TerminalClassifier = Callable[[Any], bool]


class SourcePoller:
    """
    Polls a single source until it settles.

    Polling begins as soon as the poller is constructed. The completion
    callback fires at most once, on the event loop the poller was created
    on, with a ``PollOutcome`` describing the terminal resource or the
    error. ``stop_polling`` is silent: it suppresses the callback and any
    further fetches, and may be called from any thread.

    All transitions of the state, the completion slot and the pending
    timer happen under one reentrant lock, so a fetch result racing with
    ``stop_polling`` is either delivered or discarded, never both.
    """

    def __init__(
        self,
        fetcher: SourceFetcher,
        source_id: str,
        client_secret: str,
        on_complete: CompletionCallback,
        *,
        config: PollingConfig | None = None,
        is_terminal: TerminalClassifier = is_terminal_status,
        on_update: UpdateCallback | None = None,
    ):
        """
        Initialize the poller and issue the first fetch.

        Args:
            fetcher: Capability performing one source lookup per call
            source_id: Identifier of the source to watch
            client_secret: Client secret scoping the lookup
            on_complete: Invoked once with the final outcome
            config: Polling configuration (defaults apply when omitted)
            is_terminal: Classifier applied to each fetched status
            on_update: Invoked when a non-terminal status changes

        Raises:
            ConfigurationError: If an argument is invalid or no event loop
                is running
        """
        if not isinstance(source_id, str) or not source_id:
            raise ConfigurationError("source_id must be a non-empty string")
        if not isinstance(client_secret, str) or not client_secret:
            raise ConfigurationError(
                "client_secret must be a non-empty string",
                context={"source_id": source_id},
            )
        if not callable(getattr(fetcher, "fetch_source", None)):
            raise ConfigurationError(
                "fetcher must provide a fetch_source coroutine",
                context={"source_id": source_id},
            )
        if not callable(on_complete):
            raise ConfigurationError(
                "on_complete must be callable", context={"source_id": source_id}
            )
        if on_update is not None and not callable(on_update):
            raise ConfigurationError(
                "on_update must be callable", context={"source_id": source_id}
            )

        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise ConfigurationError(
                "SourcePoller must be created from a running event loop",
                context={"source_id": source_id},
            ) from e

        self._fetcher = fetcher
        self._source_id = source_id
        self._client_secret = client_secret
        self._is_terminal = is_terminal
        self._on_update = on_update
        self._on_complete: CompletionCallback | None = on_complete

        self.config = config or PollingConfig()
        self.backoff = BackoffPolicy.from_config(self.config)

        self._lock = threading.RLock()
        self._state = PollState.POLLING
        self._poll_count = 0
        self._paused = False
        self._in_flight = False
        self._generation = 0
        self._timer: asyncio.Handle | None = None
        self._task: asyncio.Task[None] | None = None
        self._latest_resource: Any | None = None
        self._result: asyncio.Future[PollOutcome] = self._loop.create_future()

        logger.info(
            "Source polling started",
            source_id=source_id,
            max_attempts=self.config.max_attempts,
        )

        self._poll(self._generation)

    @property
    def source_id(self) -> str:
        return self._source_id

    @property
    def client_secret(self) -> str:
        return self._client_secret

    @property
    def state(self) -> PollState:
        """Current lifecycle state."""
        with self._lock:
            return self._state

    @property
    def done(self) -> bool:
        """True once the poller has completed, failed or been stopped."""
        return self.state.is_final

    @property
    def paused(self) -> bool:
        with self._lock:
            return self._paused

    @property
    def poll_count(self) -> int:
        """Number of fetches issued so far."""
        with self._lock:
            return self._poll_count

    @property
    def latest_resource(self) -> Any | None:
        """Most recent resource returned by the fetcher."""
        with self._lock:
            return self._latest_resource

    async def wait(self) -> PollOutcome:
        """
        Wait for the poller to settle.

        Returns:
            The final outcome; a stopped poller yields a cancelled outcome
        """
        return await asyncio.shield(self._result)

    def stop_polling(self) -> None:
        """
        Stop polling without invoking the completion callback.

        Idempotent, and a no-op once the poller has completed. A fetch
        already in flight is left to finish and its result is discarded.
        """
        with self._lock:
            if self._state is not PollState.POLLING:
                return
            self._state = PollState.CANCELLED
            self._on_complete = None
            self._generation += 1
            timer, self._timer = self._timer, None
            outcome = PollOutcome(
                PollState.CANCELLED,
                resource=self._latest_resource,
                attempts=self._poll_count,
            )
            in_flight = self._in_flight

        if timer is not None:
            self._cancel_handle(timer)

        logger.info(
            "Source polling stopped",
            source_id=self._source_id,
            attempts=outcome.attempts,
            in_flight=in_flight,
        )
        self._call_in_loop(self._resolve, outcome)

    def pause_polling(self) -> None:
        """Suspend scheduling of further polls until ``resume_polling``."""
        with self._lock:
            if self._state is not PollState.POLLING or self._paused:
                return
            self._paused = True
            self._generation += 1
            timer, self._timer = self._timer, None

        if timer is not None:
            self._cancel_handle(timer)

        logger.info("Source polling paused", source_id=self._source_id)

    def resume_polling(self) -> None:
        """Resume a paused poller, polling immediately if nothing is pending."""
        with self._lock:
            if self._state is not PollState.POLLING or not self._paused:
                return
            self._paused = False
            if self._in_flight or self._timer is not None:
                return
            self._generation += 1
            if self._in_loop_thread():
                self._timer = self._loop.call_soon(self._poll, self._generation)
            else:
                self._timer = self._loop.call_soon_threadsafe(
                    self._poll, self._generation
                )

        logger.info("Source polling resumed", source_id=self._source_id)

    def _poll(self, generation: int) -> None:
        """
        Issue the next fetch if the poller is still live.

        A call armed before the latest pause, resume or stop carries an
        older generation and is ignored.
        """
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
            if self._state is not PollState.POLLING or self._paused:
                return
            if self._in_flight:
                return
            self._poll_count += 1
            self._in_flight = True
            attempt = self._poll_count
            self._task = self._loop.create_task(self._fetch(attempt))

        logger.debug("Polling source", source_id=self._source_id, attempt=attempt)

    async def _fetch(self, attempt: int) -> None:
        try:
            resource = await self._fetcher.fetch_source(
                self._source_id, self._client_secret
            )
        except asyncio.CancelledError:
            with self._lock:
                self._in_flight = False
            raise
        except Exception as e:
            self._handle_error(e, attempt)
        else:
            self._handle_resource(resource, attempt)

    def _handle_resource(self, resource: Any, attempt: int) -> None:
        with self._lock:
            self._in_flight = False
            if self._state is not PollState.POLLING:
                logger.info(
                    "Discarding fetch result after polling ended",
                    source_id=self._source_id,
                    attempt=attempt,
                    state=self._state.value,
                )
                return

            previous = self._latest_resource
            self._latest_resource = resource

            outcome = self._classify(resource, attempt)
            if outcome is None:
                if self._on_update is not None and _status_changed(previous, resource):
                    self._notify_update(resource)
                self._schedule_next(attempt)
                return

            callback = self._finish(outcome)

        self._deliver(callback, outcome)

    def _classify(self, resource: Any, attempt: int) -> PollOutcome | None:
        """Map a fetched resource to a final outcome, or None to keep polling."""
        try:
            terminal = self._is_terminal(getattr(resource, "status", None))
        except Exception as e:
            error = SourcePollerError(
                f"Failed to classify status of source {self._source_id!r}: {e}",
                code="CLASSIFICATION_ERROR",
                context={"source_id": self._source_id, "attempt": attempt},
            )
            error.__cause__ = e
            return PollOutcome(
                PollState.FAILED, resource=resource, error=error, attempts=attempt
            )

        if terminal:
            return PollOutcome(PollState.SUCCEEDED, resource=resource, attempts=attempt)
        if attempt >= self.config.max_attempts:
            error = AttemptsExceededError(
                attempt,
                last_resource=resource,
                context={"source_id": self._source_id},
            )
            return PollOutcome(
                PollState.FAILED, resource=resource, error=error, attempts=attempt
            )
        return None

    def _handle_error(self, exc: Exception, attempt: int) -> None:
        if isinstance(exc, FetchError):
            error: Exception = exc
        else:
            error = FetchError(
                f"Failed to fetch source {self._source_id!r}: {exc}",
                source_id=self._source_id,
                retryable=isinstance(
                    exc, (ConnectionError, TimeoutError, asyncio.TimeoutError)
                ),
                context={"attempt": attempt},
            )
            error.__cause__ = exc

        with self._lock:
            self._in_flight = False
            if self._state is not PollState.POLLING:
                logger.info(
                    "Discarding fetch error after polling ended",
                    source_id=self._source_id,
                    attempt=attempt,
                    error=str(exc),
                )
                return

            if self.config.retry_transient_errors and getattr(error, "retryable", False):
                if attempt < self.config.max_attempts:
                    logger.warning(
                        "Transient fetch error, retrying",
                        source_id=self._source_id,
                        attempt=attempt,
                        error=str(error),
                    )
                    self._schedule_next(attempt)
                    return
                exhausted = AttemptsExceededError(
                    attempt,
                    last_resource=self._latest_resource,
                    context={"source_id": self._source_id},
                )
                exhausted.__cause__ = error
                error = exhausted

            outcome = PollOutcome(
                PollState.FAILED,
                resource=self._latest_resource,
                error=error,
                attempts=attempt,
            )
            callback = self._finish(outcome)

        self._deliver(callback, outcome)

    def _schedule_next(self, attempt: int) -> None:
        """Arm the timer for the next poll. Caller holds the lock."""
        if self._state is not PollState.POLLING or self._paused:
            return
        delay = self.backoff.delay(attempt)
        logger.debug(
            "Scheduling next poll",
            source_id=self._source_id,
            attempt=attempt,
            delay_seconds=delay,
        )
        self._generation += 1
        self._timer = self._loop.call_later(delay, self._poll, self._generation)

    def _finish(self, outcome: PollOutcome) -> CompletionCallback | None:
        """Move to a final state and take the completion callback. Caller holds the lock."""
        self._state = outcome.state
        callback, self._on_complete = self._on_complete, None
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
        return callback

    def _deliver(self, callback: CompletionCallback | None, outcome: PollOutcome) -> None:
        self._resolve(outcome)

        if outcome.error is not None:
            logger.info(
                "Source polling failed",
                source_id=self._source_id,
                attempts=outcome.attempts,
                error=str(outcome.error),
                code=getattr(outcome.error, "code", None),
            )
        else:
            logger.info(
                "Source polling completed",
                source_id=self._source_id,
                attempts=outcome.attempts,
                status=str(getattr(outcome.resource, "status", None)),
            )

        if callback is None:
            return
        try:
            callback(outcome)
        except Exception:
            logger.exception("Completion callback raised", source_id=self._source_id)

    def _notify_update(self, resource: Any) -> None:
        try:
            self._on_update(resource)  # type: ignore[misc]
        except Exception:
            logger.exception("Update callback raised", source_id=self._source_id)

    def _resolve(self, outcome: PollOutcome) -> None:
        if not self._result.done():
            self._result.set_result(outcome)

    def _cancel_handle(self, handle: asyncio.Handle) -> None:
        if self._in_loop_thread():
            handle.cancel()
        else:
            self._call_in_loop(handle.cancel)

    def _call_in_loop(self, fn: Callable[..., None], *args: Any) -> None:
        if self._in_loop_thread():
            fn(*args)
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(fn, *args)

    def _in_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def __repr__(self) -> str:
        return (
            f"SourcePoller(source_id={self._source_id!r}, "
            f"state={self._state.value}, poll_count={self._poll_count})"
        )


def _status_changed(previous: Any | None, current: Any) -> bool:
    if previous is None:
        return True
    return getattr(previous, "status", None) != getattr(current, "status", None)
