"""Continuous stream of resource value changes.

The controller exposes change notification as a stateful triad:

1. enableRuntimeValueNotifications(ids) marks resources for notification
2. waitForResourceValueChanges(timeout) long-polls for changes of marked
   resources (returns early when something changes)
3. disableRuntimeValueNotifactions(ids) unmarks them again

ChangeStreamCoordinator turns that into one cancellable async iterator.
Enable and disable are always paired and use the same resource ids.
Long-polls to an embedded controller fail now and then, so single poll
failures are retried with a growing pause; only a run of more than
MAX_SEQUENTIAL_FAILURES failures ends the stream with an error.

Usage::

    cancel = asyncio.Event()
    stream = resources.get_resource_value_changes([101, 102], cancel)
    async with contextlib.aclosing(stream.stream()) as changes:
        async for change in changes:
            ...

Setting ``cancel`` stops the stream after the poll in flight. Breaking out
of the loop only disables notifications once the iterator is closed, hence
``aclosing``.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Sequence
from enum import Enum
from typing import Protocol

from .const import DEFAULT_POLL_TIMEOUT, MAX_POLL_TIMEOUT
from .models import ResourceValue

_LOGGER = logging.getLogger(__name__)


class ResourceClient(Protocol):
    """Notification calls the coordinator needs from the controller."""

    async def enable_runtime_value_notifications(
        self, resource_ids: Sequence[int]
    ) -> list[ResourceValue]:
        ...

    async def wait_for_resource_value_changes(
        self, timeout_seconds: int = DEFAULT_POLL_TIMEOUT
    ) -> list[ResourceValue]:
        ...

    async def disable_runtime_value_notifications(self, resource_ids: Sequence[int]) -> bool:
        ...


class StreamState(Enum):
    """Lifecycle of a change stream."""

    IDLE = "idle"
    STARTING = "starting"
    POLLING = "polling"
    DRAINING = "draining"
    STOPPED = "stopped"


class ChangeStreamCoordinator:
    """Streams value changes for a set of resources.

    One instance serves one stream and cannot be restarted.
    """

    # Pause before each poll and before disabling
    POLL_DELAY = 0.025
    # Pause after the n-th sequential failure is n² × BACKOFF_UNIT
    BACKOFF_UNIT = 0.1
    MAX_SEQUENTIAL_FAILURES = 10

    def __init__(
        self,
        client: ResourceClient,
        resource_ids: Iterable[int],
        cancel_event: asyncio.Event | None = None,
        poll_timeout: int = DEFAULT_POLL_TIMEOUT,
        *,
        poll_delay: float | None = None,
        backoff_unit: float | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            client: Service providing the notification calls
            resource_ids: Resources to stream changes for (non-empty)
            cancel_event: Set to stop the stream gracefully
            poll_timeout: Long-poll timeout in seconds, below the
                controller's own connection timeout
            poll_delay: Override POLL_DELAY
            backoff_unit: Override BACKOFF_UNIT
        """
        # Same ids, same order, for enable and disable
        self._resource_ids: tuple[int, ...] = tuple(dict.fromkeys(resource_ids))
        if not self._resource_ids:
            raise ValueError("At least one resource id is required")
        if not 1 <= poll_timeout < MAX_POLL_TIMEOUT:
            raise ValueError(
                f"poll_timeout must be between 1 and {MAX_POLL_TIMEOUT - 1} seconds, "
                f"got {poll_timeout}"
            )

        self._client = client
        self._cancel_event = cancel_event
        self._poll_timeout = poll_timeout
        self._poll_delay = self.POLL_DELAY if poll_delay is None else poll_delay
        self._backoff_unit = self.BACKOFF_UNIT if backoff_unit is None else backoff_unit
        self._state = StreamState.IDLE

    @property
    def resource_ids(self) -> tuple[int, ...]:
        """Return the subscribed resource ids."""
        return self._resource_ids

    @property
    def poll_timeout(self) -> int:
        """Return the long-poll timeout in seconds."""
        return self._poll_timeout

    @property
    def state(self) -> StreamState:
        """Return the stream state."""
        return self._state

    @property
    def cancelled(self) -> bool:
        """Return True once cancellation was requested."""
        return self._cancel_event is not None and self._cancel_event.is_set()

    def __aiter__(self) -> AsyncIterator[ResourceValue]:
        return self.stream()

    async def _pause(self, delay: float) -> None:
        """Sleep for delay seconds, waking up early on cancellation."""
        if self._cancel_event is None or delay <= 0:
            await asyncio.sleep(max(delay, 0))
            return
        try:
            await asyncio.wait_for(self._cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def stream(self) -> AsyncIterator[ResourceValue]:
        """Yield resource value changes until cancelled or failing for good.

        Raises:
            RuntimeError: If the stream was already consumed.
            Exception: Whatever enable raised, the last poll error after
                more than MAX_SEQUENTIAL_FAILURES failures in a row, or
                what disable raised.
        """
        if self._state is not StreamState.IDLE:
            raise RuntimeError("A change stream can only be consumed once")

        ids = self._resource_ids
        self._state = StreamState.STARTING
        _LOGGER.debug("Enabling runtime value notifications for %s", ids)
        try:
            await self._client.enable_runtime_value_notifications(ids)
        except Exception as ex:
            # Nothing was enabled, so there is nothing to disable
            _LOGGER.error("Enabling runtime value notifications for %s failed: %s", ids, ex)
            self._state = StreamState.STOPPED
            raise

        self._state = StreamState.POLLING
        try:
            sequential_failures = 0
            while not self.cancelled:
                await self._pause(self._poll_delay)
                if self.cancelled:
                    break

                try:
                    changes = await self._client.wait_for_resource_value_changes(
                        self._poll_timeout
                    )
                    sequential_failures = 0
                except Exception as ex:
                    sequential_failures += 1
                    _LOGGER.warning(
                        "Waiting for changes of %s failed (#%d): %s",
                        ids, sequential_failures, ex,
                    )
                    changes = []
                    if sequential_failures > self.MAX_SEQUENTIAL_FAILURES:
                        _LOGGER.error(
                            "Waiting for changes of %s failed %d times in a row, giving up",
                            ids, sequential_failures,
                        )
                        raise
                    # Allow the controller to recover
                    await self._pause(sequential_failures * sequential_failures * self._backoff_unit)

                for change in changes:
                    yield change
        finally:
            self._state = StreamState.DRAINING
            try:
                await self._disable()
            finally:
                self._state = StreamState.STOPPED

    async def _disable(self) -> None:
        ids = self._resource_ids
        await asyncio.sleep(self._poll_delay)
        _LOGGER.debug("Disabling runtime value notifications for %s", ids)
        try:
            await self._client.disable_runtime_value_notifications(ids)
        except Exception as ex:
            _LOGGER.error("Disabling runtime value notifications for %s failed: %s", ids, ex)
            raise
