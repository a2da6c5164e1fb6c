"""
Live Status Pipeline - recurring device polling with latest-wins delivery.

A pipeline fetches one value on start and then once per cadence interval, and
republishes the newest value to every subscriber.

Latest-Wins:
    Every tick bumps a generation counter and issues a new fetch. An older
    fetch that is still outstanding is cancelled, and if its result (or
    error) still arrives it is dropped because its generation is no longer
    current. Publication order therefore follows issue order, never
    completion order.

Failure Handling:
    - A failing fetch is logged and counted, never retried; the next tick is
      an independent attempt
    - The schedule keeps running regardless of failures

Sharing:
    The first subscriber starts a pipeline that is not running yet and the
    last unsubscribe halts it again, so consumers sharing one pipeline never
    stop it for each other. A pipeline started explicitly with start() keeps
    running until its owner calls stop().

Teardown:
    stop() is idempotent. It cancels the timer and the in-flight fetch, bumps
    the generation so late completions are ignored, drops the replay value
    and closes every subscription, which also ends any stream() iterators
    even if they still had queued values.

Consumers:
    sub = pipeline.subscribe(callback)     # callback(value), replay-one
    sub.unsubscribe()

    async for snapshot in pipeline.stream():
        ...
"""
import asyncio
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional

from pyaxeos.exceptions import PyAxeOSInvalidConfigurationParameter

log = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """Handle returned by Publisher.subscribe()."""

    def __init__(self, publisher: "Publisher", callback: Callable[[Any], None],
                 on_close: Optional[Callable[[], None]] = None):
        self._publisher = publisher
        self.callback = callback
        self.on_close = on_close
        self.active = True

    def unsubscribe(self):
        if not self.active:
            return
        self.active = False
        self._publisher._unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.unsubscribe()


class Publisher:
    """Subscriber registry with replay of the most recent value."""

    def __init__(self, name: str = "publisher"):
        self.name = name
        self._subscriptions: List[Subscription] = []
        self._latest: Any = None
        self._has_latest = False
        self._publish_count = 0

    @property
    def latest(self) -> Any:
        return self._latest if self._has_latest else None

    @property
    def has_value(self) -> bool:
        return self._has_latest

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, callback: Callable[[Any], None],
                  on_close: Optional[Callable[[], None]] = None) -> Subscription:
        subscription = Subscription(self, callback, on_close)
        self._subscriptions.append(subscription)
        published_before = self._publish_count
        if len(self._subscriptions) == 1:
            self._on_first_subscriber()
        # Replay unless the hook above already delivered something newer
        if self._has_latest and subscription.active and self._publish_count == published_before:
            self._deliver(subscription, self._latest)
        return subscription

    async def stream(self) -> AsyncIterator[Any]:
        """Iterate over published values until unsubscribed or closed."""
        queue: asyncio.Queue = asyncio.Queue()
        subscription = self.subscribe(queue.put_nowait, on_close=lambda: queue.put_nowait(_CLOSED))
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED or not subscription.active:
                    break
                yield item
        finally:
            subscription.unsubscribe()

    def _unsubscribe(self, subscription: Subscription):
        if subscription not in self._subscriptions:
            return
        self._subscriptions.remove(subscription)
        if subscription.on_close:
            subscription.on_close()
        if not self._subscriptions:
            self._on_last_unsubscribe()

    def _publish(self, value: Any):
        self._latest = value
        self._has_latest = True
        self._publish_count += 1
        for subscription in list(self._subscriptions):
            if subscription.active:
                self._deliver(subscription, value)

    def _deliver(self, subscription: Subscription, value: Any):
        try:
            subscription.callback(value)
        except Exception as e:
            log.error(f"Error delivering {self.name} update to subscriber: {e}")

    def _reset(self):
        self._latest = None
        self._has_latest = False

    def _close_all(self):
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.active = False
            if subscription.on_close:
                subscription.on_close()

    def _on_first_subscriber(self):
        pass

    def _on_last_unsubscribe(self):
        pass


class LiveStatusPipeline(Publisher):
    """Polls an async fetch function on a fixed cadence.

    Args:
        fetch: async callable returning one snapshot
        cadence: seconds between ticks, or None to fetch once on start
        name: label used in log messages
    """

    def __init__(self, fetch: Callable[[], Awaitable[Any]], cadence: Optional[float], name: str = "status"):
        super().__init__(name)
        if cadence is not None and cadence <= 0:
            raise PyAxeOSInvalidConfigurationParameter(f"Invalid cadence for {name}: {cadence}")
        self._fetch = fetch
        self.cadence = cadence
        self._running = False
        # True while the pipeline runs only because it has subscribers
        self._on_demand = False
        self._generation = 0
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._consecutive_failures = 0
        self.error_count = 0
        self.last_error: Optional[BaseException] = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def generation(self) -> int:
        return self._generation

    def start(self) -> "LiveStatusPipeline":
        """Begin polling until stop(); must be called from a running event loop."""
        self._on_demand = False
        return self._begin()

    def _begin(self) -> "LiveStatusPipeline":
        if self._running:
            return self
        self._running = True
        if self.cadence is None:
            log.debug(f"Pipeline {self.name} started (single fetch)")
            self.refresh()
        else:
            log.debug(f"Pipeline {self.name} started (every {self.cadence}s)")
            self._timer = asyncio.ensure_future(self._schedule())
        return self

    def stop(self):
        self._halt()
        self._close_all()

    def _halt(self):
        was_running = self._running
        self._running = False
        self._on_demand = False
        self._generation += 1
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = None
        self._reset()
        if was_running:
            log.debug(f"Pipeline {self.name} stopped")

    def _on_first_subscriber(self):
        if not self._running:
            self._begin()
            self._on_demand = True

    def _on_last_unsubscribe(self):
        if self._on_demand:
            self._halt()

    def refresh(self):
        """Issue a fetch now; any outstanding fetch is superseded."""
        if not self._running:
            return
        self._generation += 1
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = asyncio.ensure_future(self._run_fetch(self._generation))

    async def _schedule(self):
        while self._running:
            self.refresh()
            await asyncio.sleep(self.cadence)

    async def _run_fetch(self, generation: int):
        try:
            result = await self._fetch()
        except Exception as e:
            if self._running and generation == self._generation:
                self._record_failure(e)
            return
        if not self._running or generation != self._generation:
            log.debug(f"Discarding stale {self.name} result (generation {generation} < {self._generation})")
            return
        self._consecutive_failures = 0
        self._publish(result)

    def _record_failure(self, error: Exception):
        self.error_count += 1
        self.last_error = error
        if self._consecutive_failures == 0:
            log.warning(f"Pipeline {self.name} fetch failed: {error}")
        else:
            log.debug(f"Pipeline {self.name} fetch failed again (#{self._consecutive_failures + 1}): {error}")
        self._consecutive_failures += 1
