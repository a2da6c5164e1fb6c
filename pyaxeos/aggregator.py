"""
Status Aggregator - combine the latest values of several pipelines.

The aggregator pairs every emission of one source with the most recent value
of each other source (combine-latest) and shares the result among any number
of subscribers.

Lifecycle (reference counted):
    - The first subscriber subscribes to every source, which starts any
      pipeline that is not running yet
    - Further subscribers share the same upstream subscriptions and receive
      the most recent combined value immediately
    - The last unsubscribe drops only the aggregator's own upstream
      subscriptions and clears the replay value. A source halts when its last
      subscriber leaves, so a pipeline also followed elsewhere keeps running

Example:
    info = LiveStatusPipeline(device.get_info, 5, name="info")
    asic = LiveStatusPipeline(device.get_asic, None, name="asic")
    combined = StatusAggregator.combine(info, asic)
    sub = combined.subscribe(lambda snap: print(snap.info.hostname, snap.asic.asic_model))
"""
import functools
import logging
from typing import Any, Dict, List

from pyaxeos.exceptions import PyAxeOSInvalidConfigurationParameter
from pyaxeos.models import CombinedSnapshot
from pyaxeos.pipeline import Publisher, Subscription

log = logging.getLogger(__name__)


class StatusAggregator(Publisher):

    def __init__(self, name: str = "combined", **sources: Publisher):
        super().__init__(name)
        if len(sources) < 2:
            raise PyAxeOSInvalidConfigurationParameter("StatusAggregator needs at least two sources")
        self.sources: Dict[str, Publisher] = dict(sources)
        self._values: Dict[str, Any] = {}
        self._upstream: List[Subscription] = []

    @classmethod
    def combine(cls, info: Publisher, asic: Publisher) -> "StatusAggregator":
        return cls(info=info, asic=asic)

    @property
    def connected(self) -> bool:
        return bool(self._upstream)

    def _on_first_subscriber(self):
        log.debug(f"Aggregator {self.name}: first subscriber, following {', '.join(self.sources)}")
        self._values = {}
        for name, source in self.sources.items():
            self._upstream.append(source.subscribe(functools.partial(self._on_source_value, name)))

    def _on_last_unsubscribe(self):
        log.debug(f"Aggregator {self.name}: last subscriber left, releasing sources")
        upstream, self._upstream = self._upstream, []
        for subscription in upstream:
            subscription.unsubscribe()
        self._values = {}
        self._reset()

    def _on_source_value(self, name: str, value: Any):
        self._values[name] = value
        if len(self._values) < len(self.sources):
            return
        self._publish(CombinedSnapshot(parts=dict(self._values)))
