"""
# Stream Count Service

Counts the events in a set of EventStore streams and emits one metric per stream.

## How the count is derived

The stream feed's `eTag` is `"<last event number>;<opaque suffix>"`. Event
numbers are zero-based, so the count is the prefix plus one. Reading the ETag
works for projections such as `$ce-*` and `$et-*` too, where event titles would
tell us nothing.

A stream that does not exist is reported as a count of `0`; it is not an
error. An ETag that cannot be read is: the service never guesses a count.

## Usage Example

```python
service = StreamCountService(client, sink, prefix="host.eventstore.streams.")
await service.count_streams(["orders", "$ce-customer"])
```
"""

import asyncio
import re
import time
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from eventstore_monitor.clients.eventstore_client import EventStoreClient
from eventstore_monitor.exceptions import MalformedStreamStatusError
from eventstore_monitor.managers.logging_manager import get_logger
from eventstore_monitor.models.stream_models import StreamCountMetric, StreamNotFound
from eventstore_monitor.services.verdict_reporter import MetricSink

logger = get_logger(prefix="[StreamCount]")

ETAG_PREFIX_PATTERN = re.compile(r"^(-1|\d+)$")


def extract_count(document: Union[Mapping[str, Any], StreamNotFound]) -> int:
    """
    Derive the number of events in a stream from its status document.

    Args:
        document: Decoded stream feed, or `StreamNotFound`.

    Returns:
        The event count, `0` for a missing stream.

    Raises:
        MalformedStreamStatusError: If the document is not a JSON object, or its `eTag` is
            missing or does not start with `-1` or a non-negative event number.
    """
    if isinstance(document, StreamNotFound):
        return 0

    if not isinstance(document, Mapping):
        raise MalformedStreamStatusError(f"stream status is not a JSON object: {type(document).__name__}")

    etag = document.get("eTag")
    if not isinstance(etag, str):
        raise MalformedStreamStatusError(f"stream status has no eTag string: {etag!r}")

    prefix = etag.split(";", 1)[0].strip().strip('"')
    if not ETAG_PREFIX_PATTERN.match(prefix):
        raise MalformedStreamStatusError(f"eTag {etag!r} does not start with a valid event number")

    return int(prefix) + 1


def build_metric_prefix(metric_path: str, eventstore_identifier: Optional[str] = None) -> str:
    """Build `<metric_path>[.<identifier>].streams.`."""
    identifier = f".{eventstore_identifier}" if eventstore_identifier else ""
    return f"{metric_path}{identifier}.streams."


class StreamCountService:
    """
    Fetches stream statuses and emits their event counts.

    Streams are independent: they are fetched concurrently, bounded by
    `max_concurrency`, and each emits as soon as its count is known.
    """

    def __init__(
        self,
        client: EventStoreClient,
        sink: MetricSink,
        prefix: str,
        max_concurrency: int = 4,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.sink = sink
        self.prefix = prefix
        self.max_concurrency = max_concurrency
        self._clock = clock

    def metric_name(self, stream: str) -> str:
        return f"{self.prefix}{stream}.count"

    async def count_stream(self, stream: str) -> StreamCountMetric:
        """
        Count one stream and emit its metric.

        Raises:
            MalformedStreamStatusError: If the stream's eTag is unusable.
            httpx.HTTPError: On transport failures or non-404 error statuses.
        """
        document = await self.client.fetch_stream_status(stream)
        count = extract_count(document)

        metric = StreamCountMetric(name=self.metric_name(stream), value=count, timestamp=int(self._clock()))
        self.sink.emit(metric.name, metric.value, metric.timestamp)
        logger.debug(f"Stream {stream} has {count} events")
        return metric

    async def count_streams(self, streams: Iterable[str]) -> List[StreamCountMetric]:
        """
        Count every stream in `streams`.

        The first failure cancels the remaining fetches and propagates.

        Returns:
            Metrics in the order the streams were given.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(stream: str) -> StreamCountMetric:
            async with semaphore:
                return await self.count_stream(stream)

        tasks = [asyncio.ensure_future(bounded(stream)) for stream in streams]
        try:
            return list(await asyncio.gather(*tasks))
        except Exception:
            for task in tasks:
                task.cancel()
            raise
