"""
Stream status models for the stream-count metrics.

The EventStore HTTP API answers `GET /streams/<name>` with a JSON feed whose
`eTag` looks like `"41;-2060438500"`: the number before `;` is the zero-based
index of the last event written. A stream that was never written answers 404,
which the client turns into `StreamNotFound`.
"""

from pydantic import BaseModel, ConfigDict, Field


class StreamNotFound(BaseModel):
    """Signal that the requested stream does not exist."""
    model_config = ConfigDict(frozen=True)

    stream_name: str = Field(..., description="Stream that returned 404")


class StreamCountMetric(BaseModel):
    """One emitted stream-count data point.

    Attributes:
        name (str): Full metric path, e.g. `host.eventstore.streams.orders.count`.
        value (int): Number of events in the stream.
        timestamp (int): Unix timestamp in seconds.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Metric path")
    value: int = Field(..., ge=0, description="Event count")
    timestamp: int = Field(..., description="Unix timestamp (seconds)")
