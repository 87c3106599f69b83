"""
Exception hierarchy for the EventStore monitor.

Services raise these; the gossip check orchestrator and the CLIs translate them
into verdicts. Consistency violations are never exceptions, they are verdicts.
"""


class EventStoreMonitorError(Exception):
    """Base class for all monitor errors."""


class GossipParseError(EventStoreMonitorError):
    """The gossip document could not be decoded into a cluster snapshot."""


class MalformedGossipError(GossipParseError):
    """A lookup that must match exactly one member matched zero or several."""

    def __init__(self, reason: str, match_count: int = 0):
        super().__init__(reason)
        self.reason = reason
        self.match_count = match_count


class GossipFetchError(EventStoreMonitorError):
    """The gossip endpoint could not be reached or returned an error status."""

    def __init__(self, url: str, cause: Exception):
        super().__init__(f"Failed to fetch gossip from {url}: {cause}")
        self.url = url
        self.cause = cause


class ClusterDiscoveryError(EventStoreMonitorError):
    """DNS discovery could not produce a usable local cluster address."""


class MalformedStreamStatusError(EventStoreMonitorError):
    """A stream status document carries no usable ETag."""
