"""
# Data Models Package

**Pydantic models** shared by the gossip check and the stream-count metrics.

- **`gossip_models`**: Cluster snapshot, members, check configuration, and verdicts.
- **`stream_models`**: Stream-not-found signal and emitted metric points.
"""

from .gossip_models import (
    ClusterSnapshot,
    MemberInfo,
    ValidationConfig,
    Verdict,
    VerdictStatus,
)
from .stream_models import StreamCountMetric, StreamNotFound

__all__ = [
    "ClusterSnapshot",
    "MemberInfo",
    "ValidationConfig",
    "Verdict",
    "VerdictStatus",
    "StreamCountMetric",
    "StreamNotFound",
]
