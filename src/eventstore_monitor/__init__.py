"""
# EventStore Monitor

Health checks and metrics for **EventStore clusters**, packaged as Sensu/Nagios
style command-line plugins.

## Package Structure

- **`config`**: Pydantic-based settings with `.esmon`/`.env` discovery.
- **`models`**: Cluster snapshot, check configuration, verdicts, stream metrics.
- **`services`**: Gossip parser and validator, gossip check orchestration,
  stream counting, and verdict/metric reporting.
- **`clients`**: Async httpx client for the gossip and stream endpoints.
- **`utils`**: DNS cluster discovery and option validation.
- **`managers`**: Logging.
- **`cli`**: `eventstore-check-gossip` and `eventstore-stream-count`.

## Usage Example

```python
from eventstore_monitor.models import ValidationConfig
from eventstore_monitor.services.gossip_parser import parse_gossip
from eventstore_monitor.services.gossip_validator import validate

verdict = validate(parse_gossip(raw_document), ValidationConfig(expected_node_count=3))
print(verdict.status, verdict.message)
```
"""

__version__ = "0.1.0"
