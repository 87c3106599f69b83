"""
Gossip check orchestration.

Fetches the gossip document, parses it, and validates it, turning every failure
along the way into a verdict. Whatever happens, one call produces exactly one
verdict and a fetch failure is never reported as OK.
"""

from eventstore_monitor.clients.eventstore_client import EventStoreClient
from eventstore_monitor.exceptions import GossipFetchError, GossipParseError
from eventstore_monitor.managers.logging_manager import get_logger
from eventstore_monitor.models.gossip_models import ValidationConfig, Verdict
from eventstore_monitor.services.gossip_parser import parse_gossip
from eventstore_monitor.services.gossip_validator import MALFORMED_GOSSIP_MESSAGE, GossipValidator, gossip_validator

logger = get_logger(prefix="[GossipCheck]")

CONNECTION_FAILURE_MESSAGE = (
    "Could not connect to {url} to check gossip, has event store fallen over on this node? "
)


class GossipCheckService:
    """Runs one gossip check against one node."""

    def __init__(
        self,
        client: EventStoreClient,
        validator: GossipValidator = gossip_validator,
        gossip_format: str = "xml",
    ):
        self.client = client
        self.validator = validator
        self.gossip_format = gossip_format

    async def run(self, config: ValidationConfig) -> Verdict:
        """
        Fetch, parse and validate the node's gossip.

        Args:
            config: Expected node count and epoch lag threshold.

        Returns:
            The verdict for this run.
        """
        try:
            raw = await self.client.fetch_gossip(self.gossip_format)
        except GossipFetchError as e:
            return Verdict.critical(CONNECTION_FAILURE_MESSAGE.format(url=e.url))

        try:
            snapshot = parse_gossip(raw)
        except GossipParseError as e:
            logger.warning(f"Gossip from {self.client.address} is malformed: {e}")
            return Verdict.critical(MALFORMED_GOSSIP_MESSAGE.format(reason=e))

        return self.validator.validate(snapshot, config)
