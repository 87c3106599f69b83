"""
Command-line gossip check for EventStore clusters.

Checks the gossip page of one node and makes sure the cluster looks healthy:
the expected number of nodes, all alive, exactly one master, everyone else a
slave, and the node not lagging too far behind the master. Prints one Sensu
check line and exits 0/1/2/3 for OK/WARNING/CRITICAL/UNKNOWN.
"""

import argparse
import asyncio
import sys
from dataclasses import dataclass
from typing import List, Optional

from eventstore_monitor.clients.eventstore_client import EventStoreClient
from eventstore_monitor.config import settings
from eventstore_monitor.exceptions import ClusterDiscoveryError
from eventstore_monitor.managers.logging_manager import configure_logging, get_logger
from eventstore_monitor.models.gossip_models import ValidationConfig, Verdict
from eventstore_monitor.services.gossip_check_service import GossipCheckService
from eventstore_monitor.services.verdict_reporter import SensuCheckReporter
from eventstore_monitor.utils import ip_helper
from eventstore_monitor.utils.config_validator import ConfigValidator

logger = get_logger(prefix="[CheckGossip]")

CHECK_NAME = "CheckGossip"


@dataclass
class GossipCheckOptions:
    """Check options after merging command-line arguments over settings."""
    discover_via_dns: bool
    cluster_dns: str
    gossip_address: str
    gossip_port: int
    expected_nodes: int
    epoch_threshold: int
    gossip_format: str
    timeout: float


class CheckGossipCLI:
    """Gossip check runner."""

    def __init__(self, options: GossipCheckOptions):
        self.options = options

    def discover(self) -> None:
        """
        Replace the address and expected node count with what DNS reports.

        Raises:
            ClusterDiscoveryError: If no local IP is part of the cluster.
        """
        cluster_dns = self.options.cluster_dns
        address = ip_helper.get_local_ip_that_also_on_cluster(cluster_dns)
        if not ip_helper.is_valid_v4_ip(address):
            raise ClusterDiscoveryError(f"Discovered address {address} is not a valid IPv4 address")

        self.options.gossip_address = address
        self.options.expected_nodes = len(ip_helper.get_ips_in_cluster(cluster_dns))

    async def run(self) -> Verdict:
        """
        Run the check.

        Returns:
            The verdict to report.
        """
        if self.options.discover_via_dns:
            try:
                self.discover()
            except ClusterDiscoveryError as e:
                return Verdict.critical(str(e))

        is_valid, errors = ConfigValidator.validate_gossip_check(
            address=self.options.gossip_address,
            port=self.options.gossip_port,
            expected_nodes=self.options.expected_nodes,
            epoch_threshold=self.options.epoch_threshold,
            gossip_format=self.options.gossip_format,
        )
        if not is_valid:
            return Verdict.unknown(f"Invalid configuration: {'; '.join(errors)}")

        client = EventStoreClient(
            address=self.options.gossip_address,
            port=self.options.gossip_port,
            timeout=self.options.timeout,
        )
        config = ValidationConfig(
            expected_node_count=self.options.expected_nodes,
            epoch_lag_threshold=self.options.epoch_threshold,
        )
        service = GossipCheckService(client, gossip_format=self.options.gossip_format)
        return await service.run(config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Checks the event store gossip page, making sure everything is working as expected",
    )
    parser.add_argument(
        "-v",
        "--no_discover_via_dns",
        action="store_true",
        help="Do not use DNS lookup to discover other cluster nodes (default: discover)",
    )
    parser.add_argument(
        "-d",
        "--cluster_dns",
        help=f"DNS name from which other nodes can be discovered (default: {settings.CLUSTER_DNS})",
    )
    parser.add_argument(
        "-g",
        "--gossip_ip",
        help=f"Address to use for gossip when not discovering via DNS (default: {settings.EVENTSTORE_ADDRESS})",
    )
    parser.add_argument(
        "-p",
        "--gossip_port",
        type=int,
        help=f"Port to use when connecting to gossip (default: {settings.EVENTSTORE_GOSSIP_PORT})",
    )
    parser.add_argument(
        "-e",
        "--expected_nodes",
        type=int,
        help=(
            "The total number of nodes we expect to be gossiping, including this one "
            f"(default: {settings.CLUSTER_EXPECTED_NODES})"
        ),
    )
    parser.add_argument(
        "-t",
        "--epoch_threshold",
        type=int,
        help=(
            "The maximum allowable epoch position lag behind master before a critical alert, "
            f"-1 for no threshold (default: {settings.CLUSTER_EPOCH_THRESHOLD})"
        ),
    )
    parser.add_argument(
        "--format",
        dest="gossip_format",
        choices=["xml", "json"],
        help=f"Gossip document format to request (default: {settings.EVENTSTORE_GOSSIP_FORMAT})",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log each check step to stderr",
    )
    return parser


def resolve_options(args: argparse.Namespace) -> GossipCheckOptions:
    """Merge parsed arguments over settings."""

    def pick(value, default):
        return default if value is None else value

    return GossipCheckOptions(
        discover_via_dns=False if args.no_discover_via_dns else settings.CLUSTER_DISCOVER_VIA_DNS,
        cluster_dns=pick(args.cluster_dns, settings.CLUSTER_DNS),
        gossip_address=pick(args.gossip_ip, settings.EVENTSTORE_ADDRESS),
        gossip_port=pick(args.gossip_port, settings.EVENTSTORE_GOSSIP_PORT),
        expected_nodes=pick(args.expected_nodes, settings.CLUSTER_EXPECTED_NODES),
        epoch_threshold=pick(args.epoch_threshold, settings.CLUSTER_EPOCH_THRESHOLD),
        gossip_format=pick(args.gossip_format, settings.EVENTSTORE_GOSSIP_FORMAT),
        timeout=settings.REQUEST_TIMEOUT,
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        configure_logging("INFO")

    reporter = SensuCheckReporter(CHECK_NAME, output=sys.stdout)
    cli = CheckGossipCLI(resolve_options(args))

    try:
        verdict = asyncio.run(cli.run())
    except Exception as e:
        logger.error(f"Gossip check failed to run: {e}", exc_info=True)
        verdict = Verdict.unknown(f"Check failed to run: {e}")

    reporter.report(verdict)


if __name__ == "__main__":
    main()
