"""
Command-line stream-count metrics for EventStore.

Counts the events in any number of streams and prints one metric per stream,
as Graphite plaintext lines (default) or in the Prometheus text format.

The stream list comes from `--streams a,b,c`, then the `STREAMS` setting, then
the JSON settings file (`STREAMS_CONFIG_FILE`), where it is read from
`<json_config>.streams`:

```json
{"metrics_eventstore_streamcount": {"streams": ["orders", "$ce-customer"]}}
```
"""

import argparse
import asyncio
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import httpx

from eventstore_monitor.clients.eventstore_client import EventStoreClient
from eventstore_monitor.config import settings
from eventstore_monitor.exceptions import ClusterDiscoveryError, EventStoreMonitorError
from eventstore_monitor.managers.logging_manager import configure_logging, get_logger
from eventstore_monitor.models.gossip_models import Verdict
from eventstore_monitor.services.stream_count_service import StreamCountService, build_metric_prefix
from eventstore_monitor.services.verdict_reporter import (
    GraphiteMetricSink,
    MetricSink,
    PrometheusMetricSink,
    SensuCheckReporter,
)
from eventstore_monitor.utils import ip_helper
from eventstore_monitor.utils.config_validator import ConfigValidator

logger = get_logger(prefix="[StreamCountMetrics]")

CHECK_NAME = "StreamCountMetrics"
DEFAULT_JSON_CONFIG = "metrics_eventstore_streamcount"


@dataclass
class StreamCountOptions:
    """Stream-count options after merging command-line arguments over settings."""
    discover_via_dns: bool
    cluster_dns: str
    address: str
    port: int
    metric_path: str
    eventstore_identifier: Optional[str]
    username: str
    password: Optional[str]
    output_format: str
    max_concurrency: int
    timeout: float
    streams: List[str] = field(default_factory=list)


def load_streams_from_config(config_file: str, json_config: str) -> List[str]:
    """
    Read the stream list from a JSON settings file.

    Args:
        config_file: Path to the JSON settings file
        json_config: Top-level key holding this check's settings

    Returns:
        The configured stream names.

    Raises:
        EventStoreMonitorError: If the file is missing, unreadable, or has no stream list.
    """
    path = Path(config_file)
    if not path.exists():
        raise EventStoreMonitorError(f"Stream config file not found: {config_file}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise EventStoreMonitorError(f"Could not read stream config {config_file}: {e}") from e

    streams = data.get(json_config, {}).get("streams") if isinstance(data, dict) else None
    if not isinstance(streams, list):
        raise EventStoreMonitorError(f"No '{json_config}.streams' list in {config_file}")
    return [str(stream) for stream in streams]


class StreamCountCLI:
    """Stream-count metrics runner."""

    def __init__(self, options: StreamCountOptions, sink: Optional[MetricSink] = None):
        self.options = options
        if sink is not None:
            self.sink = sink
        elif options.output_format == "prometheus":
            self.sink = PrometheusMetricSink()
        else:
            self.sink = GraphiteMetricSink(output=sys.stdout)

    async def run(self) -> Optional[Verdict]:
        """
        Count all streams.

        Returns:
            `None` when every stream was counted, otherwise the verdict to report.
        """
        if self.options.discover_via_dns:
            try:
                self.options.address = ip_helper.get_local_ip_that_also_on_cluster(self.options.cluster_dns)
            except ClusterDiscoveryError as e:
                return Verdict.critical(str(e))

        is_valid, errors = ConfigValidator.validate_stream_count(
            address=self.options.address,
            port=self.options.port,
            streams=self.options.streams,
            metric_path=self.options.metric_path,
            max_concurrency=self.options.max_concurrency,
            password=self.options.password,
            username=self.options.username,
        )
        if not is_valid:
            return Verdict.unknown(f"Invalid configuration: {'; '.join(errors)}")

        client = EventStoreClient(
            address=self.options.address,
            port=self.options.port,
            username=self.options.username,
            password=self.options.password,
            timeout=self.options.timeout,
        )
        service = StreamCountService(
            client,
            self.sink,
            prefix=build_metric_prefix(self.options.metric_path, self.options.eventstore_identifier),
            max_concurrency=self.options.max_concurrency,
        )
        await service.count_streams(self.options.streams)

        if isinstance(self.sink, PrometheusMetricSink):
            sys.stdout.write(self.sink.render())
        return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Counts the items in any given number of EventStore streams",
    )
    parser.add_argument(
        "-v",
        "--no_discover_via_dns",
        action="store_true",
        help="Do not use DNS lookup to discover the local cluster address (default: discover)",
    )
    parser.add_argument(
        "-d",
        "--cluster_dns",
        help=f"DNS name from which other nodes can be discovered (default: {settings.CLUSTER_DNS})",
    )
    parser.add_argument(
        "-a",
        "--address",
        help=f"Address to use when not discovering via DNS (default: {settings.EVENTSTORE_ADDRESS})",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        help=f"EventStore HTTP port (default: {settings.EVENTSTORE_HTTP_PORT})",
    )
    parser.add_argument(
        "-m",
        "--metric_path",
        help=f"What to prepend to output metrics (default: {settings.METRIC_PATH})",
    )
    parser.add_argument(
        "--eventstore_identifier",
        help="Optional identifier to tag the metrics with a specific eventstore instance",
    )
    parser.add_argument(
        "-j",
        "--json_config",
        default=DEFAULT_JSON_CONFIG,
        help=f"Key of this check in the JSON settings file (default: {DEFAULT_JSON_CONFIG})",
    )
    parser.add_argument(
        "-s",
        "--streams",
        help="Streams to count, separated by commas (if not specified uses the settings)",
    )
    parser.add_argument(
        "--username",
        help=f"User to access eventstore as (default: {settings.EVENTSTORE_USERNAME})",
    )
    parser.add_argument(
        "--password",
        help="If set, the username and password are used to access eventstore",
    )
    parser.add_argument(
        "--output-format",
        choices=["graphite", "prometheus"],
        default="graphite",
        help="Metric output format (default: graphite)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log progress to stderr",
    )
    return parser


def resolve_streams(args: argparse.Namespace) -> List[str]:
    """Pick the stream list: command line, then settings, then the JSON settings file."""
    if args.streams:
        return [stream.strip() for stream in args.streams.split(",") if stream.strip()]
    if settings.streams_list:
        return settings.streams_list
    if settings.STREAMS_CONFIG_FILE:
        return load_streams_from_config(settings.STREAMS_CONFIG_FILE, args.json_config)
    return []


def resolve_options(args: argparse.Namespace) -> StreamCountOptions:
    """Merge parsed arguments over settings."""

    def pick(value, default):
        return default if value is None else value

    return StreamCountOptions(
        discover_via_dns=False if args.no_discover_via_dns else settings.CLUSTER_DISCOVER_VIA_DNS,
        cluster_dns=pick(args.cluster_dns, settings.CLUSTER_DNS),
        address=pick(args.address, settings.EVENTSTORE_ADDRESS),
        port=pick(args.port, settings.EVENTSTORE_HTTP_PORT),
        metric_path=pick(args.metric_path, settings.METRIC_PATH),
        eventstore_identifier=pick(args.eventstore_identifier, settings.EVENTSTORE_IDENTIFIER),
        username=pick(args.username, settings.EVENTSTORE_USERNAME),
        password=pick(args.password, settings.eventstore_password),
        output_format=args.output_format,
        max_concurrency=settings.STREAM_MAX_CONCURRENCY,
        timeout=settings.REQUEST_TIMEOUT,
        streams=resolve_streams(args),
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        configure_logging("INFO")

    reporter = SensuCheckReporter(CHECK_NAME, output=sys.stdout)

    try:
        cli = StreamCountCLI(resolve_options(args))
        verdict = asyncio.run(cli.run())
    except (EventStoreMonitorError, httpx.HTTPError) as e:
        logger.error(f"Stream count failed: {e}")
        verdict = Verdict.critical(f"Check failed to run: {e}")
    except Exception as e:
        logger.error(f"Stream count failed unexpectedly: {e}", exc_info=True)
        verdict = Verdict.unknown(f"Check failed to run: {e}")

    if verdict is not None:
        reporter.report(verdict)
    sys.exit(0)


if __name__ == "__main__":
    main()
