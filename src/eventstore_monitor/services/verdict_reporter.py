"""
# Verdict Reporting

The contracts the checks report through, and the implementations the CLIs use.

- **`VerdictReporter`**: Terminal sink for a gossip verdict. `SensuCheckReporter`
  prints `"<CheckName> <STATUS>: <message>"` and exits with the Sensu/Nagios code.
- **`MetricSink`**: Non-terminal sink, called once per stream count.
  `GraphiteMetricSink` writes plaintext `name value timestamp` lines;
  `PrometheusMetricSink` records gauges and renders the text exposition format.

Reporters are passed in explicitly; nothing in the core writes to a global sink.
"""

import sys
from typing import NoReturn, Optional, Protocol, TextIO

from prometheus_client import CollectorRegistry, Gauge, generate_latest

from eventstore_monitor.models.gossip_models import Verdict


class VerdictReporter(Protocol):
    """Receives the single verdict of a check run and ends the run."""

    def report(self, verdict: Verdict) -> NoReturn:
        ...


class MetricSink(Protocol):
    """Receives one metric data point per call."""

    def emit(self, metric_name: str, value: int, timestamp: int) -> None:
        ...


class SensuCheckReporter:
    """Sensu/Nagios-style check output."""

    def __init__(self, check_name: str, output: Optional[TextIO] = None):
        self.check_name = check_name
        self.output = output

    def format(self, verdict: Verdict) -> str:
        return f"{self.check_name} {verdict.status.value}: {verdict.message}"

    def report(self, verdict: Verdict) -> NoReturn:
        """
        Print the verdict and exit.

        Raises:
            SystemExit: Always, with the verdict's exit code.
        """
        output = self.output or sys.stdout
        print(self.format(verdict), file=output)
        output.flush()
        raise SystemExit(verdict.status.exit_code)


class GraphiteMetricSink:
    """Writes Graphite plaintext protocol lines."""

    def __init__(self, output: Optional[TextIO] = None):
        self.output = output

    def emit(self, metric_name: str, value: int, timestamp: int) -> None:
        print(f"{metric_name} {value} {timestamp}", file=self.output or sys.stdout)


class PrometheusMetricSink:
    """
    Records stream counts as a Prometheus gauge in a private registry.

    The full Graphite-style metric path goes into the `metric` label, so the same
    stream configuration feeds either backend. Call `render()` once all streams
    have been emitted.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self.stream_events = Gauge(
            "eventstore_stream_events",
            "Number of events in an EventStore stream",
            ["metric"],
            registry=self.registry,
        )
        self.last_emitted = Gauge(
            "eventstore_stream_events_timestamp_seconds",
            "Unix time the stream count was read",
            ["metric"],
            registry=self.registry,
        )

    def emit(self, metric_name: str, value: int, timestamp: int) -> None:
        self.stream_events.labels(metric=metric_name).set(value)
        self.last_emitted.labels(metric=metric_name).set(timestamp)

    def render(self) -> str:
        return generate_latest(self.registry).decode("utf-8")
