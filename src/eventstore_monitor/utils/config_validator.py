"""
Configuration validation for the EventStore checks.

Validates the resolved check options (settings merged with command-line
arguments) before any request is made, so that a typo surfaces as a clear
UNKNOWN instead of a confusing CRITICAL.
"""

from typing import List, Optional, Tuple

from eventstore_monitor.config import GOSSIP_FORMATS
from eventstore_monitor.managers.logging_manager import get_logger
from eventstore_monitor.utils.ip_helper import is_valid_v4_ip

logger = get_logger(prefix="[ConfigValidator]")


class ConfigValidator:
    """Validates check options."""

    @staticmethod
    def validate_gossip_check(
        address: str,
        port: int,
        expected_nodes: int,
        epoch_threshold: int,
        gossip_format: str = "xml",
    ) -> Tuple[bool, List[str]]:
        """
        Validate the gossip check options.

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        errors = []
        errors.extend(ConfigValidator._validate_endpoint(address, port))

        if expected_nodes < 1:
            errors.append(f"expected_nodes must be at least 1, got {expected_nodes}")

        if epoch_threshold < -1:
            logger.warning(
                f"epoch_threshold is {epoch_threshold}. Any negative value disables the "
                "epoch position check; use -1 to make that explicit"
            )

        if gossip_format not in GOSSIP_FORMATS:
            errors.append(f"Invalid gossip format: {gossip_format}. Must be one of: {', '.join(GOSSIP_FORMATS)}")

        return len(errors) == 0, errors

    @staticmethod
    def validate_stream_count(
        address: str,
        port: int,
        streams: List[str],
        metric_path: str,
        max_concurrency: int,
        password: Optional[str] = None,
        username: Optional[str] = None,
    ) -> Tuple[bool, List[str]]:
        """
        Validate the stream-count options.

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        errors = []
        errors.extend(ConfigValidator._validate_endpoint(address, port))

        if not streams:
            errors.append("No streams to count. Pass --streams or configure them in the JSON settings file")

        if not metric_path:
            errors.append("metric_path cannot be empty")

        if max_concurrency < 1:
            errors.append(f"max_concurrency must be at least 1, got {max_concurrency}")

        if password is not None and not username:
            errors.append("A username is required when a password is set")

        return len(errors) == 0, errors

    @staticmethod
    def _validate_endpoint(address: str, port: int) -> List[str]:
        errors = []

        if not address or not address.strip():
            errors.append("address cannot be empty")
        elif address[0].isdigit() and not is_valid_v4_ip(address):
            errors.append(f"address {address} looks like an IP but is not a valid IPv4 address")

        if not 1 <= port <= 65535:
            errors.append(f"port must be between 1 and 65535, got {port}")

        return errors
