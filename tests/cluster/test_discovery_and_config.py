"""
Tests for DNS discovery, settings validation, and option validation.
"""
import socket
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from eventstore_monitor.config import Settings
from eventstore_monitor.exceptions import ClusterDiscoveryError
from eventstore_monitor.models.gossip_models import ValidationConfig
from eventstore_monitor.utils import ip_helper
from eventstore_monitor.utils.config_validator import ConfigValidator


def addrinfo(*ips):
    return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", (ip, 0)) for ip in ips]


@pytest.fixture
def mock_dns():
    with patch("eventstore_monitor.utils.ip_helper.socket.getaddrinfo") as getaddrinfo, \
         patch("eventstore_monitor.utils.ip_helper.socket.gethostbyname_ex") as gethostbyname_ex:
        getaddrinfo.return_value = addrinfo("10.0.0.3", "10.0.0.1", "10.0.0.2", "10.0.0.1")
        gethostbyname_ex.return_value = ("node-2", [], ["127.0.1.1", "10.0.0.2"])
        yield getaddrinfo, gethostbyname_ex


@pytest.mark.parametrize("address,valid", [
    ("10.0.0.1", True),
    ("255.255.255.255", True),
    ("10.0.0.256", False),
    ("localhost", False),
    ("::1", False),
    ("", False),
])
def test_is_valid_v4_ip(address, valid):
    assert ip_helper.is_valid_v4_ip(address) is valid


def test_get_ips_in_cluster_sorted_unique(mock_dns):
    """Test duplicates are dropped and IPs sorted numerically."""
    assert ip_helper.get_ips_in_cluster("es.cluster.local") == ["10.0.0.1", "10.0.0.2", "10.0.0.3"]


def test_get_local_ip_that_also_on_cluster(mock_dns):
    """Test the local address published under the cluster name is chosen."""
    assert ip_helper.get_local_ip_that_also_on_cluster("es.cluster.local") == "10.0.0.2"


def test_get_local_ip_not_in_cluster(mock_dns):
    """Test a host outside the cluster."""
    _, gethostbyname_ex = mock_dns
    gethostbyname_ex.return_value = ("other", [], ["192.168.0.5"])

    with pytest.raises(ClusterDiscoveryError, match="None of the local IPs"):
        ip_helper.get_local_ip_that_also_on_cluster("es.cluster.local")


def test_unresolvable_cluster_dns(mock_dns):
    """Test a DNS name that does not resolve."""
    getaddrinfo, _ = mock_dns
    getaddrinfo.side_effect = socket.gaierror(-2, "Name or service not known")

    with pytest.raises(ClusterDiscoveryError, match="Could not resolve"):
        ip_helper.get_ips_in_cluster("nowhere.invalid")


def test_settings_defaults():
    """Test the stock ports and thresholds."""
    settings = Settings(_env_file=None)

    assert settings.EVENTSTORE_GOSSIP_PORT == 2113
    assert settings.EVENTSTORE_HTTP_PORT == 2114
    assert settings.METRIC_PATH.endswith(".eventstore")


@pytest.mark.parametrize("field,value", [
    ("CLUSTER_EXPECTED_NODES", 0),
    ("STREAM_MAX_CONCURRENCY", -1),
    ("EVENTSTORE_GOSSIP_PORT", 70000),
    ("REQUEST_TIMEOUT", 0),
    ("EVENTSTORE_GOSSIP_FORMAT", "yaml"),
])
def test_settings_reject_invalid_values(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})


def test_settings_streams_list_and_password():
    """Test stream list parsing and secret access."""
    settings = Settings(_env_file=None, STREAMS="orders, ,$ce-customer ", EVENTSTORE_PASSWORD="changeit")

    assert settings.streams_list == ["orders", "$ce-customer"]
    assert settings.eventstore_password == "changeit"
    assert "changeit" not in repr(settings.EVENTSTORE_PASSWORD)


def test_validation_config_rejects_zero_nodes():
    with pytest.raises(ValidationError):
        ValidationConfig(expected_node_count=0)


def test_validate_gossip_check_options():
    """Test gossip option validation collects every error."""
    is_valid, errors = ConfigValidator.validate_gossip_check(
        address="10.0.0.300", port=0, expected_nodes=0, epoch_threshold=0, gossip_format="yaml",
    )

    assert is_valid is False
    assert len(errors) == 4


def test_validate_stream_count_options():
    """Test stream-count validation requires streams and a username with a password."""
    is_valid, errors = ConfigValidator.validate_stream_count(
        address="localhost", port=2114, streams=[], metric_path="host.eventstore",
        max_concurrency=4, password="secret", username="",
    )

    assert is_valid is False
    assert any("No streams" in error for error in errors)
    assert any("username" in error for error in errors)


def test_validate_stream_count_options_ok():
    is_valid, errors = ConfigValidator.validate_stream_count(
        address="localhost", port=2114, streams=["orders"], metric_path="host.eventstore", max_concurrency=4,
    )

    assert is_valid is True
    assert errors == []
