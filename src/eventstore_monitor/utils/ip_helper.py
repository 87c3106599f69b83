"""
DNS-based cluster discovery helpers.

A clustered EventStore deployment usually publishes every node under one DNS
name. From that name the checks derive:

- the cluster IPs (and so the number of nodes to expect), and
- which of this host's own IPs is the one the cluster gossips on.
"""

import ipaddress
import socket
from typing import List

from eventstore_monitor.exceptions import ClusterDiscoveryError
from eventstore_monitor.managers.logging_manager import get_logger

logger = get_logger(prefix="[IpHelper]")


def is_valid_v4_ip(address: str) -> bool:
    """Check if `address` is a dotted-quad IPv4 address."""
    try:
        ipaddress.IPv4Address(address)
    except ValueError:
        return False
    return True


def _resolve_ipv4(hostname: str) -> List[str]:
    try:
        results = socket.getaddrinfo(hostname, None, socket.AF_INET, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise ClusterDiscoveryError(f"Could not resolve {hostname}: {e}") from e

    ips: List[str] = []
    for _family, _type, _proto, _canonname, sockaddr in results:
        ip = sockaddr[0]
        if ip not in ips:
            ips.append(ip)
    return ips


def get_ips_in_cluster(cluster_dns: str) -> List[str]:
    """
    Resolve the cluster DNS name to its IPv4 addresses.

    Returns:
        Sorted, de-duplicated list of cluster IPs.

    Raises:
        ClusterDiscoveryError: If the name does not resolve.
    """
    ips = sorted(_resolve_ipv4(cluster_dns), key=ipaddress.IPv4Address)
    logger.info(f"Discovered {len(ips)} nodes via {cluster_dns}: {ips}")
    return ips


def get_local_ips() -> List[str]:
    """IPv4 addresses this host's name resolves to."""
    hostname = socket.gethostname()
    try:
        _name, _aliases, addresses = socket.gethostbyname_ex(hostname)
    except socket.gaierror as e:
        raise ClusterDiscoveryError(f"Could not resolve local hostname {hostname}: {e}") from e
    return [address for address in addresses if is_valid_v4_ip(address)]


def get_local_ip_that_also_on_cluster(cluster_dns: str) -> str:
    """
    Find the local IP that is also published under the cluster DNS name.

    Raises:
        ClusterDiscoveryError: If no local address is a cluster member.
    """
    cluster_ips = get_ips_in_cluster(cluster_dns)
    local_ips = get_local_ips()

    for ip in local_ips:
        if ip in cluster_ips:
            return ip

    raise ClusterDiscoveryError(
        f"None of the local IPs {local_ips} are in the cluster {cluster_dns} {cluster_ips}"
    )
