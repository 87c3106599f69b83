"""
Tests for gossip document parsing, plus end-to-end parse and validate scenarios.
"""
import json

import pytest

from eventstore_monitor.exceptions import GossipParseError, MalformedGossipError
from eventstore_monitor.models.gossip_models import ValidationConfig, VerdictStatus
from eventstore_monitor.services.gossip_parser import parse_gossip
from eventstore_monitor.services.gossip_validator import validate


def gossip_xml(members, server_ip="10.0.0.1", namespace=None):
    xmlns = f' xmlns="{namespace}"' if namespace else ""
    rows = "".join(
        "<MemberInfoDto>"
        f"<InstanceId>{i}</InstanceId>"
        f"<InternalHttpIp>{ip}</InternalHttpIp>"
        f"<State>{state}</State>"
        f"<IsAlive>{alive}</IsAlive>"
        f"<EpochPosition>{epoch}</EpochPosition>"
        "</MemberInfoDto>"
        for i, (ip, state, alive, epoch) in enumerate(members)
    )
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f"<ClusterInfoDto{xmlns}><Members>{rows}</Members><ServerIp>{server_ip}</ServerIp>"
        "<ServerPort>2113</ServerPort></ClusterInfoDto>"
    ).encode("utf-8")


def gossip_json(members, server_ip="10.0.0.1"):
    return json.dumps({
        "members": [
            {"instanceId": str(i), "internalHttpIp": ip, "state": state, "isAlive": alive, "epochPosition": epoch}
            for i, (ip, state, alive, epoch) in enumerate(members)
        ],
        "serverIp": server_ip,
        "serverPort": 2113,
    }).encode("utf-8")


HEALTHY = [
    ("10.0.0.1", "Master", "true", 100),
    ("10.0.0.2", "Slave", "true", 100),
    ("10.0.0.3", "Slave", "true", 100),
    ("10.0.0.4", "Slave", "true", 100),
]


def test_parse_xml():
    """Test the four member fields and the server IP are read from XML."""
    snapshot = parse_gossip(gossip_xml(HEALTHY))

    assert snapshot.server_ip == "10.0.0.1"
    assert [m.internal_http_ip for m in snapshot.members] == ["10.0.0.1", "10.0.0.2", "10.0.0.3", "10.0.0.4"]
    assert snapshot.members[0].state == "Master"
    assert snapshot.members[0].is_alive is True
    assert snapshot.members[0].epoch_position == 100


def test_parse_json_matches_xml():
    """Test both formats produce the same snapshot."""
    json_members = [(ip, state, alive == "true", epoch) for ip, state, alive, epoch in HEALTHY]

    assert parse_gossip(gossip_json(json_members)) == parse_gossip(gossip_xml(HEALTHY))


def test_parse_namespaced_xml():
    """Test elements are matched by local name."""
    raw = gossip_xml(HEALTHY, namespace="http://schemas.datacontract.org/2004/07/EventStore")

    snapshot = parse_gossip(raw)

    assert len(snapshot.members) == 4


def test_parse_accepts_text():
    """Test a str document with leading whitespace."""
    snapshot = parse_gossip("\n  " + gossip_xml(HEALTHY).decode("utf-8"))

    assert snapshot.server_ip == "10.0.0.1"


def test_alive_flag_text():
    """Test IsAlive text handling."""
    snapshot = parse_gossip(gossip_xml([
        ("10.0.0.1", "Master", "True", 1),
        ("10.0.0.2", "Slave", "false", 1),
        ("10.0.0.3", "Slave", "", 1),
    ]))

    assert [m.is_alive for m in snapshot.members] == [True, False, False]


def test_unknown_state_is_kept():
    """Test roles outside Master/Slave parse as-is."""
    snapshot = parse_gossip(gossip_xml([("10.0.0.1", "PreReplica", "true", 5)]))

    assert snapshot.members[0].state == "PreReplica"


@pytest.mark.parametrize("raw", [
    b"<ClusterInfoDto><Members>",
    b'{"members": [',
    b"not a gossip document",
    b"\xff\xfe\x00",
    b"",
])
def test_undecodable_document(raw):
    """Test broken documents raise a parse error."""
    with pytest.raises(GossipParseError):
        parse_gossip(raw)


def test_wrong_root_element():
    """Test an XML document that is not cluster info."""
    with pytest.raises(GossipParseError, match="ClusterInfoDto"):
        parse_gossip(b"<Error><Message>nope</Message></Error>")


def test_no_members():
    """Test a document without members."""
    with pytest.raises(GossipParseError, match="no members"):
        parse_gossip(gossip_xml([]))


def test_missing_server_ip():
    """Test a JSON document without serverIp."""
    with pytest.raises(GossipParseError, match="ServerIp"):
        parse_gossip(b'{"members": [{"internalHttpIp": "10.0.0.1", "state": "Master", '
                     b'"isAlive": true, "epochPosition": 1}]}')


def test_non_integer_epoch():
    """Test an epoch position that is not a number."""
    with pytest.raises(GossipParseError):
        parse_gossip(gossip_xml([("10.0.0.1", "Master", "true", "soon")]))


def test_member_missing_field():
    """Test a member without a State element."""
    raw = (
        b"<ClusterInfoDto><Members><MemberInfoDto><InternalHttpIp>10.0.0.1</InternalHttpIp>"
        b"<IsAlive>true</IsAlive><EpochPosition>1</EpochPosition></MemberInfoDto></Members>"
        b"<ServerIp>10.0.0.1</ServerIp></ClusterInfoDto>"
    )

    with pytest.raises(GossipParseError):
        parse_gossip(raw)


def test_find_master_requires_exactly_one():
    """Test the find-or-error helper on a masterless snapshot."""
    snapshot = parse_gossip(gossip_xml([("10.0.0.1", "Slave", "true", 1)]))

    with pytest.raises(MalformedGossipError) as exc_info:
        snapshot.find_master()

    assert exc_info.value.match_count == 0


def test_end_to_end_healthy_cluster():
    """Test four live nodes, target is the master, threshold 0."""
    verdict = validate(parse_gossip(gossip_xml(HEALTHY)), ValidationConfig(expected_node_count=4))

    assert verdict.status == VerdictStatus.OK


def test_end_to_end_dead_slave():
    """Test one slave reported dead."""
    members = list(HEALTHY)
    members[3] = ("10.0.0.4", "Slave", "false", 100)

    verdict = validate(parse_gossip(gossip_xml(members)), ValidationConfig(expected_node_count=4))

    assert verdict.status == VerdictStatus.CRITICAL
    assert "3 alive" in verdict.message
    assert "should be 4" in verdict.message


def test_end_to_end_two_masters():
    """Test two members reporting Master."""
    members = list(HEALTHY)
    members[1] = ("10.0.0.2", "Master", "true", 100)

    verdict = validate(parse_gossip(gossip_xml(members)), ValidationConfig(expected_node_count=4))

    assert verdict.status == VerdictStatus.CRITICAL
    assert "2 masters" in verdict.message
