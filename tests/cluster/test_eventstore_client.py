"""
Tests for the EventStore HTTP client and the gossip check orchestration.
"""
import httpx
import pytest

from eventstore_monitor.clients.eventstore_client import EventStoreClient
from eventstore_monitor.exceptions import GossipFetchError
from eventstore_monitor.models.gossip_models import ValidationConfig, VerdictStatus
from eventstore_monitor.models.stream_models import StreamNotFound
from eventstore_monitor.services.gossip_check_service import GossipCheckService

GOSSIP_XML = (
    b"<ClusterInfoDto><Members>"
    b"<MemberInfoDto><InternalHttpIp>10.0.0.1</InternalHttpIp><State>Master</State>"
    b"<IsAlive>true</IsAlive><EpochPosition>100</EpochPosition></MemberInfoDto>"
    b"<MemberInfoDto><InternalHttpIp>10.0.0.2</InternalHttpIp><State>Slave</State>"
    b"<IsAlive>true</IsAlive><EpochPosition>100</EpochPosition></MemberInfoDto>"
    b"</Members><ServerIp>10.0.0.1</ServerIp></ClusterInfoDto>"
)


def client_for(handler, **kwargs):
    return EventStoreClient("10.0.0.1", 2113, transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_fetch_gossip_requests_format():
    """Test the gossip URL and raw body."""
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, content=GOSSIP_XML)

    body = await client_for(handler).fetch_gossip("xml")

    assert body == GOSSIP_XML
    assert seen == ["http://10.0.0.1:2113/gossip?format=xml"]


@pytest.mark.asyncio
async def test_fetch_gossip_connection_error():
    """Test transport failures become GossipFetchError."""
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GossipFetchError) as exc_info:
        await client_for(handler).fetch_gossip()

    assert exc_info.value.url == "http://10.0.0.1:2113/gossip?format=xml"


@pytest.mark.asyncio
async def test_fetch_gossip_error_status():
    """Test a 503 from the gossip endpoint is a fetch failure."""
    with pytest.raises(GossipFetchError):
        await client_for(lambda request: httpx.Response(503)).fetch_gossip()


@pytest.mark.asyncio
async def test_fetch_stream_status_sends_json_accept_and_auth():
    """Test stream requests ask for JSON and use basic auth when a password is set."""
    seen = {}

    def handler(request):
        seen["accept"] = request.headers.get("Accept")
        seen["authorization"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"eTag": "3;abc"})

    document = await client_for(handler, username="admin", password="changeit").fetch_stream_status("orders")

    assert document == {"eTag": "3;abc"}
    assert seen["accept"] == "application/json"
    assert seen["authorization"].startswith("Basic ")


@pytest.mark.asyncio
async def test_fetch_stream_status_without_password_sends_no_auth():
    """Test no Authorization header without a password."""
    seen = {}

    def handler(request):
        seen["authorization"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"eTag": "3;abc"})

    await client_for(handler, username="admin").fetch_stream_status("orders")

    assert seen["authorization"] is None


@pytest.mark.asyncio
async def test_fetch_stream_status_not_found():
    """Test a 404 is the not-found signal."""
    result = await client_for(lambda request: httpx.Response(404)).fetch_stream_status("missing")

    assert result == StreamNotFound(stream_name="missing")


@pytest.mark.asyncio
async def test_fetch_stream_status_server_error_propagates():
    """Test other error statuses raise."""
    with pytest.raises(httpx.HTTPStatusError):
        await client_for(lambda request: httpx.Response(401)).fetch_stream_status("orders")


@pytest.mark.asyncio
async def test_gossip_check_healthy():
    """Test fetch, parse and validate of a healthy two node cluster."""
    service = GossipCheckService(client_for(lambda request: httpx.Response(200, content=GOSSIP_XML)))

    verdict = await service.run(ValidationConfig(expected_node_count=2))

    assert verdict.status == VerdictStatus.OK


@pytest.mark.asyncio
async def test_gossip_check_unreachable_node_is_critical():
    """Test a connection failure is never OK."""
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    verdict = await GossipCheckService(client_for(handler)).run(ValidationConfig(expected_node_count=2))

    assert verdict.status == VerdictStatus.CRITICAL
    assert verdict.message.startswith("Could not connect to http://10.0.0.1:2113/gossip?format=xml")


@pytest.mark.asyncio
async def test_gossip_check_malformed_document_is_critical():
    """Test an unparseable document."""
    service = GossipCheckService(client_for(lambda request: httpx.Response(200, content=b"<html>oops")))

    verdict = await service.run(ValidationConfig(expected_node_count=2))

    assert verdict.status == VerdictStatus.CRITICAL
    assert verdict.message.startswith("Malformed gossip file, because of:")


def test_stream_url_encodes_stream_name():
    """Test reserved characters stay inside the stream path segment."""
    client = EventStoreClient("10.0.0.1", 2114)

    assert client.stream_url("$ce-customer") == "http://10.0.0.1:2114/streams/$ce-customer"
    assert client.stream_url("a/b#c?d") == "http://10.0.0.1:2114/streams/a%2Fb%23c%3Fd"


@pytest.mark.asyncio
async def test_fetch_stream_status_requests_single_stream_segment():
    """Test a stream name with '/', '#' and '?' is requested as one stream."""
    seen = {}

    def handler(request):
        seen["raw_path"] = request.url.raw_path
        seen["query"] = request.url.query
        return httpx.Response(200, json={"eTag": "0;abc"})

    await client_for(handler).fetch_stream_status("a/b#c?d")

    assert seen["raw_path"] == b"/streams/a%2Fb%23c%3Fd"
    assert seen["query"] == b""
