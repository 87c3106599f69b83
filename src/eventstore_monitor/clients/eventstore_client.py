"""
EventStore HTTP client.

Thin async wrapper over httpx for the two endpoints the checks read:

- `GET /gossip?format=xml|json` on the gossip port.
- `GET /streams/<name>` on the HTTP port, as JSON, optionally with basic auth.
"""

from typing import Any, Dict, Optional, Union
from urllib.parse import quote

import httpx

from eventstore_monitor.exceptions import GossipFetchError
from eventstore_monitor.managers.logging_manager import get_logger
from eventstore_monitor.models.stream_models import StreamNotFound

logger = get_logger(prefix="[EventStoreClient]")


class EventStoreClient:
    """Client for one EventStore node."""

    def __init__(
        self,
        address: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            address: Node hostname or IP
            port: Port to talk to (gossip port for the gossip check, HTTP port for streams)
            username: Basic auth user, only used when `password` is set
            password: Basic auth password; `None` disables authentication
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.address = address
        self.port = port
        self.base_url = f"http://{address}:{port}"
        self.auth = (username or "", password) if password is not None else None
        self.timeout = timeout
        self._transport = transport

    def gossip_url(self, gossip_format: str = "xml") -> str:
        return f"{self.base_url}/gossip?format={gossip_format}"

    def stream_url(self, stream: str) -> str:
        return f"{self.base_url}/streams/{quote(stream, safe='$')}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, auth=self.auth, transport=self._transport)

    async def fetch_gossip(self, gossip_format: str = "xml") -> bytes:
        """
        Fetch the raw gossip document.

        Returns:
            The response body, undecoded.

        Raises:
            GossipFetchError: On any transport failure or non-2xx status.
        """
        url = self.gossip_url(gossip_format)
        logger.info(f"checking gossip at {self.address}:{self.port}")

        try:
            async with self._client() as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch gossip from {url}: {e}")
            raise GossipFetchError(url, e) from e

    async def fetch_stream_status(self, stream: str) -> Union[Dict[str, Any], StreamNotFound]:
        """
        Fetch the JSON status of a stream.

        Args:
            stream: Stream name, e.g. `orders` or `$ce-order`; percent-encoded as one path segment

        Returns:
            The decoded JSON document, or `StreamNotFound` if the node answers 404.

        Raises:
            httpx.HTTPStatusError: On any other non-2xx status.
            httpx.HTTPError: On transport failures.
        """
        url = self.stream_url(stream)
        async with self._client() as client:
            response = await client.get(url, headers={"Accept": "application/json"})

        if response.status_code == 404:
            logger.info(f"Stream {stream} not found, reporting it as empty")
            return StreamNotFound(stream_name=stream)

        response.raise_for_status()
        return response.json()
