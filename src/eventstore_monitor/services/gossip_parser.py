"""
# Gossip Parser

Turns a raw `/gossip` document into a `ClusterSnapshot`.

EventStore serves the same content in two shapes:

XML (`/gossip?format=xml`):

```xml
<ClusterInfoDto>
  <Members>
    <MemberInfoDto>
      <InternalHttpIp>10.0.0.1</InternalHttpIp>
      <State>Master</State>
      <IsAlive>true</IsAlive>
      <EpochPosition>100</EpochPosition>
      ...
    </MemberInfoDto>
  </Members>
  <ServerIp>10.0.0.1</ServerIp>
</ClusterInfoDto>
```

JSON (`/gossip?format=json`):

```json
{"members": [{"internalHttpIp": "10.0.0.1", "state": "Master", "isAlive": true, "epochPosition": 100}],
 "serverIp": "10.0.0.1"}
```

The format is sniffed from the first significant character, so callers never
have to track which one they asked for. Parsing is a pure transform.
"""

import json
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from eventstore_monitor.exceptions import GossipParseError
from eventstore_monitor.managers.logging_manager import get_logger
from eventstore_monitor.models.gossip_models import ClusterSnapshot

logger = get_logger(prefix="[GossipParser]")

# XML element name -> MemberInfo alias
XML_MEMBER_FIELDS = {
    "InternalHttpIp": "internalHttpIp",
    "State": "state",
    "IsAlive": "isAlive",
    "EpochPosition": "epochPosition",
}


def _local_name(tag: str) -> str:
    """Strip an ElementTree `{namespace}` prefix from a tag."""
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _children(element: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in element if _local_name(child.tag) == name]


def _decode(raw: Union[bytes, str]) -> str:
    if isinstance(raw, str):
        text = raw
    else:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise GossipParseError(f"gossip document is not valid UTF-8: {e}") from e
    return text.lstrip("\ufeff").strip()


def _parse_xml(text: str) -> Dict[str, Any]:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise GossipParseError(f"gossip document is not valid XML: {e}") from e

    if _local_name(root.tag) != "ClusterInfoDto":
        raise GossipParseError(f"unexpected root element {_local_name(root.tag)}, expected ClusterInfoDto")

    server_ip = _child(root, "ServerIp")
    members_element = _child(root, "Members")

    members = []
    if members_element is not None:
        for member_element in _children(members_element, "MemberInfoDto"):
            member: Dict[str, Any] = {}
            for element_name, alias in XML_MEMBER_FIELDS.items():
                field_element = _child(member_element, element_name)
                if field_element is not None:
                    member[alias] = (field_element.text or "").strip()
            members.append(member)

    return {
        "serverIp": (server_ip.text or "").strip() if server_ip is not None else None,
        "members": members,
    }


def _parse_json(text: str) -> Dict[str, Any]:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise GossipParseError(f"gossip document is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise GossipParseError("gossip document must be a JSON object")

    members = document.get("members")
    if members is not None and not isinstance(members, list):
        raise GossipParseError("gossip 'members' must be a list")

    return {"serverIp": document.get("serverIp"), "members": members or []}


def parse_gossip(raw: Union[bytes, str]) -> ClusterSnapshot:
    """
    Parse a gossip document into a typed cluster snapshot.

    Args:
        raw: The document body as fetched, XML or JSON.

    Returns:
        ClusterSnapshot with members in document order.

    Raises:
        GossipParseError: If the document cannot be decoded, has no server IP,
            has no members, or a member is missing a field or has a non-integer epoch.
    """
    text = _decode(raw)
    if text.startswith("<"):
        document = _parse_xml(text)
    elif text.startswith("{"):
        document = _parse_json(text)
    else:
        raise GossipParseError("gossip document is neither XML nor JSON")

    if not document["serverIp"]:
        raise GossipParseError("gossip document has no ServerIp")
    if not document["members"]:
        raise GossipParseError("gossip document has no members")

    try:
        snapshot = ClusterSnapshot.model_validate(document)
    except ValidationError as e:
        raise GossipParseError(f"invalid member data: {e.error_count()} error(s), first: {e.errors()[0]['msg']}") from e

    logger.debug(f"Parsed gossip from {snapshot.server_ip} with {len(snapshot.members)} members")
    return snapshot
