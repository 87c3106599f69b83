"""
# Gossip Models

This module defines the **typed cluster snapshot** that the gossip check works on,
the check configuration, and the verdict the check produces.

## Domain Model Overview

An EventStore cluster gossips its membership. Every node serves `/gossip`, a
document listing each member with its role, liveness, and replication progress,
plus the IP of the node that answered.

- **MemberInfo**: One member as seen by the queried node.
- **ClusterSnapshot**: All members plus the `server_ip` of the queried ("target") node.
- **ValidationConfig**: What the check expects (node count, epoch lag threshold).
- **Verdict**: The outcome, a status and a diagnostic message.

## Member Roles

EventStore reports many states (`Master`, `Slave`, `Clone`, `CatchingUp`,
`PreReplica`, `Unknown`, ...). The check only distinguishes `Master`, `Slave`
and everything else, so `state` stays an open-ended string.

## Usage Example

```python
snapshot = ClusterSnapshot(
    server_ip="10.0.0.1",
    members=[
        MemberInfo(internal_http_ip="10.0.0.1", state="Master", is_alive=True, epoch_position=100),
        MemberInfo(internal_http_ip="10.0.0.2", state="Slave", is_alive=True, epoch_position=100),
    ],
)
master = snapshot.find_master()
```
"""

from enum import Enum
from typing import Callable, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eventstore_monitor.exceptions import MalformedGossipError

MASTER_STATE = "Master"
SLAVE_STATE = "Slave"
EXPECTED_STATES = (MASTER_STATE, SLAVE_STATE)


class VerdictStatus(str, Enum):
    """Enumeration of check outcomes.

    Values follow the Sensu/Nagios plugin convention; `exit_code` is the process
    exit status a check runner expects for each.

    Attributes:
        OK: Every applicable check passed.
        WARNING: The cluster works but something is unusual (e.g. a node still catching up).
        CRITICAL: A consistency invariant is broken or the node is unreachable.
        UNKNOWN: The check itself failed unexpectedly.
    """
    OK = "OK"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    UNKNOWN = "UNKNOWN"

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES[self]


_EXIT_CODES = {
    VerdictStatus.OK: 0,
    VerdictStatus.WARNING: 1,
    VerdictStatus.CRITICAL: 2,
    VerdictStatus.UNKNOWN: 3,
}


class Verdict(BaseModel):
    """Result of one gossip check invocation.

    Attributes:
        status (VerdictStatus): Severity of the outcome.
        message (str): Human-readable diagnostic.
    """
    model_config = ConfigDict(frozen=True)

    status: VerdictStatus = Field(..., description="Check outcome")
    message: str = Field(..., description="Diagnostic message")

    @classmethod
    def ok(cls, message: str) -> "Verdict":
        return cls(status=VerdictStatus.OK, message=message)

    @classmethod
    def warning(cls, message: str) -> "Verdict":
        return cls(status=VerdictStatus.WARNING, message=message)

    @classmethod
    def critical(cls, message: str) -> "Verdict":
        return cls(status=VerdictStatus.CRITICAL, message=message)

    @classmethod
    def unknown(cls, message: str) -> "Verdict":
        return cls(status=VerdictStatus.UNKNOWN, message=message)


class MemberInfo(BaseModel):
    """Model representing one cluster member from the gossip document.

    Field aliases match the camelCase keys of the JSON gossip format; the XML
    parser maps the PascalCase element names onto the same aliases.

    Attributes:
        internal_http_ip (str): Internal HTTP IP, used to correlate a member with `server_ip`.
        state (str): Role reported by the member.
        is_alive (bool): Liveness flag as seen by the queried node.
        epoch_position (int): Replication progress of the member.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    internal_http_ip: str = Field(..., alias="internalHttpIp", description="Internal HTTP IP")
    state: str = Field(..., alias="state", description="Member role")
    is_alive: bool = Field(..., alias="isAlive", description="Liveness flag")
    epoch_position: int = Field(..., alias="epochPosition", description="Epoch position")

    @field_validator("is_alive", mode="before")
    @classmethod
    def parse_alive_flag(cls, v):
        """Treat the text `true` (any case) as alive and any other text as dead."""
        if isinstance(v, str):
            return v.strip().lower() == "true"
        return v

    @field_validator("epoch_position", mode="before")
    @classmethod
    def parse_epoch_position(cls, v):
        if isinstance(v, bool):
            raise ValueError("Epoch position must be an integer")
        if isinstance(v, str):
            return int(v.strip())
        return v

    @property
    def is_master(self) -> bool:
        """Check if the member reports the Master role."""
        return self.state == MASTER_STATE

    @property
    def has_expected_state(self) -> bool:
        """Check if the member is either Master or Slave."""
        return self.state in EXPECTED_STATES


class ClusterSnapshot(BaseModel):
    """Model representing one node's view of the cluster at fetch time.

    Attributes:
        server_ip (str): IP of the node that served the gossip document.
        members (List[MemberInfo]): Members in document order.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    server_ip: str = Field(..., alias="serverIp", description="IP of the queried node")
    members: List[MemberInfo] = Field(..., min_length=1, description="Gossiping members")

    @property
    def alive_count(self) -> int:
        return sum(1 for member in self.members if member.is_alive)

    @property
    def master_count(self) -> int:
        return sum(1 for member in self.members if member.is_master)

    def unexpected_states(self) -> List[str]:
        """Distinct states other than Master/Slave, in order of first appearance."""
        states: List[str] = []
        for member in self.members:
            if not member.has_expected_state and member.state not in states:
                states.append(member.state)
        return states

    def find_one(self, predicate: Callable[[MemberInfo], bool], description: str) -> MemberInfo:
        """
        Return the single member matching `predicate`.

        Args:
            predicate: Member filter.
            description: Query description used in the error, e.g. `"State == Master"`.

        Raises:
            MalformedGossipError: If zero or several members match.
        """
        matches = [member for member in self.members if predicate(member)]
        if len(matches) != 1:
            raise MalformedGossipError(
                f"number of nodes matching {description} == {len(matches)}",
                match_count=len(matches),
            )
        return matches[0]

    def find_master(self) -> MemberInfo:
        return self.find_one(lambda member: member.is_master, f"State == {MASTER_STATE}")

    def find_target(self) -> MemberInfo:
        """Return the member that served this snapshot (matched on `internal_http_ip`)."""
        return self.find_one(lambda member: member.internal_http_ip == self.server_ip, "InternalHttpIp")


class ValidationConfig(BaseModel):
    """Configuration for one gossip check.

    Attributes:
        expected_node_count (int): Number of nodes that should be gossiping, including the target.
        epoch_lag_threshold (int): Maximum allowed `master_epoch - target_epoch`; negative disables the check.
    """
    model_config = ConfigDict(frozen=True)

    expected_node_count: int = Field(default=4, ge=1, description="Expected cluster size")
    epoch_lag_threshold: int = Field(default=0, description="Max epoch lag, -1 to disable")

    @property
    def epoch_check_enabled(self) -> bool:
        return self.epoch_lag_threshold >= 0
