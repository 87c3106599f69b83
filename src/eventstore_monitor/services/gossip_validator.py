"""
# Gossip Validator

This module is the **decision engine** of the gossip check. It maps a cluster
snapshot and a check configuration to exactly one `Verdict`.

## Check Order

Checks run in a fixed order and the first failure wins:

1. **Node count**: the snapshot lists the expected number of members. (CRITICAL)
2. **Liveness**: every member is alive. (CRITICAL)
3. **Single master**: exactly one member is `Master`. (CRITICAL)
4. **Role validity**: every member is `Master` or `Slave`. (WARNING, ends the run)
5. **Epoch lag**: the target is at most `epoch_lag_threshold` behind the master.
   Skipped when the threshold is negative. (CRITICAL)

Structural failures (missing or dead nodes) come before semantic ones, so an
operator looking at a missing node is not sent chasing an epoch lag alarm that
the missing node caused.

## Usage Example

```python
verdict = gossip_validator.validate(snapshot, ValidationConfig(expected_node_count=3))
if verdict.status != VerdictStatus.OK:
    print(verdict.message)
```
"""

from typing import Optional

from eventstore_monitor.exceptions import MalformedGossipError
from eventstore_monitor.managers.logging_manager import get_logger
from eventstore_monitor.models.gossip_models import ClusterSnapshot, ValidationConfig, Verdict

logger = get_logger(prefix="[GossipValidator]")

MALFORMED_GOSSIP_MESSAGE = "Malformed gossip file, because of: {reason}"


class GossipValidator:
    """
    Applies the ordered consistency rules to a gossip snapshot.

    The validator holds no state: `validate` returns the same verdict for the same
    inputs and never raises for snapshot content. Each `_check_*` method returns
    `None` when its rule holds and a failing verdict otherwise.
    """

    def validate(self, snapshot: ClusterSnapshot, config: ValidationConfig) -> Verdict:
        """
        Run every applicable check and return the first failure, or OK.

        Args:
            snapshot: Parsed gossip of the queried node.
            config: Expected node count and epoch lag threshold.

        Returns:
            The verdict for this snapshot.
        """
        checks = (
            self._check_node_count,
            self._check_liveness,
            self._check_single_master,
            self._check_roles,
            self._check_epoch_lag,
        )
        for check in checks:
            verdict = check(snapshot, config)
            if verdict is not None:
                logger.info(f"Check failed with {verdict.status.value}: {verdict.message}")
                return verdict

        return Verdict.ok(
            f"{snapshot.server_ip} is gossiping with {config.expected_node_count} nodes, all nodes are alive, "
            "exactly one master node was found, all other nodes are in the 'Slave' state, "
            "and all nodes are up to date."
        )

    def _check_node_count(self, snapshot: ClusterSnapshot, config: ValidationConfig) -> Optional[Verdict]:
        logger.info(f"Checking for {config.expected_node_count} nodes")
        actual = len(snapshot.members)
        if actual != config.expected_node_count:
            return Verdict.critical(f"Wrong number of nodes, was {actual} should be {config.expected_node_count}")
        return None

    def _check_liveness(self, snapshot: ClusterSnapshot, config: ValidationConfig) -> Optional[Verdict]:
        logger.info("Checking nodes for IsAlive state")
        alive = snapshot.alive_count
        if alive != len(snapshot.members):
            return Verdict.critical(f"Only {alive} alive nodes, should be {config.expected_node_count} alive")
        return None

    def _check_single_master(self, snapshot: ClusterSnapshot, config: ValidationConfig) -> Optional[Verdict]:
        logger.info("Checking for exactly 1 master")
        masters = snapshot.master_count
        if masters != 1:
            return Verdict.critical(
                f"Wrong number of node masters, there should be 1 but there were {masters} masters"
            )
        return None

    def _check_roles(self, snapshot: ClusterSnapshot, config: ValidationConfig) -> Optional[Verdict]:
        logger.info("Checking node state")
        unexpected = snapshot.unexpected_states()
        if unexpected:
            return Verdict.warning(
                f"nodes found with states: {', '.join(unexpected)} when expected Master or Slave."
            )
        return None

    def _check_epoch_lag(self, snapshot: ClusterSnapshot, config: ValidationConfig) -> Optional[Verdict]:
        if not config.epoch_check_enabled:
            logger.info("Skipping epoch position check")
            return None

        logger.info("Checking that target epoch is not lagging too far behind master")
        try:
            master_epoch = snapshot.find_master().epoch_position
            target_epoch = snapshot.find_target().epoch_position
        except MalformedGossipError as e:
            return Verdict.critical(MALFORMED_GOSSIP_MESSAGE.format(reason=e.reason))

        # A target ahead of the master gives a negative lag and passes.
        if master_epoch - target_epoch > config.epoch_lag_threshold:
            return Verdict.critical(f"Target epoch [{target_epoch}] is behind master epoch [{master_epoch}]")
        return None


# Global validator instance
gossip_validator = GossipValidator()


def validate(snapshot: ClusterSnapshot, config: ValidationConfig) -> Verdict:
    """Validate `snapshot` against `config` with the shared validator."""
    return gossip_validator.validate(snapshot, config)
