"""Bookkeeping of the disputes of execution instances."""

import logging

from zkbisect.dispute.engine import EventLog
from zkbisect.dispute.state import DisputeSetup
from zkbisect.errors import ProtocolViolation

logger = logging.getLogger(__name__)


class DisputeRegistry:
    """Hold at most one dispute per execution instance.

    A second dispute cannot be opened for an instance, neither while its dispute is running nor after it is
    resolved: the resolution settles the funds of the instance.
    """

    def __init__(self):
        self._logs = {}

    def __contains__(self, instance_id: str):
        return instance_id in self._logs

    def open(self, setup: DisputeSetup) -> EventLog:
        """Open the dispute of `setup.instance_id`.

        Raises:
            ProtocolViolation: If the instance already has a dispute.
        """
        existing = self._logs.get(setup.instance_id)
        if existing is not None:
            status = "resolved" if existing.state.is_resolved else "active"
            msg = f"Instance {setup.instance_id} already has a dispute ({status})"
            raise ProtocolViolation(msg)
        log = EventLog(setup)
        self._logs[setup.instance_id] = log
        logger.info("Opened dispute for instance %s", setup.instance_id)
        return log

    def get(self, instance_id: str) -> EventLog:
        if instance_id not in self._logs:
            msg = f"Unknown instance: {instance_id}"
            raise KeyError(msg)
        return self._logs[instance_id]

    def active(self) -> list[str]:
        """Return the ids of the instances whose dispute is not resolved."""
        return [instance_id for instance_id, log in self._logs.items() if not log.state.is_resolved]
