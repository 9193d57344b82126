import pytest

from tests.dispute.util import commit_event, make_setup
from zkbisect.dispute.events import Concede
from zkbisect.dispute.registry import DisputeRegistry
from zkbisect.errors import ProtocolViolation


def test_one_dispute_per_instance():
    registry = DisputeRegistry()
    setup, trace = make_setup(instance_id="a")
    other_setup, _ = make_setup(instance_id="b")

    log = registry.open(setup)
    registry.open(other_setup)

    assert "a" in registry
    assert "c" not in registry
    assert registry.get("a") is log
    assert registry.active() == ["a", "b"]
    with pytest.raises(ProtocolViolation, match=r"Instance a already has a dispute \(active\)"):
        registry.open(setup)

    log.append(commit_event(trace))
    log.append(Concede(height=1))

    assert registry.active() == ["b"]
    with pytest.raises(ProtocolViolation, match=r"Instance a already has a dispute \(resolved\)"):
        registry.open(setup)


def test_unknown_instance():
    with pytest.raises(KeyError, match=r"Unknown instance: a"):
        DisputeRegistry().get("a")
