import logging

import pytest
from tx_engine import Script

from zkbisect.collaborators import broadcast_with_retry, sign_template
from zkbisect.errors import ExternalIOFailure
from zkbisect.graph.templates import Branch, TemplateInput, build_template

KEY_A = bytes([2]) + bytes([10]) * 32
KEY_B = bytes([3]) + bytes([11]) * 32


def template():
    spent = TemplateInput(
        predecessor="external",
        output_index=0,
        amount=5_000,
        locking_script=Script.parse_string("OP_1"),
        branch=Branch.EXTERNAL,
        signers=(KEY_A, KEY_B),
        external_txid="66" * 32,
    )
    return build_template("funding", [spent], ["66" * 32], [(None, Script.parse_string("OP_1"))], fee=500)


class FakeSigner:
    def __init__(self, public_key: bytes):
        self.public_key = public_key
        self.messages = []

    def sign(self, message: bytes) -> bytes:
        self.messages.append(message)
        return self.public_key[:2] + message


class FlakyBroadcaster:
    """Fails `n_failures` times, then accepts every transaction."""

    def __init__(self, n_failures: int):
        self.n_failures = n_failures
        self.attempts = 0

    def broadcast(self, tx) -> str:
        self.attempts += 1
        if self.attempts <= self.n_failures:
            msg = f"Connection refused (attempt {self.attempts})"
            raise ExternalIOFailure(msg)
        return tx.id()


def test_sign_template():
    unsigned = template()
    signer = FakeSigner(KEY_A)

    signatures = sign_template(unsigned, [signer, FakeSigner(bytes(33))])

    assert signatures == {(0, KEY_A): KEY_A[:2] + unsigned.sighash(0)}
    assert signer.messages == [unsigned.sighash(0)]


@pytest.mark.parametrize(
    ("n_failures", "expected_delays"),
    [
        (0, []),
        (1, [1.0]),
        (4, [1.0, 2.0, 4.0, 8.0]),
    ],
)
def test_broadcast_with_retry(n_failures, expected_delays):
    tx = template().tx
    broadcaster = FlakyBroadcaster(n_failures)
    delays = []

    txid = broadcast_with_retry(broadcaster, tx, sleep=delays.append)

    assert txid == tx.id()
    assert broadcaster.attempts == n_failures + 1
    assert delays == expected_delays


def test_broadcast_delays_are_capped():
    delays = []

    broadcast_with_retry(FlakyBroadcaster(5), template().tx, max_attempts=6, max_delay=5.0, sleep=delays.append)

    assert delays == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_broadcast_gives_up(caplog):
    broadcaster = FlakyBroadcaster(10)
    delays = []

    with caplog.at_level(logging.WARNING), pytest.raises(ExternalIOFailure, match=r"attempt 3"):
        broadcast_with_retry(broadcaster, template().tx, max_attempts=3, sleep=delays.append)

    assert broadcaster.attempts == 3
    assert delays == [1.0, 2.0]
    assert "failed after 3 attempts" in caplog.text


def test_broadcast_requires_an_attempt():
    with pytest.raises(ValueError, match=r"At least one attempt is required: max_attempts: 0"):
        broadcast_with_retry(FlakyBroadcaster(0), template().tx, max_attempts=0)
