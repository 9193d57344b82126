import math

import pytest

from tests.circuit.util import UNBOUNDED
from tests.dispute.util import StubbornChallenger, commit_event, make_setup, nine_chunks_setup, zero_inverse_setup
from zkbisect.circuit.builder import CircuitBuilder
from zkbisect.commitment.commitment import BoundaryState
from zkbisect.commitment.trace import ExecutionTrace
from zkbisect.compiler.packer import Packer
from zkbisect.dispute.engine import EventLog, initial_state, replay, required_boundaries
from zkbisect.dispute.events import Challenge, Commit, Concede, Narrow, Reveal, Role, Tick
from zkbisect.dispute.participant import Participant, play
from zkbisect.dispute.state import DisputeSetup, Phase, Reason
from zkbisect.errors import ProtocolViolation
from zkbisect.parameters import MidpointRule


def reveal_event(setup, trace, state, height):
    boundaries = required_boundaries(setup, state)
    return Reveal(height=height, states=tuple(trace.state(boundary) for boundary in boundaries))


def state_at_timeout(log, state):
    """Return the state of a copy of `log` once the deadline of `state` is passed."""
    copy = EventLog(log.setup)
    for event in log.events:
        copy.append(event)
    return copy.append(Tick(height=state.deadline + 1))


def test_honest_prover_is_not_challenged():
    setup, trace = make_setup()
    log = EventLog(setup)

    state = play(log, Participant(Role.PROVER, setup, trace), Participant(Role.CHALLENGER, setup, trace))

    assert state.winner is Role.PROVER
    assert state.reason is Reason.TIMEOUT
    assert state.rounds == 0
    assert [type(event) for event in log.events] == [Commit, Tick]


@pytest.mark.parametrize("midpoint_rule", [MidpointRule.FLOOR, MidpointRule.CEIL])
@pytest.mark.parametrize("faulty_chunk", range(9))
def test_fault_is_located(midpoint_rule, faulty_chunk):
    setup, trace = nine_chunks_setup(midpoint_rule)
    output = setup.program.circuit.operations[faulty_chunk].output
    honest_value = trace.state(faulty_chunk + 1).as_dict()[output]
    faulty = trace.with_fault(faulty_chunk, output, (honest_value + 1) % 19)
    log = EventLog(setup)

    state = play(log, Participant(Role.PROVER, setup, faulty), Participant(Role.CHALLENGER, setup, trace))

    assert state.winner is Role.CHALLENGER
    assert state.reason is Reason.CHUNK_EXECUTION
    assert state.disputed_chunk == faulty_chunk
    assert state.bracket() == (faulty_chunk, faulty_chunk + 1)
    assert state.rounds <= math.ceil(math.log2(setup.n_chunks))


def test_three_mul_bisection():
    setup, trace = make_setup()
    faulty = trace.with_fault(1, 3, 8)
    log = EventLog(setup)

    state = play(log, Participant(Role.PROVER, setup, faulty), Participant(Role.CHALLENGER, setup, trace))

    narrows = [event.agree for event in log.events if isinstance(event, Narrow)]
    reveals = [event.boundaries() for event in log.events if isinstance(event, Reveal)]
    assert reveals == [(0, 1, 3), (2,)]
    assert narrows == [True, False]
    assert state.winner is Role.CHALLENGER
    assert state.disputed_chunk == 1
    assert state.rounds == 2


@pytest.mark.parametrize("midpoint_rule", [MidpointRule.FLOOR, MidpointRule.CEIL])
def test_false_challenge(midpoint_rule):
    setup, trace = nine_chunks_setup(midpoint_rule)
    log = EventLog(setup)

    state = play(log, Participant(Role.PROVER, setup, trace), StubbornChallenger(setup))

    assert state.winner is Role.PROVER
    assert state.reason is Reason.CHUNK_EXECUTION
    assert state.disputed_chunk == 0


def test_challenger_concedes_without_divergence():
    setup, trace = make_setup()
    log = EventLog(setup)
    log.append(commit_event(trace))
    log.append(Challenge(height=1))
    log.append(reveal_event(setup, trace, log.state, 2))

    event = Participant(Role.CHALLENGER, setup, trace).respond(log.state, 3)

    assert isinstance(event, Concede)
    state = log.append(event)
    assert state.winner is Role.PROVER
    assert state.reason is Reason.CONCESSION


def test_challenged_prover_times_out():
    setup, trace = make_setup()
    log = EventLog(setup)
    log.append(commit_event(trace))
    state = log.append(Challenge(height=10))
    deadline = 10 + setup.parameters.response_window
    assert state.deadline == deadline

    state = log.append(Tick(height=deadline))
    assert state.phase is Phase.CHALLENGED

    state = log.append(Tick(height=deadline + 1))
    assert state.winner is Role.CHALLENGER
    assert state.reason is Reason.TIMEOUT


def test_late_reveal_loses():
    setup, trace = make_setup()
    log = EventLog(setup)
    log.append(commit_event(trace))
    log.append(Challenge(height=10))

    state = log.append(reveal_event(setup, trace, log.state, 11 + setup.parameters.response_window))

    assert state.winner is Role.CHALLENGER
    assert state.reason is Reason.TIMEOUT
    assert state.revealed == {}


def test_bisecting_timeouts():
    setup, trace = make_setup()
    log = EventLog(setup)
    log.append(commit_event(trace))
    log.append(Challenge(height=1))
    state = log.append(reveal_event(setup, trace, log.state, 2))
    assert state.phase is Phase.BISECTING
    assert state.to_move is Role.CHALLENGER
    assert state_at_timeout(log, state).winner is Role.PROVER

    state = log.append(Narrow(height=3, agree=True))
    assert state.bracket() == (1, 3)
    assert state.to_move is Role.PROVER
    assert state_at_timeout(log, state).winner is Role.CHALLENGER


def test_reveal_not_opening_the_commitment_loses():
    setup, trace = make_setup()
    faulty = trace.with_fault(0, 2, 1)
    log = EventLog(setup)
    log.append(commit_event(trace))
    log.append(Challenge(height=1))

    state = log.append(reveal_event(setup, faulty, log.state, 2))

    assert state.winner is Role.CHALLENGER
    assert state.reason is Reason.COMMITMENT_MISMATCH


def test_prover_with_other_public_inputs_loses():
    setup, trace = make_setup()
    # The prover runs the circuit on x = 4 instead of the agreed x = 3
    other = ExecutionTrace.from_inputs(setup.program, {0: 4, 1: 5})
    log = EventLog(setup)

    state = play(log, Participant(Role.PROVER, setup, other), Participant(Role.CHALLENGER, setup, trace))

    assert state.winner is Role.CHALLENGER
    assert state.reason is Reason.PUBLIC_INPUT_MISMATCH
    assert state.rounds == 0
    assert [type(event) for event in log.events] == [Commit, Challenge, Reveal]


def test_chunk_failing_on_revealed_state_loses():
    setup, trace, faulty = zero_inverse_setup()
    log = EventLog(setup)

    state = play(log, Participant(Role.PROVER, setup, faulty), Participant(Role.CHALLENGER, setup, trace))

    assert state.winner is Role.CHALLENGER
    assert state.reason is Reason.CHUNK_EXECUTION
    assert state.disputed_chunk == 0


def test_reveal_with_wrong_layout_loses():
    setup, trace = make_setup()
    log = EventLog(setup)
    log.append(commit_event(trace))
    log.append(Challenge(height=1))
    states = [trace.state(0), trace.state(1), trace.state(3)]
    # Boundary 1 holds the wires (0, 1, 2); reveal only two of them
    states[1] = BoundaryState(boundary=1, wires=(0, 1), bit_widths=(5, 5), values=states[1].values[:2])

    state = log.append(Reveal(height=2, states=tuple(states)))

    assert state.reason is Reason.COMMITMENT_MISMATCH


@pytest.mark.parametrize(
    ("events", "msg"),
    [
        (lambda trace: [Challenge(height=0)], r"Challenge sent by challenger out of turn: prover must move"),
        (lambda trace: [commit_event(trace, height=5), Challenge(height=4)], r"older than the last event"),
        (
            lambda trace: [commit_event(trace), Reveal(height=1, states=(trace.state(0),))],
            r"Reveal sent by prover out of turn",
        ),
        (
            lambda trace: [commit_event(trace), Narrow(height=1, agree=True)],
            r"Narrow is not allowed in phase committed",
        ),
        (
            lambda trace: [
                commit_event(trace),
                Challenge(height=1),
                Reveal(height=2, states=(trace.state(0), trace.state(3))),
            ],
            r"Expected the states of boundaries \(0, 1, 3\)",
        ),
    ],
)
def test_protocol_violations(events, msg):
    setup, trace = make_setup()
    log = EventLog(setup)
    *valid, invalid = events(trace)
    for event in valid:
        log.append(event)

    with pytest.raises(ProtocolViolation, match=msg):
        log.append(invalid)
    assert len(log) == len(valid)


@pytest.mark.parametrize(
    ("digests", "root", "msg"),
    [
        (lambda commit: commit.digests[:-1], lambda commit: commit.root, r"Expected 4 digests, got 3"),
        (lambda commit: commit.digests, lambda commit: bytes(32), r"is not the Merkle root"),
    ],
)
def test_malformed_commitment(digests, root, msg):
    setup, trace = make_setup()
    commit = commit_event(trace)
    event = Commit(height=0, digests=digests(commit), root=root(commit))

    with pytest.raises(ProtocolViolation, match=msg):
        EventLog(setup).append(event)


def test_events_after_resolution_are_ignored():
    setup, trace = make_setup()
    log = EventLog(setup)
    log.append(commit_event(trace))
    resolved = log.append(Concede(height=1))

    assert log.append(Challenge(height=2)) == resolved
    assert log.append(Tick(height=1_000)) == resolved
    assert resolved.winner is Role.PROVER


def test_replay():
    setup, trace = make_setup()
    faulty = trace.with_fault(2, 4, 0)
    log = EventLog(setup)
    play(log, Participant(Role.PROVER, setup, faulty), Participant(Role.CHALLENGER, setup, trace))

    assert replay(setup, log.events) == log.state
    assert log.state_at(0) == initial_state()
    assert log.state_at(1).phase is Phase.COMMITTED
    assert log.state_at(2).phase is Phase.CHALLENGED
    assert log.state_at(len(log)) == log.state


def test_setup_errors():
    builder = CircuitBuilder(19)
    builder.mark_output(builder.public_input())
    program = Packer(UNBOUNDED).pack(builder.build())

    with pytest.raises(ValueError, match=r"Cannot dispute a program without chunks"):
        DisputeSetup(instance_id="empty", program=program)

    setup, _ = make_setup()
    with pytest.raises(ValueError, match=r"The prover needs a trace"):
        Participant(Role.PROVER, setup)


@pytest.mark.parametrize(
    ("public_inputs", "msg"),
    [
        ({}, r"Expected the values of the public inputs \[0\], got values for \[\]"),
        ({0: 3, 1: 5}, r"Expected the values of the public inputs \[0\], got values for \[0, 1\]"),
        ({0: 19}, r"Public input values must be in \[0, q\): wire: 0, value: 19, q: 19"),
    ],
)
def test_setup_public_input_errors(public_inputs, msg):
    setup, _ = make_setup()

    with pytest.raises(ValueError, match=msg):
        DisputeSetup(instance_id="instance", program=setup.program, public_inputs=public_inputs)
