"""Strategy of the parties of a dispute."""

import logging

from zkbisect.commitment.commitment import BoundaryState, commit
from zkbisect.commitment.trace import ExecutionTrace, TraceCommitment
from zkbisect.dispute.engine import EventLog, required_boundaries
from zkbisect.dispute.events import Challenge, Commit, Concede, Event, Narrow, Reveal, Role, Tick
from zkbisect.dispute.state import DisputeSetup, DisputeState, Phase
from zkbisect.errors import CircuitEvaluationError

logger = logging.getLogger(__name__)


class Participant:
    """A party of a dispute.

    The same class plays both roles. The prover publishes the commitment of its trace and opens the boundaries
    the protocol asks for. The challenger disputes a final state that differs from its own, and narrows the
    bracket by recomputing the revealed states with the same `ChunkExecutor` as the prover.

    Attributes:
        role (Role): The role played.
        setup (DisputeSetup): The setup of the dispute.
        trace (ExecutionTrace | None): The trace of the party. Required for the prover; the challenger uses it
            to decide whether to dispute the final state.
    """

    def __init__(self, role: Role, setup: DisputeSetup, trace: ExecutionTrace | None = None):
        if role is Role.PROVER and trace is None:
            msg = "The prover needs a trace"
            raise ValueError(msg)
        self.role = role
        self.setup = setup
        self.trace = trace
        self.commitment = TraceCommitment.from_trace(trace) if trace is not None else None

    def respond(self, state: DisputeState, height: int) -> Event | None:
        """Return the message to send at `height`, or `None` to stay silent."""
        if state.is_resolved or state.to_move is not self.role:
            return None
        if self.role is Role.PROVER:
            return self.prover_move(state, height)
        return self.challenger_move(state, height)

    def prover_move(self, state: DisputeState, height: int) -> Event | None:
        if state.phase is Phase.SETUP:
            return Commit(height=height, digests=self.commitment.digests, root=self.commitment.root)
        boundaries = required_boundaries(self.setup, state)
        return Reveal(height=height, states=tuple(self.trace.state(boundary) for boundary in boundaries))

    def challenger_move(self, state: DisputeState, height: int) -> Event | None:
        if state.phase is Phase.COMMITTED:
            return self.decide_challenge(state, height)
        if self.finds_divergence(state, state.lower, state.upper):
            mid = self.setup.parameters.midpoint_rule.midpoint(state.lower, state.upper)
            return Narrow(height=height, agree=not self.finds_divergence(state, state.lower, mid))
        logger.info("No divergence in [%d, %d]: conceding", state.lower, state.upper)
        return Concede(height=height)

    def decide_challenge(self, state: DisputeState, height: int) -> Event | None:
        if self.trace is None:
            return None
        if commit(self.trace.state(self.setup.n_chunks)) != state.digests[-1]:
            return Challenge(height=height)
        return None

    def recompute(self, start: BoundaryState, end: int) -> BoundaryState | None:
        """Execute the chunks `start.boundary, .., end - 1` from `start`; `None` if a chunk fails."""
        current = start
        try:
            for index in range(start.boundary, end):
                current = self.setup.executor.execute(index, current)
        except CircuitEvaluationError:
            return None
        return current

    def finds_divergence(self, state: DisputeState, lower: int, boundary: int) -> bool:
        """Check whether recomputing from the revealed state of `lower` contradicts the digest of `boundary`.

        The check uses the committed digest of `boundary`, so it does not need the state of `boundary` to be
        revealed.
        """
        recomputed = self.recompute(state.revealed[lower], boundary)
        return recomputed is None or commit(recomputed) != state.digests[boundary]


def play(
    log: EventLog,
    prover: Participant,
    challenger: Participant,
    height: int = 0,
    step: int = 1,
    max_events: int = 1_000,
) -> DisputeState:
    """Let `prover` and `challenger` play on `log` until the dispute is resolved.

    Every message is sent `step` blocks after the previous one. A party that stays silent lets the chain reach
    its deadline, observed with a `Tick`.

    Returns:
        The resolved state.
    """
    participants = {Role.PROVER: prover, Role.CHALLENGER: challenger}
    for _ in range(max_events):
        state = log.state
        if state.is_resolved:
            return state
        event = participants[state.to_move].respond(state, height)
        if event is None:
            event = Tick(height=state.deadline + 1 if state.deadline is not None else height)
        log.append(event)
        height = event.height + step
    msg = f"The dispute is not resolved after {max_events} events"
    raise RuntimeError(msg)
