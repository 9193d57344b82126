"""The bisection game as a pure function of its event log.

A dispute moves through `COMMITTED -> CHALLENGED -> BISECTING -> RESOLVED`:

- `Commit` (prover): every boundary digest is published. The challenger has `challenge_window` blocks to
    dispute; silence accepts the commitment.
- `Challenge` (challenger): the bracket is `[0, N]`. The prover has `response_window` blocks to reveal.
- `Reveal` (prover): the first reveal opens the boundaries `0`, `N` and the midpoint of `[0, N]`, later reveals
    open the midpoint of the current bracket. An opening that does not match its digest loses the dispute. So
    does a boundary `0` whose public inputs differ from the values agreed in the setup.
- `Narrow` (challenger): within `narrow_window` blocks, the challenger agrees with the revealed midpoint (the
    bracket becomes `[mid, upper]`) or not (the bracket becomes `[lower, mid]`). `Concede` ends the dispute in
    favour of the prover.
- When the bracket is `[i, i + 1]`, chunk `i` is executed on the revealed state of boundary `i`: the prover wins
    if the digest of the result is the committed digest of boundary `i + 1`, the challenger wins otherwise.

An event observed after the deadline of the current state first resolves the dispute against the party that had
to move. Events observed once the dispute is resolved are ignored.
"""

import logging
from dataclasses import replace
from typing import Iterable

from zkbisect.commitment.commitment import check_opening, commit
from zkbisect.commitment.merkle_tree import merkle_root
from zkbisect.dispute.events import Challenge, Commit, Concede, Event, Narrow, Reveal, Role, Tick
from zkbisect.dispute.state import DisputeSetup, DisputeState, Phase, Reason
from zkbisect.errors import (
    CircuitEvaluationError,
    CommitmentMismatch,
    ProtocolTimeout,
    ProtocolViolation,
    PublicInputMismatch,
)

logger = logging.getLogger(__name__)


def initial_state() -> DisputeState:
    return DisputeState()


def resolve(state: DisputeState, winner: Role, reason: Reason, disputed_chunk: int | None = None) -> DisputeState:
    logger.info("Dispute resolved at height %d: %s wins (%s)", state.height, winner.value, reason.value)
    return replace(
        state,
        phase=Phase.RESOLVED,
        to_move=None,
        deadline=None,
        winner=winner,
        reason=reason,
        disputed_chunk=disputed_chunk,
    )


def timeout(state: DisputeState, height: int) -> DisputeState:
    """Resolve `state` against the party that missed its deadline."""
    error = ProtocolTimeout(state.to_move.value, state.deadline)
    logger.info("%s", error)
    return resolve(replace(state, height=height), state.to_move.opponent(), Reason.TIMEOUT)


def required_boundaries(setup: DisputeSetup, state: DisputeState) -> tuple[int, ...]:
    """Return the boundaries the prover must open in its next reveal, ascending."""
    rule = setup.parameters.midpoint_rule
    if state.phase is Phase.CHALLENGED:
        boundaries = {state.lower, state.upper}
        if state.width >= 2:
            boundaries.add(rule.midpoint(state.lower, state.upper))
        return tuple(sorted(boundaries))
    return (rule.midpoint(state.lower, state.upper),)


def execute_disputed_chunk(setup: DisputeSetup, state: DisputeState) -> DisputeState:
    """Resolve a bracket of width 1 by executing its chunk on the revealed lower state."""
    index = state.lower
    try:
        result = setup.executor.execute(index, state.revealed[index])
    except CircuitEvaluationError as error:
        logger.info("Chunk %d fails on the revealed state: %s", index, error)
        return resolve(state, Role.CHALLENGER, Reason.CHUNK_EXECUTION, disputed_chunk=index)
    winner = Role.PROVER if commit(result) == state.digests[state.upper] else Role.CHALLENGER
    return resolve(state, winner, Reason.CHUNK_EXECUTION, disputed_chunk=index)


def _on_commit(setup: DisputeSetup, state: DisputeState, event: Commit) -> DisputeState:
    if len(event.digests) != setup.n_chunks + 1:
        msg = f"Expected {setup.n_chunks + 1} digests, got {len(event.digests)}"
        raise ProtocolViolation(msg)
    if merkle_root(list(event.digests)) != event.root:
        msg = "The published root is not the Merkle root of the published digests"
        raise ProtocolViolation(msg)
    return replace(
        state,
        phase=Phase.COMMITTED,
        to_move=Role.CHALLENGER,
        deadline=event.height + setup.parameters.challenge_window,
        digests=tuple(event.digests),
        root=event.root,
        lower=0,
        upper=setup.n_chunks,
    )


def _on_challenge(setup: DisputeSetup, state: DisputeState, event: Challenge) -> DisputeState:
    return replace(
        state,
        phase=Phase.CHALLENGED,
        to_move=Role.PROVER,
        deadline=event.height + setup.parameters.response_window,
    )


def _on_reveal(setup: DisputeSetup, state: DisputeState, event: Reveal) -> DisputeState:
    required = required_boundaries(setup, state)
    if tuple(sorted(event.boundaries())) != required:
        msg = f"Expected the states of boundaries {required}, got {event.boundaries()}"
        raise ProtocolViolation(msg)

    revealed = dict(state.revealed)
    for boundary_state in event.states:
        boundary = boundary_state.boundary
        try:
            if boundary_state.wires != setup.program.live_wires(boundary):
                raise CommitmentMismatch(boundary, state.digests[boundary], b"")
            check_opening(state.digests[boundary], boundary_state)
        except CommitmentMismatch as mismatch:
            logger.info("%s", mismatch)
            return resolve(state, Role.CHALLENGER, Reason.COMMITMENT_MISMATCH)
        if boundary == 0:
            try:
                setup.check_public_inputs(boundary_state)
            except PublicInputMismatch as mismatch:
                logger.info("%s", mismatch)
                return resolve(state, Role.CHALLENGER, Reason.PUBLIC_INPUT_MISMATCH)
        revealed[boundary] = boundary_state

    state = replace(state, phase=Phase.BISECTING, revealed=revealed)
    if state.width == 1:
        return execute_disputed_chunk(setup, state)
    return replace(state, to_move=Role.CHALLENGER, deadline=event.height + setup.parameters.narrow_window)


def _on_narrow(setup: DisputeSetup, state: DisputeState, event: Narrow) -> DisputeState:
    if state.phase is not Phase.BISECTING:
        msg = f"Cannot narrow the bracket in phase {state.phase.value}"
        raise ProtocolViolation(msg)
    mid = setup.parameters.midpoint_rule.midpoint(state.lower, state.upper)
    lower, upper = (mid, state.upper) if event.agree else (state.lower, mid)
    state = replace(state, lower=lower, upper=upper, rounds=state.rounds + 1)
    logger.info("Bracket narrowed to [%d, %d] after %d rounds", lower, upper, state.rounds)
    if state.width == 1:
        return execute_disputed_chunk(setup, state)
    return replace(state, to_move=Role.PROVER, deadline=event.height + setup.parameters.response_window)


def _on_concede(setup: DisputeSetup, state: DisputeState, event: Concede) -> DisputeState:
    return resolve(state, Role.PROVER, Reason.CONCESSION)


_HANDLERS = {
    (Phase.SETUP, Commit): _on_commit,
    (Phase.COMMITTED, Challenge): _on_challenge,
    (Phase.COMMITTED, Concede): _on_concede,
    (Phase.CHALLENGED, Reveal): _on_reveal,
    (Phase.BISECTING, Reveal): _on_reveal,
    (Phase.BISECTING, Narrow): _on_narrow,
    (Phase.BISECTING, Concede): _on_concede,
}


def apply(setup: DisputeSetup, state: DisputeState, event: Event) -> DisputeState:
    """Return the state after `event`.

    Args:
        setup (DisputeSetup): The setup of the dispute.
        state (DisputeState): The current state.
        event (Event): The next event of the log.

    Returns:
        The new state. `state` is not modified.

    Raises:
        ProtocolViolation: If `event` is older than the last event, sent out of turn, or malformed.
    """
    if state.is_resolved:
        logger.debug("Ignoring %s: the dispute is resolved", type(event).__name__)
        return state
    if event.height < state.height:
        msg = f"Event at height {event.height} is older than the last event at height {state.height}"
        raise ProtocolViolation(msg)
    if state.deadline is not None and event.height > state.deadline:
        return timeout(state, event.height)
    if isinstance(event, Tick):
        return replace(state, height=event.height)
    if event.role is not state.to_move:
        msg = f"{type(event).__name__} sent by {event.role.value} out of turn: {state.to_move.value} must move"
        raise ProtocolViolation(msg)

    handler = _HANDLERS.get((state.phase, type(event)))
    if handler is None:
        msg = f"{type(event).__name__} is not allowed in phase {state.phase.value}"
        raise ProtocolViolation(msg)
    return handler(setup, replace(state, height=event.height), event)


def replay(setup: DisputeSetup, events: Iterable[Event]) -> DisputeState:
    """Return the state after the events of a log, in order."""
    state = initial_state()
    for event in events:
        state = apply(setup, state, event)
    return state


class EventLog:
    """Append-only log of the events of a dispute.

    Events are validated against the current state before being appended: an event that raises
    `ProtocolViolation` is not appended.

    Attributes:
        setup (DisputeSetup): The setup of the dispute.
    """

    def __init__(self, setup: DisputeSetup):
        self.setup = setup
        self._events = []
        self._state = initial_state()

    def __len__(self):
        return len(self._events)

    @property
    def events(self) -> tuple[Event, ...]:
        return tuple(self._events)

    @property
    def state(self) -> DisputeState:
        return self._state

    def append(self, event: Event) -> DisputeState:
        """Append `event` and return the new state.

        Raises:
            ProtocolViolation: If `event` is not valid in the current state.
        """
        state = apply(self.setup, self._state, event)
        self._events.append(event)
        self._state = state
        return state

    def state_at(self, n_events: int) -> DisputeState:
        """Return the state after the first `n_events` events."""
        return replay(self.setup, self._events[:n_events])
