"""The pre-signed transaction graph of an execution instance.

The graph is built once, after the prover committed to its trace, and never modified. Its templates are:

- `peg_in_deposit`, `peg_in_confirm`: the depositor locks the deposit, then the committee moves it to the pool.
- `peg_out`: the operator pays the withdrawal from its own funds.
- `kick_off`: the operator claims a reimbursement and publishes the Merkle root of the boundary digests.
- `take_1`: unchallenged, the operator takes the pool after `challenge_window` blocks.
- `challenge`: the challenger disputes the kick-off.
- `reveal/{lower}-{upper}`: the operator opens the boundaries required in bracket `[lower, upper]`.
- `narrow/{lower}-{upper}/agree`, `narrow/{lower}-{upper}/disagree`: the challenger narrows the bracket.
- `timeout_prover/{lower}-{upper}`: the operator did not reveal; the challenger is rewarded.
- `timeout_challenger/{lower}-{upper}`: the challenger did not narrow; the operator takes the pool.
- `disprove/{i}`: the challenger executes chunk `i` and shows the committed digest of boundary `i + 1` is wrong.
- `take_2/{i}`: chunk `i` was not disproved in time; the operator takes the pool.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType

from tx_engine import Script

from zkbisect.commitment.trace import TraceCommitment
from zkbisect.dispute.events import Role
from zkbisect.dispute.state import DisputeSetup, DisputeState, Phase, Reason
from zkbisect.graph.connectors import (
    committee_multisig,
    connector,
    data_output,
    disprove_branch,
    pay_to_public_key,
    reveal_branch,
)
from zkbisect.graph.templates import (
    FINAL_SEQUENCE,
    Branch,
    Outpoint,
    TemplateInput,
    TransactionTemplate,
    build_template,
)

logger = logging.getLogger(__name__)

EXTERNAL = "external"


@dataclass(frozen=True)
class GraphKeys:
    """Public keys of the parties of an execution instance.

    Attributes:
        depositor (bytes): The key of the depositor.
        operator (bytes): The key of the operator (the prover).
        challenger (bytes): The key of the challenger.
        committee (tuple[bytes, ...]): The keys of the committee pre-signing the graph.
    """

    depositor: bytes
    operator: bytes
    challenger: bytes
    committee: tuple[bytes, ...]


@dataclass(frozen=True)
class GraphFunding:
    """Outputs funding the graph."""

    deposit: Outpoint
    kick_off: Outpoint
    peg_out: Outpoint
    challenge: Outpoint


def bracket_tree(n_chunks: int, midpoint) -> dict[tuple[int, int], tuple[tuple[int, int], bool] | None]:
    """Map every bracket reachable by bisection to its parent and to whether it is the agreed half.

    The root `[0, n_chunks]` maps to `None`.
    """
    out = {(0, n_chunks): None}
    to_visit = [(0, n_chunks)]
    while to_visit:
        lower, upper = to_visit.pop()
        if upper - lower < 2:
            continue
        mid = midpoint(lower, upper)
        out[(lower, mid)] = ((lower, upper), False)
        out[(mid, upper)] = ((lower, upper), True)
        to_visit.extend([(lower, mid), (mid, upper)])
    return out


def bracket_key(prefix: str, lower: int, upper: int) -> str:
    return f"{prefix}/{lower}-{upper}"


def narrow_key(lower: int, upper: int, agree: bool) -> str:
    return f"narrow/{lower}-{upper}/{'agree' if agree else 'disagree'}"


class TransactionGraph:
    """The templates of an execution instance, by key.

    Attributes:
        setup (DisputeSetup): The setup of the dispute.
        commitment (TraceCommitment): The commitment published by the operator.
        keys (GraphKeys): The public keys of the parties.
        templates (Mapping[str, TransactionTemplate]): The templates, by key.
    """

    def __init__(
        self,
        setup: DisputeSetup,
        commitment: TraceCommitment,
        keys: GraphKeys,
        templates: dict[str, TransactionTemplate],
    ):
        self.setup = setup
        self.commitment = commitment
        self.keys = keys
        self.templates = MappingProxyType(templates)
        self.brackets = bracket_tree(setup.n_chunks, setup.parameters.midpoint_rule.midpoint)

    def __getitem__(self, key: str) -> TransactionTemplate:
        return self.templates[key]

    def __contains__(self, key: str):
        return key in self.templates

    def __len__(self):
        return len(self.templates)

    @classmethod
    def build(
        cls, setup: DisputeSetup, commitment: TraceCommitment, keys: GraphKeys, funding: GraphFunding
    ) -> "TransactionGraph":
        """Build every template of the graph.

        Args:
            setup (DisputeSetup): The setup of the dispute, holding the program and the protocol parameters.
            commitment (TraceCommitment): The commitment of the operator.
            keys (GraphKeys): The public keys of the parties.
            funding (GraphFunding): The outputs funding the graph.

        Raises:
            ValueError: If the commitment does not match the program or the funding does not cover the graph.
        """
        if commitment.n_chunks != setup.n_chunks:
            msg = f"The commitment covers {commitment.n_chunks} chunks, the program has {setup.n_chunks}"
            raise ValueError(msg)
        if not commitment.is_consistent():
            msg = "The root of the commitment is not the Merkle root of its digests"
            raise ValueError(msg)
        builder = _GraphBuilder(setup, commitment, keys, funding)
        templates = builder.build()
        logger.info("Built transaction graph of instance %s: %d templates", setup.instance_id, len(templates))
        return cls(setup, commitment, keys, templates)

    def template_for(self, instance_id: str, state: DisputeState) -> TransactionTemplate:
        """Return the template whose confirmation realises `state`.

        Raises:
            ValueError: If `instance_id` is not the instance of the graph.
        """
        if instance_id != self.setup.instance_id:
            msg = f"The graph belongs to instance {self.setup.instance_id}, not {instance_id}"
            raise ValueError(msg)
        return self.templates[self.template_key(state)]

    def template_key(self, state: DisputeState) -> str:
        lower, upper = state.bracket()
        match state.phase:
            case Phase.SETUP:
                return "peg_in_confirm"
            case Phase.COMMITTED:
                return "kick_off"
            case Phase.CHALLENGED:
                return "challenge"
            case Phase.BISECTING:
                if state.to_move is Role.CHALLENGER:
                    return bracket_key("reveal", lower, upper)
                (parent_lower, parent_upper), agree = self.brackets[(lower, upper)]
                return narrow_key(parent_lower, parent_upper, agree)
        # Resolved
        if state.reason is Reason.CHUNK_EXECUTION:
            prefix = "take_2" if state.winner is Role.PROVER else "disprove"
            return f"{prefix}/{state.disputed_chunk}"
        if state.winner is Role.CHALLENGER:
            return bracket_key("timeout_prover", lower, upper)
        if not state.revealed:
            return "take_1"
        return bracket_key("timeout_challenger", lower, upper)


class _GraphBuilder:
    def __init__(self, setup: DisputeSetup, commitment: TraceCommitment, keys: GraphKeys, funding: GraphFunding):
        self.setup = setup
        self.program = setup.program
        self.parameters = setup.parameters
        self.commitment = commitment
        self.keys = keys
        self.funding = funding
        self.committee = list(keys.committee)
        self.templates = {}

    def add(
        self, key: str, inputs: list[TemplateInput], outputs: list[tuple[int | None, Script]]
    ) -> TransactionTemplate:
        prev_txids = []
        for spent in inputs:
            if spent.predecessor == EXTERNAL:
                prev_txids.append(spent.external_txid)
            else:
                prev_txids.append(self.templates[spent.predecessor].txid)
        template = build_template(key, inputs, prev_txids, outputs, self.parameters.fee_amount)
        self.templates[key] = template
        return template

    def spend(
        self,
        predecessor: str,
        output_index: int,
        branch: Branch,
        signers: list[bytes],
        sequence: int = FINAL_SEQUENCE,
        witness: tuple[str, ...] = (),
    ) -> TemplateInput:
        output = self.templates[predecessor].outputs[output_index]
        return TemplateInput(
            predecessor=predecessor,
            output_index=output_index,
            amount=output.amount,
            locking_script=output.script_pubkey,
            branch=branch,
            signers=tuple(signers),
            sequence=sequence,
            witness=witness,
        )

    def spend_external(self, outpoint: Outpoint, signer: bytes) -> TemplateInput:
        return TemplateInput(
            predecessor=EXTERNAL,
            output_index=outpoint.index,
            amount=outpoint.amount,
            locking_script=outpoint.locking_script,
            branch=Branch.EXTERNAL,
            signers=(signer,),
            external_txid=outpoint.txid,
        )

    def max_dispute_length(self) -> int:
        """Return the maximum number of transactions spending the bond, the payout included."""
        return 2 * max(self.setup.n_chunks - 1, 1).bit_length() + 4

    def build(self) -> dict[str, TransactionTemplate]:
        keys, parameters = self.keys, self.parameters
        operator, challenger = keys.operator, keys.challenger
        n_chunks = self.setup.n_chunks
        committee_branch = Branch.COMMITTEE

        # Peg-in
        self.add(
            "peg_in_deposit",
            [self.spend_external(self.funding.deposit, keys.depositor)],
            [(None, connector(Script(), keys.depositor, self.committee))],
        )
        self.add(
            "peg_in_confirm",
            [self.spend("peg_in_deposit", 0, committee_branch, self.committee)],
            [(None, committee_multisig(self.committee))],
        )
        pool = self.templates["peg_in_confirm"].outputs[0].amount
        if pool < parameters.deposit_amount:
            msg = f"The deposit does not cover the pool: pool: {pool}, deposit_amount: {parameters.deposit_amount}"
            raise ValueError(msg)

        # Peg-out
        self.add(
            "peg_out",
            [self.spend_external(self.funding.peg_out, operator)],
            [(None, pay_to_public_key(keys.depositor))],
        )

        # Kick-off: challenge connector, bond, Merkle root
        self.add(
            "kick_off",
            [self.spend_external(self.funding.kick_off, operator)],
            [
                (parameters.fee_amount, connector(Script(), challenger, self.committee)),
                (None, committee_multisig(self.committee)),
                (0, data_output(self.commitment.root)),
            ],
        )
        bond = self.templates["kick_off"].outputs[1].amount
        required_bond = parameters.reward_amount + parameters.fee_amount * self.max_dispute_length()
        if bond < required_bond:
            msg = f"The kick-off bond does not cover the dispute: bond: {bond}, required: {required_bond}"
            raise ValueError(msg)

        self.add(
            "take_1",
            [
                self.spend("peg_in_confirm", 0, committee_branch, self.committee),
                self.spend("kick_off", 0, committee_branch, self.committee, sequence=parameters.challenge_window),
                self.spend("kick_off", 1, committee_branch, self.committee),
            ],
            [(None, pay_to_public_key(operator))],
        )

        # Challenge: opens the root bracket
        self.add(
            "challenge",
            [
                self.spend("kick_off", 0, Branch.MAIN, [challenger]),
                self.spend("kick_off", 1, committee_branch, self.committee),
                self.spend_external(self.funding.challenge, challenger),
            ],
            [
                (None, self.prover_connector(0, n_chunks)),
                (parameters.challenge_amount, pay_to_public_key(operator)),
            ],
        )
        self.build_bracket("challenge", 0, n_chunks)
        return self.templates

    def revealed_boundaries(self, lower: int, upper: int) -> list[int]:
        if (lower, upper) == (0, self.setup.n_chunks):
            boundaries = {lower, upper}
            if upper - lower >= 2:
                boundaries.add(self.parameters.midpoint_rule.midpoint(lower, upper))
            return sorted(boundaries)
        return [self.parameters.midpoint_rule.midpoint(lower, upper)]

    def prover_connector(self, lower: int, upper: int) -> Script:
        """The output on which the operator must reveal the boundaries of bracket `[lower, upper]`."""
        boundaries = self.revealed_boundaries(lower, upper)
        branch = reveal_branch(self.program, self.commitment, boundaries, self.setup.public_inputs)
        return connector(branch, self.keys.operator, self.committee)

    def challenger_connector(self, lower: int, upper: int) -> Script:
        """The output on which the challenger must act after the reveal of bracket `[lower, upper]`."""
        if upper - lower == 1:
            return connector(disprove_branch(self.program, self.commitment, lower), None, self.committee)
        return connector(Script(), self.keys.challenger, self.committee)

    def build_bracket(self, predecessor: str, lower: int, upper: int):
        """Build the templates of bracket `[lower, upper]`, whose prover connector is output 0 of `predecessor`."""
        parameters = self.parameters
        if upper - lower == 1 and (lower, upper) != (0, self.setup.n_chunks):
            self.build_disprove(predecessor, lower)
            return

        reveal = bracket_key("reveal", lower, upper)
        boundaries = self.revealed_boundaries(lower, upper)
        self.add(
            reveal,
            [
                self.spend(
                    predecessor,
                    0,
                    Branch.MAIN,
                    [self.keys.operator],
                    witness=tuple(f"state of boundary {boundary}" for boundary in boundaries),
                )
            ],
            [(None, self.challenger_connector(lower, upper))],
        )
        self.add(
            bracket_key("timeout_prover", lower, upper),
            [self.spend(predecessor, 0, Branch.COMMITTEE, self.committee, sequence=parameters.response_window)],
            [(None, pay_to_public_key(self.keys.challenger))],
        )

        if upper - lower == 1:
            self.build_disprove(reveal, lower)
            return

        self.add(
            bracket_key("timeout_challenger", lower, upper),
            [
                self.spend("peg_in_confirm", 0, Branch.COMMITTEE, self.committee),
                self.spend(reveal, 0, Branch.COMMITTEE, self.committee, sequence=parameters.narrow_window),
            ],
            [(None, pay_to_public_key(self.keys.operator))],
        )
        mid = parameters.midpoint_rule.midpoint(lower, upper)
        for agree, (child_lower, child_upper) in ((False, (lower, mid)), (True, (mid, upper))):
            key = narrow_key(lower, upper, agree)
            child_connector = (
                self.challenger_connector(child_lower, child_upper)
                if child_upper - child_lower == 1
                else self.prover_connector(child_lower, child_upper)
            )
            self.add(
                key,
                [self.spend(reveal, 0, Branch.MAIN, [self.keys.challenger])],
                [(None, child_connector)],
            )
            self.build_bracket(key, child_lower, child_upper)

    def build_disprove(self, predecessor: str, index: int):
        """Build `disprove/{index}` and `take_2/{index}`, spending output 0 of `predecessor`."""
        self.add(
            f"disprove/{index}",
            [
                self.spend(
                    predecessor,
                    0,
                    Branch.MAIN,
                    [],
                    witness=("modulus", f"state of boundary {index}"),
                )
            ],
            [(None, pay_to_public_key(self.keys.challenger))],
        )
        self.add(
            f"take_2/{index}",
            [
                self.spend("peg_in_confirm", 0, Branch.COMMITTEE, self.committee),
                self.spend(predecessor, 0, Branch.COMMITTEE, self.committee, sequence=self.parameters.narrow_window),
            ],
            [(None, pay_to_public_key(self.keys.operator))],
        )
