"""State of a dispute."""

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Mapping

from zkbisect.commitment.commitment import BoundaryState
from zkbisect.compiler.packer import Program
from zkbisect.dispute.events import Role
from zkbisect.errors import PublicInputMismatch
from zkbisect.execution.evaluator import ChunkExecutor
from zkbisect.parameters import ProtocolParameters


class Phase(Enum):
    SETUP = "setup"
    COMMITTED = "committed"
    CHALLENGED = "challenged"
    BISECTING = "bisecting"
    RESOLVED = "resolved"


class Reason(Enum):
    """Why a dispute was resolved."""

    TIMEOUT = "timeout"
    CONCESSION = "concession"
    COMMITMENT_MISMATCH = "commitment_mismatch"
    PUBLIC_INPUT_MISMATCH = "public_input_mismatch"
    CHUNK_EXECUTION = "chunk_execution"


@dataclass(frozen=True)
class DisputeSetup:
    """The data both parties agree on before the prover commits.

    Attributes:
        instance_id (str): The identifier of the execution instance.
        program (Program): The compiled verification circuit.
        public_inputs (Mapping[int, int]): The agreed value of every public input of the circuit, by wire. The
            state the prover reveals at boundary 0 must carry these values.
        parameters (ProtocolParameters): The windows and amounts of the protocol.
    """

    instance_id: str
    program: Program
    public_inputs: Mapping[int, int] = field(default_factory=dict)
    parameters: ProtocolParameters = field(default_factory=ProtocolParameters)

    def __post_init__(self):
        if self.program.n_chunks == 0:
            msg = f"Cannot dispute a program without chunks: instance_id: {self.instance_id}"
            raise ValueError(msg)
        circuit = self.program.circuit
        if set(self.public_inputs) != set(circuit.public_inputs):
            msg = f"Expected the values of the public inputs {list(circuit.public_inputs)}, "
            msg += f"got values for {sorted(self.public_inputs)}"
            raise ValueError(msg)
        for wire, value in self.public_inputs.items():
            if not 0 <= value < circuit.modulus:
                msg = f"Public input values must be in [0, q): wire: {wire}, value: {value}, q: {circuit.modulus}"
                raise ValueError(msg)

    @property
    def n_chunks(self) -> int:
        return self.program.n_chunks

    @cached_property
    def executor(self) -> ChunkExecutor:
        return ChunkExecutor(self.program)

    def check_public_inputs(self, boundary_state: BoundaryState):
        """Check that the public inputs live in `boundary_state` carry their agreed values.

        Raises:
            PublicInputMismatch: If a public input differs from its agreed value.
        """
        values = boundary_state.as_dict()
        for wire, expected in sorted(self.public_inputs.items()):
            if wire in values and values[wire] != expected:
                raise PublicInputMismatch(wire, expected, values[wire])


@dataclass(frozen=True)
class DisputeState:
    """The state of a dispute after a prefix of its event log.

    Attributes:
        phase (Phase): The phase of the dispute.
        height (int): The height of the last event applied.
        to_move (Role | None): The role that must send the next message, `None` once resolved.
        deadline (int | None): The last height at which `to_move` may send it, `None` if there is no deadline.
        digests (tuple[bytes, ...]): The published digests, empty before the commitment.
        root (bytes): The published Merkle root of `digests`.
        lower (int): The lower end of the bracket, a boundary both parties agree on.
        upper (int): The upper end of the bracket, a boundary under dispute.
        revealed (dict[int, BoundaryState]): The boundary states opened by the prover.
        rounds (int): The number of bisection rounds played.
        winner (Role | None): The winner, once resolved.
        reason (Reason | None): Why the dispute was resolved.
        disputed_chunk (int | None): The chunk executed to resolve the dispute, if any.
    """

    phase: Phase = Phase.SETUP
    height: int = 0
    to_move: Role | None = Role.PROVER
    deadline: int | None = None
    digests: tuple[bytes, ...] = ()
    root: bytes = b""
    lower: int = 0
    upper: int = 0
    revealed: dict[int, BoundaryState] = field(default_factory=dict)
    rounds: int = 0
    winner: Role | None = None
    reason: Reason | None = None
    disputed_chunk: int | None = None

    @property
    def is_resolved(self) -> bool:
        return self.phase is Phase.RESOLVED

    @property
    def width(self) -> int:
        return self.upper - self.lower

    def bracket(self) -> tuple[int, int]:
        return self.lower, self.upper
