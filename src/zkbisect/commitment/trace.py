"""Boundary states of an execution and their published commitment."""

import logging
from dataclasses import dataclass
from typing import Mapping

from zkbisect.commitment.commitment import BoundaryState, commit
from zkbisect.commitment.merkle_tree import inclusion_proof, merkle_root, verify_inclusion
from zkbisect.compiler.packer import Program
from zkbisect.execution.evaluator import ChunkExecutor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionTrace:
    """The boundary states `0, .., N` of the execution of a program.

    Attributes:
        program (Program): The executed program.
        states (tuple[BoundaryState, ...]): The state of every boundary.
    """

    program: Program
    states: tuple[BoundaryState, ...]

    @classmethod
    def from_witness(cls, program: Program, witness: Mapping[int, int]) -> "ExecutionTrace":
        """Read the boundary states from a witness (the value of every wire of the circuit)."""
        executor = ChunkExecutor(program)
        states = tuple(executor.state(boundary, witness) for boundary in range(program.n_chunks + 1))
        return cls(program=program, states=states)

    @classmethod
    def from_inputs(cls, program: Program, inputs: Mapping[int, int]) -> "ExecutionTrace":
        """Evaluate the circuit of `program` on `inputs` and read the boundary states.

        Raises:
            CircuitEvaluationError: If the circuit is undefined on `inputs`.
        """
        return cls.from_witness(program, program.circuit.evaluate(inputs))

    def __len__(self):
        return len(self.states)

    def state(self, boundary: int) -> BoundaryState:
        return self.states[boundary]

    def with_fault(self, chunk: int, wire: int, value: int) -> "ExecutionTrace":
        """Return the trace of a prover that corrupts the output `wire` of `chunk`.

        The state of boundary `chunk + 1` holds `value` for `wire`; the later boundaries are recomputed from the
        corrupted state, so that every chunk but `chunk` is consistent with its input.

        Args:
            chunk (int): The index of the faulty chunk.
            wire (int): A wire live at boundary `chunk + 1`.
            value (int): The corrupted value.

        Raises:
            ValueError: If `wire` is not live at boundary `chunk + 1` or `value` is the correct value.
            CircuitEvaluationError: If a later chunk is undefined on the corrupted values.
        """
        if not 0 <= chunk < self.program.n_chunks:
            msg = f"Chunk index out of range: chunk: {chunk}, number of chunks: {self.program.n_chunks}"
            raise ValueError(msg)
        faulty = self.states[chunk + 1].replace(wire, value)
        if faulty == self.states[chunk + 1]:
            msg = f"The value {value} of wire {wire} is not a fault"
            raise ValueError(msg)

        executor = ChunkExecutor(self.program)
        states = [*self.states[: chunk + 1], faulty]
        for index in range(chunk + 1, self.program.n_chunks):
            states.append(executor.execute(index, states[-1]))
        logger.debug("Injected fault in chunk %d: wire %d set to %d", chunk, wire, value)
        return ExecutionTrace(program=self.program, states=tuple(states))

    def output_values(self) -> tuple[int, ...]:
        """Return the values of the circuit outputs, in the order of the outputs of the circuit."""
        values = self.states[-1].as_dict()
        return tuple(values[wire] for wire in self.program.circuit.outputs)


@dataclass(frozen=True)
class TraceCommitment:
    """The digests of every boundary of a trace and their Merkle root, published before any dispute.

    Attributes:
        digests (tuple[bytes, ...]): The digest of every boundary `0, .., N`.
        root (bytes): The Merkle root of `digests`.
    """

    digests: tuple[bytes, ...]
    root: bytes

    @classmethod
    def from_trace(cls, trace: ExecutionTrace) -> "TraceCommitment":
        digests = tuple(commit(state) for state in trace.states)
        return cls(digests=digests, root=merkle_root(list(digests)))

    @classmethod
    def from_digests(cls, digests: list[bytes]) -> "TraceCommitment":
        return cls(digests=tuple(digests), root=merkle_root(list(digests)))

    @property
    def n_chunks(self) -> int:
        return len(self.digests) - 1

    def digest(self, boundary: int) -> bytes:
        return self.digests[boundary]

    def is_consistent(self) -> bool:
        """Check that `root` is the Merkle root of `digests`."""
        return merkle_root(list(self.digests)) == self.root

    def inclusion_proof(self, boundary: int) -> list[tuple[bytes, bool]]:
        return inclusion_proof(list(self.digests), boundary)

    @staticmethod
    def verify_inclusion(root: bytes, digest: bytes, proof: list[tuple[bytes, bool]]) -> bool:
        return verify_inclusion(root, digest, proof)
