"""Execution of single chunks, by reference evaluation and in the script engine."""

import logging

from tx_engine import Context, Script

from zkbisect.circuit.circuit import Constant, apply_opcode
from zkbisect.commitment.commitment import BoundaryState
from zkbisect.compiler.chunk_compiler import Chunk
from zkbisect.compiler.packer import Program
from zkbisect.errors import CircuitEvaluationError
from zkbisect.util.utility_scripts import nums_to_script

logger = logging.getLogger(__name__)


def expected_values_script(values: list[int]) -> Script:
    """Return the script checking that the top of the stack is `values` (bottom to top).

    Stack input:
        - stack:    [..., values[0], ..., values[-1]]
        - altstack: []

    Stack output:
        - stack:    [..., 1] if the values match, failure otherwise
        - altstack: []
    """
    out = Script()
    for value in values[::-1]:
        out += nums_to_script([value])
        out += Script.parse_string("OP_EQUALVERIFY")
    out += Script.parse_string("OP_1")
    return out


class ChunkExecutor:
    """Execute the chunks of a program from boundary states.

    Both parties of a dispute evaluate chunks with this class, so that they agree on what a chunk computes.

    Attributes:
        program (Program): The program whose chunks are executed.
    """

    def __init__(self, program: Program):
        self.program = program
        self._boundary_chunks = {}

    def state(self, boundary: int, values: dict[int, int]) -> BoundaryState:
        """Return the boundary state of `boundary` read from `values`.

        Args:
            boundary (int): The boundary index.
            values (dict[int, int]): A mapping containing at least the value of every wire live at `boundary`.
        """
        wires = self.program.live_wires(boundary)
        return BoundaryState(
            boundary=boundary,
            wires=wires,
            bit_widths=self.program.bit_widths(boundary),
            values=tuple(values[wire] for wire in wires),
        )

    def _check_state(self, index: int, state: BoundaryState):
        if state.boundary != index or state.wires != self.program.live_wires(index):
            msg = f"State of boundary {state.boundary} does not match the layout of boundary {index}: "
            msg += f"wires: {state.wires}, expected: {self.program.live_wires(index)}"
            raise ValueError(msg)

    def execute(self, index: int, state: BoundaryState) -> BoundaryState:
        """Evaluate chunk `index` on `state` with the field arithmetic of the circuit.

        Args:
            index (int): The index of the chunk.
            state (BoundaryState): The state of boundary `index`.

        Returns:
            The state of boundary `index + 1`.

        Raises:
            ValueError: If `state` is not a state of boundary `index`.
            CircuitEvaluationError: If an operation of the chunk is undefined on the values of `state`.
        """
        self._check_state(index, state)
        circuit = self.program.circuit
        chunk = self.program.chunks[index]
        values = state.as_dict()
        for operation in circuit.operations[chunk.start : chunk.end]:
            args = [
                operand.value if isinstance(operand, Constant) else values[operand] for operand in operation.operands
            ]
            try:
                values[operation.output] = apply_opcode(circuit.field, operation.opcode, args)
            except CircuitEvaluationError as error:
                msg = f"Chunk {index}: evaluation of {operation} failed: {error}"
                raise type(error)(msg, wire=operation.output) from error
        return self.state(index + 1, values)

    def boundary_chunk(self, index: int) -> Chunk:
        """Return chunk `index` compiled against the full layouts of boundaries `index` and `index + 1`."""
        if index not in self._boundary_chunks:
            self._boundary_chunks[index] = self.program.boundary_chunk(index)
        return self._boundary_chunks[index]

    def execute_script(self, index: int, state: BoundaryState, expected: BoundaryState) -> bool:
        """Run chunk `index` in the script engine and compare its result with `expected`.

        Args:
            index (int): The index of the chunk.
            state (BoundaryState): The state of boundary `index`, pushed as the input of the chunk.
            expected (BoundaryState): The state of boundary `index + 1` the chunk should leave on the stack.

        Returns:
            `True` if the script succeeds and leaves exactly the values of `expected`, `False` otherwise.
        """
        self._check_state(index, state)
        self._check_state(index + 1, expected)
        chunk = self.boundary_chunk(index)
        unlock = chunk.unlocking_script(state.as_dict())
        lock = chunk.script + expected_values_script(list(expected.values))
        context = Context(script=unlock + lock)
        result = context.evaluate(quiet=True) and context.get_stack().size() == 1 and context.get_altstack().size() == 0
        logger.debug("Script execution of chunk %d: %s", index, "success" if result else "failure")
        return result
