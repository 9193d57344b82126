"""Compilation of contiguous runs of circuit operations into stack-machine programs."""

import logging
from dataclasses import dataclass, replace
from typing import Mapping

from tx_engine import Script

from zkbisect.circuit.circuit import Circuit, Constant, OpCode, Operation
from zkbisect.commitment.scripts import disprove_script
from zkbisect.fields.fq import Fq
from zkbisect.parameters import ChainParameters
from zkbisect.types.stack_elements import StackLayout, StackNumber
from zkbisect.util.utility_functions import optimise_script, stack_effect
from zkbisect.util.utility_scripts import (
    bool_to_moving_function,
    drop,
    from_altstack,
    move,
    nums_to_script,
    roll,
    to_altstack,
    verify_bottom_constant,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_DIGEST = bytes(32)


@dataclass(frozen=True)
class Chunk:
    """A contiguous run of circuit operations and its program.

    Attributes:
        index (int): The position of the chunk in the program.
        start (int): The index of the first operation of the chunk in the circuit.
        end (int): One past the index of the last operation of the chunk.
        modulus (int): The modulus `q` expected at the bottom of the stack.
        inputs (tuple[int, ...]): The wires the chunk reads, in the order they are pushed (bottom to top).
        outputs (tuple[int, ...]): The wires the chunk leaves on the stack, ascending (bottom to top).
        script (Script): The program of the chunk.
        size (int): The serialized size of `script`, in bytes.
        peak_depth (int): The maximum number of elements on the main stack and altstack combined while running
            `script`, including `q` and the inputs.
        n_flags (int): The number of failure flags `script` leaves on the altstack, one per inverse and select
            compiled with `flag_failures`.
    """

    index: int
    start: int
    end: int
    modulus: int
    inputs: tuple[int, ...]
    outputs: tuple[int, ...]
    script: Script
    size: int
    peak_depth: int
    n_flags: int = 0

    @property
    def n_operations(self) -> int:
        return self.end - self.start

    def unlocking_script(self, values: Mapping[int, int]) -> Script:
        """Return the script pushing `q` and the values of the inputs of the chunk.

        Args:
            values (Mapping[int, int]): A mapping containing at least the value of every input wire.
        """
        return nums_to_script([self.modulus, *[values[wire] for wire in self.inputs]])


class ChunkCompiler:
    """Compile runs of operations of a circuit into stack-machine programs.

    The stack holds `q` at the bottom, then the inputs of the chunk, then intermediate values. Before every
    operation its operands are brought to the top of the stack: an operand that is read again later (by the same
    operation, by a later operation of the chunk, or because it must be left at the end of the chunk) is copied,
    otherwise it is moved. The operation is then lowered by `Fq`, leaving its reduced result on top. The epilogue
    leaves exactly the exit wires, ascending, and removes every other element, `q` included.

    Attributes:
        circuit (Circuit): The circuit to compile.
        chain_parameters (ChainParameters): The ceilings of the chain.
        fq (Fq): The script generator for F_q.
    """

    def __init__(self, circuit: Circuit, chain_parameters: ChainParameters):
        self.circuit = circuit
        self.chain_parameters = chain_parameters
        self.fq = Fq(circuit.modulus)
        self.last_reads = circuit.last_reads()
        self.circuit_outputs = frozenset(circuit.outputs)

    def is_live_after(self, wire: int, end: int) -> bool:
        """Check whether `wire` is read by an operation with index `>= end` or is a circuit output."""
        return self.last_reads.get(wire, -1) >= end or wire in self.circuit_outputs

    def live_wires_at(self, position: int) -> tuple[int, ...]:
        """Return the wires available before operation `position` that are live after it, ascending."""
        available = set(self.circuit.inputs)
        available.update(operation.output for operation in self.circuit.operations[:position])
        return tuple(wire for wire in sorted(available) if self.is_live_after(wire, position))

    def operation_script(self, operation: Operation, flag_failures: bool = False) -> Script:
        """Return the script lowering `operation`, with its operands on top of the stack in operand order.

        With `flag_failures`, an inverse of zero or a non-boolean selector pushes `0` to the altstack instead of
        failing the script, and a valid operation pushes `1`.
        """
        fq = self.fq
        match operation.opcode:
            case OpCode.ADD:
                return fq.algebraic_sum(take_modulo=True, positive_modulo=True)
            case OpCode.SUB:
                return fq.algebraic_sum(take_modulo=True, positive_modulo=True, y=StackNumber(0, True))
            case OpCode.NEG:
                return fq.negate(take_modulo=True, positive_modulo=True)
            case OpCode.MUL:
                return fq.mul(take_modulo=True, positive_modulo=True)
            case OpCode.SQUARE:
                return fq.square(take_modulo=True, positive_modulo=True)
            case OpCode.INVERSE:
                return fq.inverse(take_modulo=True, positive_modulo=True, flag_failure=flag_failures)
            case OpCode.SELECT:
                return fq.select(take_modulo=True, positive_modulo=True, flag_failure=flag_failures)
            case OpCode.IS_ZERO:
                return fq.is_zero()
            case OpCode.EQUAL:
                return fq.equal()
            case OpCode.LITERAL:
                return Script()
        msg = f"Unknown opcode: {operation.opcode}"
        raise ValueError(msg)

    def compile(
        self,
        start: int,
        end: int,
        index: int = 0,
        entry_wires: tuple[int, ...] | None = None,
        exit_wires: tuple[int, ...] | None = None,
        flag_failures: bool = False,
        check_constant: bool | None = None,
    ) -> Chunk:
        """Compile the operations `start, .., end - 1` of the circuit.

        Args:
            start (int): The index of the first operation.
            end (int): One past the index of the last operation.
            index (int): The index of the chunk in the program. Defaults to `0`.
            entry_wires (tuple[int, ...] | None): The wires on the stack (above `q`) when the program starts, bottom
                to top. Defaults to the wires read by the operations and not written by them, ascending.
            exit_wires (tuple[int, ...] | None): The wires left on the stack when the program ends. Defaults to the
                wires written by the operations that are live after them, ascending.
            flag_failures (bool): If `True`, the failures of inverses and selects are flagged on the altstack
                instead of failing the program, see `operation_script`. Defaults to `False`.
            check_constant (bool | None): If `True`, the program verifies `q` first. Defaults to the `check_constant`
                of the chain parameters.

        Returns:
            The compiled chunk.

        Raises:
            ValueError: If the range is empty or out of the circuit, or if `entry_wires` misses a wire read by the
                operations.
        """
        if not 0 <= start < end <= len(self.circuit.operations):
            msg = f"Invalid range of operations: start: {start}, end: {end}, "
            msg += f"number of operations: {len(self.circuit.operations)}"
            raise ValueError(msg)

        operations = self.circuit.operations[start:end]
        written = {operation.output for operation in operations}
        read = {wire for operation in operations for wire in operation.reads()}
        if entry_wires is None:
            entry_wires = tuple(sorted(read - written))
        elif not (read - written) <= set(entry_wires):
            msg = f"Entry wires {entry_wires} miss wires read by the chunk: {sorted(read - written - set(entry_wires))}"
            raise ValueError(msg)
        if exit_wires is None:
            exit_wires = tuple(sorted(wire for wire in written if self.is_live_after(wire, end)))

        # For every wire, the number of reads left in the chunk
        remaining_reads = {}
        for operation in operations:
            for wire in operation.reads():
                remaining_reads[wire] = remaining_reads.get(wire, 0) + 1
        kept = set(exit_wires)

        if check_constant is None:
            check_constant = self.chain_parameters.check_constant
        n_flags = (
            sum(operation.opcode in (OpCode.INVERSE, OpCode.SELECT) for operation in operations) if flag_failures else 0
        )

        layout = StackLayout(list(entry_wires))
        out = verify_bottom_constant(self.circuit.modulus) if check_constant else Script()

        for operation in operations:
            for operand in operation.operands:
                if isinstance(operand, Constant):
                    out += self.fq.literal(operand.value)
                    layout.push(None)
                    continue
                remaining_reads[operand] -= 1
                is_rolled = remaining_reads[operand] == 0 and operand not in kept
                out += move(layout.element(operand), bool_to_moving_function(is_rolled))
                if is_rolled:
                    layout.roll(operand)
                else:
                    layout.pick(operand)
            out += self.operation_script(operation, flag_failures)
            layout.pop(len(operation.operands))
            layout.push(operation.output)

        out += self.epilogue(layout, exit_wires)
        out = optimise_script(out)

        effect = stack_effect(out)
        assert effect.net == len(exit_wires) - len(entry_wires) - 1, "Unbalanced chunk program"
        assert effect.altstack == n_flags, "Chunk program leaves unexpected elements on the altstack"

        chunk = Chunk(
            index=index,
            start=start,
            end=end,
            modulus=self.circuit.modulus,
            inputs=tuple(entry_wires),
            outputs=tuple(exit_wires),
            script=out,
            size=len(out.raw_serialize()),
            peak_depth=1 + len(entry_wires) + effect.peak,
            n_flags=n_flags,
        )
        logger.debug(
            "Compiled operations [%d, %d): %d inputs, %d outputs, %d bytes, peak depth %d",
            start,
            end,
            len(chunk.inputs),
            len(chunk.outputs),
            chunk.size,
            chunk.peak_depth,
        )
        return chunk

    def compile_disprove(
        self,
        start: int,
        end: int,
        index: int = 0,
        entry_digest: bytes = PLACEHOLDER_DIGEST,
        exit_digest: bytes = PLACEHOLDER_DIGEST,
    ) -> Chunk:
        """Compile the program disproving the execution of the operations `start, .., end - 1`.

        The operations are compiled against the wires live before and after them, with their failures flagged, and
        wrapped by `disprove_script`. The program always verifies `q`, which is pushed by the spender. The digests
        only change the value of two 32-byte pushes, so the placeholders give the size of every disprove program of
        the range.

        Returns:
            A chunk whose script is the disprove program. Its `size` and `peak_depth` are those of the program run
            on-chain, which leaves a single boolean.
        """
        entry_wires = self.live_wires_at(start)
        exit_wires = self.live_wires_at(end)
        chunk = self.compile(
            start,
            end,
            index=index,
            entry_wires=entry_wires,
            exit_wires=exit_wires,
            flag_failures=True,
            check_constant=True,
        )
        out = disprove_script(
            chunk.script,
            chunk.n_flags,
            [self.circuit.bit_width(wire) for wire in entry_wires],
            [self.circuit.bit_width(wire) for wire in exit_wires],
            entry_digest,
            exit_digest,
        )

        effect = stack_effect(out)
        assert effect.net == -len(entry_wires), "Unbalanced disprove program"
        assert effect.altstack == 0, "Disprove program leaves elements on the altstack"

        return replace(
            chunk,
            script=out,
            size=len(out.raw_serialize()),
            peak_depth=1 + len(entry_wires) + effect.peak,
            n_flags=0,
        )

    def epilogue(self, layout: StackLayout, exit_wires: tuple[int, ...]) -> Script:
        """Leave only `exit_wires` on the stack, ascending, and remove `q`.

        Stack input:
            - stack:    [q, ..., exit wires and leftovers in any order]
            - altstack: []

        Stack output:
            - stack:    [exit_wires[0], ..., exit_wires[-1]]
            - altstack: []
        """
        out = Script()
        for wire in exit_wires:
            out += move(layout.element(wire), roll)
            layout.roll(wire)
        n_leftovers = len(layout) - len(exit_wires)
        out += to_altstack(len(exit_wires))
        out += drop(n_leftovers + 1)
        out += from_altstack(len(exit_wires))
        layout.pop(len(layout))
        for wire in exit_wires:
            layout.push(wire)
        return out

    def check_ceilings(self, chunk: Chunk) -> tuple[str, int, int] | None:
        """Return `(resource, measured, ceiling)` for the first ceiling `chunk` exceeds, `None` if it fits."""
        if chunk.size > self.chain_parameters.max_script_size:
            return "script_size", chunk.size, self.chain_parameters.max_script_size
        if chunk.peak_depth > self.chain_parameters.max_stack_depth:
            return "stack_depth", chunk.peak_depth, self.chain_parameters.max_stack_depth
        return None

