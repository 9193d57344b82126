"""Arithmetic circuits over F_q in single static assignment form."""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Union

from zkbisect.arithmetic.prime_field import PrimeField
from zkbisect.errors import CircuitEvaluationError, MalformedCircuit


class WireKind(Enum):
    PUBLIC_INPUT = "public_input"
    PRIVATE_INPUT = "private_input"
    INTERMEDIATE = "intermediate"


@dataclass(frozen=True)
class Wire:
    """A wire of the circuit.

    Attributes:
        id (int): The identifier of the wire, unique in the circuit.
        bit_width (int): The fixed bit width of the values carried by the wire.
        kind (WireKind): Whether the wire is a public input, a private input, or written by an operation.
        name (str | None): An optional label, only used for diagnostics.
    """

    id: int
    bit_width: int
    kind: WireKind = WireKind.INTERMEDIATE
    name: str | None = None

    def is_input(self) -> bool:
        return self.kind is not WireKind.INTERMEDIATE


@dataclass(frozen=True)
class Constant:
    """A compile-time constant operand."""

    value: int


type Operand = Union[int, Constant]


class OpCode(Enum):
    """Primitive operations of a circuit.

    Arithmetic opcodes reduce their result modulo `q`. `IS_ZERO` and `EQUAL` write boolean wires. `SELECT` reads
    `(bit, x, y)` and writes `x` if `bit == 1` else `y`. `LITERAL` writes its constant operand; it is produced by
    constant folding so that circuit outputs keep a writer.
    """

    ADD = "add"
    SUB = "sub"
    NEG = "neg"
    MUL = "mul"
    SQUARE = "square"
    INVERSE = "inverse"
    SELECT = "select"
    IS_ZERO = "is_zero"
    EQUAL = "equal"
    LITERAL = "literal"


ARITY = {
    OpCode.ADD: 2,
    OpCode.SUB: 2,
    OpCode.NEG: 1,
    OpCode.MUL: 2,
    OpCode.SQUARE: 1,
    OpCode.INVERSE: 1,
    OpCode.SELECT: 3,
    OpCode.IS_ZERO: 1,
    OpCode.EQUAL: 2,
    OpCode.LITERAL: 1,
}

BOOLEAN_OPCODES = frozenset({OpCode.IS_ZERO, OpCode.EQUAL})


@dataclass(frozen=True)
class Operation:
    """One SSA operation `output <- opcode(operands)`.

    Attributes:
        opcode (OpCode): The primitive.
        operands (tuple[Operand, ...]): Wire ids or constants, in the order documented by `OpCode`.
        output (int): The id of the wire written by the operation.
    """

    opcode: OpCode
    operands: tuple[Operand, ...]
    output: int

    def reads(self) -> tuple[int, ...]:
        """Return the wire ids read by the operation, in operand order (with repetitions)."""
        return tuple(operand for operand in self.operands if not isinstance(operand, Constant))

    def __str__(self):
        operands = ", ".join(
            f"#{operand.value}" if isinstance(operand, Constant) else f"w{operand}" for operand in self.operands
        )
        return f"w{self.output} = {self.opcode.value}({operands})"


def apply_opcode(field: PrimeField, opcode: OpCode, args: list[int]) -> int:
    """Evaluate `opcode` on the integer values `args` with the semantics of `field`.

    Raises:
        CircuitEvaluationError: If the operation is undefined on `args` (inverse of zero, non-boolean selector).
    """
    match opcode:
        case OpCode.ADD:
            return field.add(*args)
        case OpCode.SUB:
            return field.sub(*args)
        case OpCode.NEG:
            return field.neg(*args)
        case OpCode.MUL:
            return field.mul(*args)
        case OpCode.SQUARE:
            return field.square(*args)
        case OpCode.INVERSE:
            return field.inverse(*args)
        case OpCode.SELECT:
            return field.select(*args)
        case OpCode.IS_ZERO:
            return field.is_zero(*args)
        case OpCode.EQUAL:
            return field.equal(*args)
        case OpCode.LITERAL:
            return args[0]
    msg = f"Unknown opcode: {opcode}"
    raise ValueError(msg)


class Circuit:
    """An ordered list of operations over integer-identified wires.

    The circuit is validated on construction and immutable afterwards.

    Attributes:
        modulus (int): The characteristic `q` of the field the circuit computes in.
        wires (dict[int, Wire]): The wires, indexed by id.
        operations (tuple[Operation, ...]): The operations, in execution order.
        outputs (tuple[int, ...]): The ids of the output wires, in order.
    """

    def __init__(self, modulus: int, wires: list[Wire], operations: list[Operation], outputs: list[int]):
        """Initialise and validate the circuit.

        Raises:
            MalformedCircuit: If the circuit is not in single static assignment form.
        """
        self.modulus = modulus
        self.field = PrimeField(modulus)
        self.wires = {}
        for wire in wires:
            if wire.id in self.wires:
                msg = f"Wire {wire.id} is declared twice"
                raise MalformedCircuit(msg)
            self.wires[wire.id] = wire
        self.operations = tuple(operations)
        self.outputs = tuple(outputs)
        self.validate()

    @property
    def field_bit_width(self) -> int:
        return self.modulus.bit_length()

    @property
    def inputs(self) -> tuple[int, ...]:
        """The ids of the input wires, ascending."""
        return tuple(sorted(wire.id for wire in self.wires.values() if wire.is_input()))

    @property
    def public_inputs(self) -> tuple[int, ...]:
        return tuple(sorted(wire.id for wire in self.wires.values() if wire.kind is WireKind.PUBLIC_INPUT))

    def bit_width(self, wire_id: int) -> int:
        return self.wires[wire_id].bit_width

    def validate(self):
        """Check the single static assignment invariant.

        Every operand must be a declared wire written before the read (an input or the output of an earlier
        operation), every intermediate wire must be written exactly once, and constants must be canonical.

        Raises:
            MalformedCircuit: On the first violation found.
        """
        available = set(self.inputs)
        written = set()
        for index, operation in enumerate(self.operations):
            if len(operation.operands) != ARITY[operation.opcode]:
                msg = f"Operation {index} ({operation}) has {len(operation.operands)} operands, "
                msg += f"expected {ARITY[operation.opcode]}"
                raise MalformedCircuit(msg)
            if operation.opcode is OpCode.LITERAL and not isinstance(operation.operands[0], Constant):
                msg = f"Operation {index} ({operation}) must have a constant operand"
                raise MalformedCircuit(msg)
            for operand in operation.operands:
                if isinstance(operand, Constant):
                    if not 0 <= operand.value < self.modulus:
                        msg = f"Operation {index} ({operation}) has a non-canonical constant: {operand.value}"
                        raise MalformedCircuit(msg)
                elif operand not in self.wires:
                    msg = f"Operation {index} ({operation}) reads the undeclared wire {operand}"
                    raise MalformedCircuit(msg)
                elif operand not in available:
                    msg = f"Operation {index} ({operation}) reads wire {operand} before it is written"
                    raise MalformedCircuit(msg)

            output = operation.output
            if output not in self.wires:
                msg = f"Operation {index} ({operation}) writes the undeclared wire {output}"
                raise MalformedCircuit(msg)
            if self.wires[output].is_input():
                msg = f"Operation {index} ({operation}) writes the input wire {output}"
                raise MalformedCircuit(msg)
            if output in written:
                msg = f"Operation {index} ({operation}) writes wire {output} a second time"
                raise MalformedCircuit(msg)
            if operation.opcode is OpCode.LITERAL:
                # Boolean literals keep their one-bit wire
                expected_width = 1 if self.wires[output].bit_width == 1 else self.field_bit_width
                if operation.operands[0].value.bit_length() > expected_width:
                    expected_width = self.field_bit_width
            elif operation.opcode in BOOLEAN_OPCODES:
                expected_width = 1
            else:
                expected_width = self.field_bit_width
            if self.wires[output].bit_width != expected_width:
                msg = f"Operation {index} ({operation}) writes wire {output} of bit width "
                msg += f"{self.wires[output].bit_width}, expected {expected_width}"
                raise MalformedCircuit(msg)
            written.add(output)
            available.add(output)

        for wire in self.wires.values():
            if not wire.is_input() and wire.id not in written:
                msg = f"Intermediate wire {wire.id} is never written"
                raise MalformedCircuit(msg)
            if wire.is_input() and not 0 < wire.bit_width <= self.field_bit_width:
                msg = f"Input wire {wire.id} has bit width {wire.bit_width}, "
                msg += f"expected a value in [1, {self.field_bit_width}]"
                raise MalformedCircuit(msg)
        if len(set(self.outputs)) != len(self.outputs):
            msg = f"Circuit outputs are not distinct: {self.outputs}"
            raise MalformedCircuit(msg)
        for output in self.outputs:
            if output not in available:
                msg = f"Circuit output {output} is not a wire of the circuit"
                raise MalformedCircuit(msg)

    def last_reads(self) -> dict[int, int]:
        """Map every wire id to the index of the last operation reading it (wires never read are absent)."""
        out = {}
        for index, operation in enumerate(self.operations):
            for wire_id in operation.reads():
                out[wire_id] = index
        return out

    def writers(self) -> dict[int, int]:
        """Map every intermediate wire id to the index of the operation writing it."""
        return {operation.output: index for index, operation in enumerate(self.operations)}

    def check_inputs(self, inputs: Mapping[int, int]):
        """Check that `inputs` assigns a value of the right width to every input wire.

        Raises:
            CircuitEvaluationError: If an input is missing, unknown or out of range.
        """
        for wire_id in self.inputs:
            if wire_id not in inputs:
                msg = f"Missing value for input wire {wire_id}"
                raise CircuitEvaluationError(msg, wire=wire_id)
            value = inputs[wire_id]
            if not 0 <= value < min(self.modulus, 1 << self.wires[wire_id].bit_width):
                msg = f"Value {value} of input wire {wire_id} is out of range"
                raise CircuitEvaluationError(msg, wire=wire_id)
        unknown = set(inputs) - set(self.inputs)
        if unknown:
            msg = f"Values supplied for wires that are not inputs: {sorted(unknown)}"
            raise CircuitEvaluationError(msg)

    def evaluate(self, inputs: Mapping[int, int]) -> dict[int, int]:
        """Evaluate the circuit.

        Args:
            inputs (Mapping[int, int]): The value of every input wire.

        Returns:
            The witness: the value of every wire of the circuit.

        Raises:
            CircuitEvaluationError: If the inputs are invalid or an operation is undefined on its arguments; the
                exception carries the id of the offending wire.
        """
        self.check_inputs(inputs)
        witness = dict(inputs)
        for operation in self.operations:
            args = [
                operand.value if isinstance(operand, Constant) else witness[operand] for operand in operation.operands
            ]
            try:
                witness[operation.output] = apply_opcode(self.field, operation.opcode, args)
            except CircuitEvaluationError as error:
                msg = f"Evaluation of {operation} failed: {error}"
                raise type(error)(msg, wire=operation.output) from error
        return witness

    def output_values(self, witness: Mapping[int, int]) -> list[int]:
        return [witness[wire_id] for wire_id in self.outputs]

    def __len__(self):
        return len(self.operations)
