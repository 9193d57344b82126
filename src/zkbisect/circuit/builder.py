"""Construction of circuits by running the arithmetic layer on wires."""

from zkbisect.circuit.circuit import Circuit, Constant, OpCode, Operand, Operation, Wire, WireKind


class CircuitBuilder:
    """Prime field backend whose elements are circuit operands.

    Every arithmetic function of `zkbisect.arithmetic` accepts a prime field backend. Running it on a
    `CircuitBuilder` records the sequence of primitive operations instead of computing values, so the circuit has
    exactly the numeric semantics of the reference computation on `PrimeField`.

    Elements are wire ids (`int`) or `Constant`s. No simplification happens while recording: constant operands are
    removed by `zkbisect.compiler.folding.fold_constants`.

    Example:
        >>> builder = CircuitBuilder(19)
        >>> x = builder.public_input("x")
        >>> builder.mark_output(builder.mul(x, builder.constant(3)))
        >>> circuit = builder.build()
    """

    EXTENSION_DEGREE = 1

    def __init__(self, q: int):
        self.MODULUS = q
        self.wires = []
        self.operations = []
        self.outputs = []

    @property
    def prime_field(self):
        return self

    def _new_wire(self, bit_width: int, kind: WireKind, name: str | None = None) -> int:
        wire = Wire(id=len(self.wires), bit_width=bit_width, kind=kind, name=name)
        self.wires.append(wire)
        return wire.id

    def _emit(self, opcode: OpCode, *operands: Operand, bit_width: int | None = None) -> int:
        output = self._new_wire(self.MODULUS.bit_length() if bit_width is None else bit_width, WireKind.INTERMEDIATE)
        self.operations.append(Operation(opcode=opcode, operands=tuple(operands), output=output))
        return output

    def public_input(self, name: str | None = None, bit_width: int | None = None) -> int:
        """Declare a public input wire and return its id."""
        return self._new_wire(
            self.MODULUS.bit_length() if bit_width is None else bit_width, WireKind.PUBLIC_INPUT, name
        )

    def private_input(self, name: str | None = None, bit_width: int | None = None) -> int:
        """Declare a private input wire and return its id."""
        return self._new_wire(
            self.MODULUS.bit_length() if bit_width is None else bit_width, WireKind.PRIVATE_INPUT, name
        )

    def zero(self) -> Constant:
        return Constant(0)

    def one(self) -> Constant:
        return Constant(1)

    def constant(self, value: int) -> Constant:
        return Constant(value % self.MODULUS)

    def add(self, x: Operand, y: Operand) -> int:
        return self._emit(OpCode.ADD, x, y)

    def sub(self, x: Operand, y: Operand) -> int:
        return self._emit(OpCode.SUB, x, y)

    def neg(self, x: Operand) -> int:
        return self._emit(OpCode.NEG, x)

    def double(self, x: Operand) -> int:
        return self._emit(OpCode.ADD, x, x)

    def mul(self, x: Operand, y: Operand) -> int:
        return self._emit(OpCode.MUL, x, y)

    def square(self, x: Operand) -> int:
        return self._emit(OpCode.SQUARE, x)

    def inverse(self, x: Operand) -> int:
        """Record `x^-1`; evaluating the circuit on `x == 0` raises `InverseOfZeroError`."""
        return self._emit(OpCode.INVERSE, x)

    def is_zero(self, x: Operand) -> int:
        return self._emit(OpCode.IS_ZERO, x, bit_width=1)

    def equal(self, x: Operand, y: Operand) -> int:
        return self._emit(OpCode.EQUAL, x, y, bit_width=1)

    def select(self, bit: Operand, x: Operand, y: Operand) -> int:
        return self._emit(OpCode.SELECT, bit, x, y)

    def power(self, x: Operand, exponent: int) -> Operand:
        """Record `x^exponent` by square-and-multiply over the bits of the constant `exponent`."""
        if exponent < 0:
            return self.power(self.inverse(x), -exponent)
        if exponent == 0:
            return self.one()
        out = x
        for digit in bin(exponent)[3:]:
            out = self.square(out)
            if digit == "1":
                out = self.mul(out, x)
        return out

    def to_list(self, x: Operand) -> list[Operand]:
        return [x]

    def mark_output(self, x: Operand) -> int:
        """Append `x` to the circuit outputs and return the id of the output wire.

        A constant output is written to a fresh wire by a `LITERAL` operation.
        """
        if isinstance(x, Constant):
            x = self._emit(OpCode.LITERAL, x)
        self.outputs.append(x)
        return x

    def build(self) -> Circuit:
        """Return the recorded circuit.

        Raises:
            MalformedCircuit: If the recorded circuit is not valid, for instance if the same wire is marked as an
                output twice.
        """
        return Circuit(modulus=self.MODULUS, wires=self.wires, operations=self.operations, outputs=self.outputs)
