"""Constant folding and dead operation removal."""

import logging

from zkbisect.circuit.circuit import Circuit, Constant, OpCode, Operand, Operation, apply_opcode
from zkbisect.errors import CircuitEvaluationError

logger = logging.getLogger(__name__)


def _simplify(operation: Operation) -> Operand | None:
    """Return the operand `operation` reduces to when one of its operands is a neutral or absorbing constant."""
    opcode, operands = operation.opcode, operation.operands
    match opcode:
        case OpCode.MUL:
            for this, other in (operands, operands[::-1]):
                if this == Constant(0):
                    return Constant(0)
                if this == Constant(1):
                    return other
        case OpCode.ADD:
            for this, other in (operands, operands[::-1]):
                if this == Constant(0):
                    return other
        case OpCode.SUB:
            if operands[1] == Constant(0):
                return operands[0]
        case OpCode.SELECT:
            bit = operands[0]
            if isinstance(bit, Constant):
                if bit.value not in {0, 1}:
                    msg = f"Selection bit must be 0 or 1: {operation}"
                    raise CircuitEvaluationError(msg, wire=operation.output)
                return operands[1] if bit.value == 1 else operands[2]
    return None


def fold_constants(circuit: Circuit) -> Circuit:
    """Evaluate constant operations at compile time and remove operations whose result is never used.

    Operations whose operands are all constants are evaluated. Multiplications by `0` or `1`, additions of `0`,
    subtractions of `0` and selections on a constant bit are replaced by one of their operands. The readers of a
    folded wire read the folded operand instead. A circuit output that folds to a constant is written by a
    `LITERAL` operation; a circuit output that folds to another operand keeps its operation, so that the output
    wires of the circuit are preserved.

    Args:
        circuit (Circuit): The circuit to fold.

    Returns:
        An equivalent circuit with the same inputs and outputs.

    Raises:
        CircuitEvaluationError: If an operation on constants is undefined (for instance the inverse of zero), in
            which case the circuit fails on every input.
    """
    outputs = set(circuit.outputs)
    replacements = {}

    def resolve(operand: Operand) -> Operand:
        while not isinstance(operand, Constant) and operand in replacements:
            operand = replacements[operand]
        return operand

    folded = []
    for operation in circuit.operations:
        operation = Operation(
            opcode=operation.opcode,
            operands=tuple(resolve(operand) for operand in operation.operands),
            output=operation.output,
        )
        if operation.opcode is OpCode.LITERAL:
            folded.append(operation)
            continue

        if all(isinstance(operand, Constant) for operand in operation.operands):
            try:
                value = apply_opcode(circuit.field, operation.opcode, [operand.value for operand in operation.operands])
            except CircuitEvaluationError as error:
                msg = f"Operation {operation} fails on constant operands: {error}"
                raise type(error)(msg, wire=operation.output) from error
            if operation.output in outputs:
                folded.append(Operation(opcode=OpCode.LITERAL, operands=(Constant(value),), output=operation.output))
            else:
                replacements[operation.output] = Constant(value)
            continue

        simplified = _simplify(operation)
        if simplified is None:
            folded.append(operation)
        elif operation.output not in outputs:
            replacements[operation.output] = simplified
        elif isinstance(simplified, Constant):
            folded.append(Operation(opcode=OpCode.LITERAL, operands=(simplified,), output=operation.output))
        else:
            folded.append(operation)

    # Backward pass: keep the operations contributing to the outputs
    live = set(outputs)
    kept = []
    for operation in reversed(folded):
        if operation.output in live:
            kept.append(operation)
            live.update(operation.reads())
    kept.reverse()

    written = {operation.output for operation in kept}
    wires = [wire for wire in circuit.wires.values() if wire.is_input() or wire.id in written]

    logger.debug(
        "Folded circuit from %d to %d operations (%d wires replaced)",
        len(circuit.operations),
        len(kept),
        len(replacements),
    )
    return Circuit(modulus=circuit.modulus, wires=wires, operations=kept, outputs=list(circuit.outputs))
