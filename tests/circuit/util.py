from zkbisect.circuit.builder import CircuitBuilder
from zkbisect.circuit.circuit import Circuit
from zkbisect.compiler.chunk_compiler import ChunkCompiler
from zkbisect.parameters import ChainParameters

UNBOUNDED = ChainParameters(max_script_size=10**9, max_stack_depth=10**9)


def three_mul_circuit(q: int = 19) -> tuple[Circuit, dict[int, int]]:
    """`((x * y) * x) * y`, with inputs `x = 3`, `y = 5`."""
    builder = CircuitBuilder(q)
    x = builder.public_input("x")
    y = builder.private_input("y")
    builder.mark_output(builder.mul(builder.mul(builder.mul(x, y), x), y))
    return builder.build(), {x: 3, y: 5}


def mixed_circuit(q: int = 19) -> tuple[Circuit, dict[int, int]]:
    """A circuit using every opcode, with inputs `x = 7`, `y = 4`."""
    builder = CircuitBuilder(q)
    x = builder.public_input("x")
    y = builder.private_input("y")
    s = builder.add(x, y)
    d = builder.sub(x, y)
    m = builder.mul(s, builder.neg(d))
    sq = builder.square(m)
    is_zero = builder.is_zero(d)
    selected = builder.select(is_zero, s, sq)
    out = builder.inverse(builder.add(selected, builder.constant(3)))
    builder.mark_output(out)
    builder.mark_output(builder.equal(x, y))
    builder.mark_output(builder.mul(out, builder.constant(2)))
    return builder.build(), {x: 7, y: 4}


def chain_circuit(n_operations: int, q: int = 19) -> tuple[Circuit, dict[int, int]]:
    """`n_operations` alternating multiplications and additions accumulating `x`."""
    builder = CircuitBuilder(q)
    x = builder.public_input("x")
    acc = x
    for i in range(n_operations):
        acc = builder.mul(acc, x) if i % 2 == 0 else builder.add(acc, x)
    builder.mark_output(acc)
    return builder.build(), {x: 2}


def single_operation_parameters(circuit: Circuit) -> ChainParameters:
    """Return ceilings fitting every single operation of `circuit` and no pair of consecutive operations.

    The sizes are those of the programs disproving the operations, which bound the size of a chunk.
    """
    compiler = ChunkCompiler(circuit, UNBOUNDED)
    n_operations = len(circuit.operations)
    max_size = max(compiler.compile_disprove(i, i + 1).size for i in range(n_operations))
    min_pair = min(compiler.compile_disprove(i, i + 2).size for i in range(n_operations - 1))
    assert max_size < min_pair
    return ChainParameters(max_script_size=max_size)
