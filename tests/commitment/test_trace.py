import pytest
from tx_engine import hash256d

from tests.circuit.util import single_operation_parameters, three_mul_circuit
from zkbisect.commitment.commitment import commit
from zkbisect.commitment.merkle_tree import inclusion_proof, merkle_levels, merkle_root, verify_inclusion
from zkbisect.commitment.trace import ExecutionTrace, TraceCommitment
from zkbisect.compiler.packer import Packer
from zkbisect.execution.evaluator import ChunkExecutor


def leaves(n: int) -> list[bytes]:
    return [hash256d(bytes([i])) for i in range(n)]


def three_mul_trace() -> ExecutionTrace:
    circuit, inputs = three_mul_circuit()
    program = Packer(single_operation_parameters(circuit)).pack(circuit)
    return ExecutionTrace.from_inputs(program, inputs)


def test_merkle_root():
    a, b, c = leaves(3)

    assert merkle_root([a]) == a
    assert merkle_root([a, b]) == hash256d(a + b)
    assert merkle_root([a, b, c]) == hash256d(hash256d(a + b) + hash256d(c + c))
    assert len(merkle_levels([a, b, c])) == 3


@pytest.mark.parametrize("n_leaves", range(1, 10))
def test_inclusion_proofs(n_leaves):
    tree_leaves = leaves(n_leaves)
    root = merkle_root(tree_leaves)

    for index, leaf in enumerate(tree_leaves):
        proof = inclusion_proof(tree_leaves, index)
        assert verify_inclusion(root, leaf, proof)
        assert not verify_inclusion(root, hash256d(b"not a leaf"), proof)


def test_merkle_errors():
    with pytest.raises(ValueError, match=r"Cannot build a Merkle tree without leaves"):
        merkle_root([])
    with pytest.raises(ValueError, match=r"Leaf index out of range: index: 3, number of leaves: 3"):
        inclusion_proof(leaves(3), 3)


def test_trace_from_inputs():
    trace = three_mul_trace()

    assert len(trace) == trace.program.n_chunks + 1 == 4
    assert trace.state(0).values == (3, 5)
    assert trace.state(1).as_dict() == {0: 3, 1: 5, 2: 15}
    assert trace.state(2).as_dict() == {1: 5, 3: 7}
    assert trace.output_values() == (16,)
    assert [state.boundary for state in trace.states] == [0, 1, 2, 3]


def test_trace_with_fault():
    trace = three_mul_trace()
    executor = ChunkExecutor(trace.program)

    faulty = trace.with_fault(1, 3, 8)

    assert faulty.states[:2] == trace.states[:2]
    assert faulty.state(2).as_dict() == {1: 5, 3: 8}
    # Every chunk but the faulty one is consistent with its input
    assert executor.execute(1, faulty.state(1)) != faulty.state(2)
    assert executor.execute(2, faulty.state(2)) == faulty.state(3)
    assert faulty.output_values() == (8 * 5 % 19,)


@pytest.mark.parametrize(
    ("chunk", "wire", "value", "msg"),
    [
        (3, 4, 0, r"Chunk index out of range"),
        (1, 0, 1, r"Wire 0 is not live at boundary 2"),
        (1, 3, 7, r"The value 7 of wire 3 is not a fault"),
    ],
)
def test_trace_with_fault_errors(chunk, wire, value, msg):
    with pytest.raises(ValueError, match=msg):
        three_mul_trace().with_fault(chunk, wire, value)


def test_trace_commitment():
    trace = three_mul_trace()

    commitment = TraceCommitment.from_trace(trace)

    assert commitment.digests == tuple(commit(state) for state in trace.states)
    assert commitment.root == merkle_root(list(commitment.digests))
    assert commitment == TraceCommitment.from_digests(list(commitment.digests))
    assert commitment.n_chunks == 3
    assert commitment.is_consistent()
    for boundary in range(4):
        proof = commitment.inclusion_proof(boundary)
        assert TraceCommitment.verify_inclusion(commitment.root, commitment.digest(boundary), proof)

    tampered = TraceCommitment(digests=commitment.digests, root=bytes(32))
    assert not tampered.is_consistent()
