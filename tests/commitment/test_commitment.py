from dataclasses import dataclass

import pytest
from tx_engine import Context, Script, hash256d

from zkbisect.commitment.commitment import (
    BoundaryState,
    check_opening,
    commit,
    encode_boundary,
    encoded_length,
    verify_opening,
)
from zkbisect.commitment.scripts import hash_values, serialize_values, verify_digest
from zkbisect.errors import CommitmentMismatch
from zkbisect.util.utility_scripts import nums_to_script

MAX_254 = (1 << 254) - 1


@dataclass
class Boundaries:
    test_data = {
        "test_encoding": [
            {"bit_widths": [1, 8], "values": [1, 255], "expected": "01ff00"},
            {"bit_widths": [5, 5], "values": [3, 16], "expected": "0310"},
            {"bit_widths": [16], "values": [0x1234], "expected": "341200"},
            {"bit_widths": [9, 1], "values": [256, 0], "expected": "000100"},
            {"bit_widths": [], "values": [], "expected": ""},
        ],
        "test_scripts": [
            {"bit_widths": [5], "values": [7]},
            {"bit_widths": [1, 5, 5], "values": [1, 0, 18]},
            {"bit_widths": [8, 8], "values": [128, 255]},
            {"bit_widths": [16, 1, 7], "values": [65535, 0, 127]},
            {"bit_widths": [254, 254, 1], "values": [MAX_254, 1, 1]},
        ],
    }


def generate_test_cases(test_name):
    return [(case["bit_widths"], case["values"]) for case in Boundaries.test_data[test_name]]


@pytest.mark.parametrize(
    ("bit_widths", "values", "expected"),
    [(case["bit_widths"], case["values"], case["expected"]) for case in Boundaries.test_data["test_encoding"]],
)
def test_encoding(bit_widths, values, expected):
    assert encode_boundary(bit_widths, values).hex() == expected
    assert len(encode_boundary(bit_widths, values)) == sum(encoded_length(bit_width) for bit_width in bit_widths)


@pytest.mark.parametrize(
    ("bit_widths", "values", "msg"),
    [
        ([5, 5], [1], r"Mismatching lengths"),
        ([5], [32], r"Value out of range: value: 32, bit_width: 5"),
        ([8], [-1], r"Value out of range: value: -1, bit_width: 8"),
    ],
)
def test_encoding_errors(bit_widths, values, msg):
    with pytest.raises(ValueError, match=msg):
        encode_boundary(bit_widths, values)


def test_encoding_is_injective_on_fixed_layouts():
    assert encode_boundary([8, 8], [1, 0]) != encode_boundary([8, 8], [0, 1])
    assert commit(BoundaryState(0, (0, 1), (8, 8), (1, 0))) != commit(BoundaryState(0, (0, 1), (8, 8), (0, 1)))


def test_boundary_state():
    state = BoundaryState(boundary=2, wires=(1, 4), bit_widths=(5, 1), values=(7, 1))

    assert state.as_dict() == {1: 7, 4: 1}
    assert state.encode() == encode_boundary([5, 1], [7, 1])
    assert state.replace(4, 0) == BoundaryState(boundary=2, wires=(1, 4), bit_widths=(5, 1), values=(7, 0))
    assert state.values == (7, 1)

    with pytest.raises(ValueError, match=r"Wire 3 is not live at boundary 2"):
        state.replace(3, 0)


@pytest.mark.parametrize(
    ("wires", "bit_widths", "values", "msg"),
    [
        ((1, 2), (5,), (1, 2), r"Mismatching lengths"),
        ((2, 1), (5, 5), (1, 2), r"Wires must be distinct and ascending"),
        ((1, 1), (5, 5), (1, 2), r"Wires must be distinct and ascending"),
    ],
)
def test_boundary_state_errors(wires, bit_widths, values, msg):
    with pytest.raises(ValueError, match=msg):
        BoundaryState(boundary=0, wires=wires, bit_widths=bit_widths, values=values)


def test_opening():
    state = BoundaryState(boundary=1, wires=(0, 2), bit_widths=(5, 5), values=(3, 4))
    digest = commit(state)

    assert digest == hash256d(encode_boundary([5, 5], [3, 4]))
    assert verify_opening(digest, state)
    check_opening(digest, state)

    wrong = state.replace(2, 5)
    assert not verify_opening(digest, wrong)
    with pytest.raises(CommitmentMismatch) as exc_info:
        check_opening(digest, wrong)
    assert exc_info.value.boundary == 1
    assert exc_info.value.expected == digest
    assert exc_info.value.actual == commit(wrong)

    out_of_range = state.replace(2, 32)
    assert not verify_opening(digest, out_of_range)
    with pytest.raises(CommitmentMismatch, match=r"Opening of boundary 1 does not match its commitment"):
        check_opening(digest, out_of_range)


@pytest.mark.parametrize(("bit_widths", "values"), generate_test_cases("test_scripts"))
def test_serialize_values(bit_widths, values):
    unlock = nums_to_script(values)

    lock = serialize_values(bit_widths)
    lock.append_pushdata(encode_boundary(bit_widths, values))
    lock += Script.parse_string("OP_EQUAL")

    context = Context(script=unlock + lock)
    assert context.evaluate()
    assert context.get_stack().size() == 1
    assert context.get_altstack().size() == 0


@pytest.mark.parametrize(("bit_widths", "values"), generate_test_cases("test_scripts"))
def test_hash_values(bit_widths, values):
    unlock = nums_to_script(values)

    lock = hash_values(bit_widths, is_rolled=False)
    lock.append_pushdata(hash256d(encode_boundary(bit_widths, values)))
    lock += Script.parse_string("OP_EQUALVERIFY")

    context = Context(script=unlock + lock)
    assert context.evaluate()
    assert context.get_stack().size() == len(values)
    assert context.get_altstack().size() == 0


@pytest.mark.parametrize(("bit_widths", "values"), generate_test_cases("test_scripts"))
def test_verify_digest(bit_widths, values):
    digest = hash256d(encode_boundary(bit_widths, values))
    wrong_values = [*values[:-1], values[-1] ^ 1]

    lock = verify_digest(bit_widths, digest) + Script.parse_string("OP_1")
    context = Context(script=nums_to_script(values) + lock)
    assert context.evaluate()
    assert context.get_stack().size() == 1

    context = Context(script=nums_to_script(wrong_values) + lock)
    assert not context.evaluate(quiet=True)

    # The opening result is left on the stack
    lock = verify_digest(bit_widths, digest, is_equal_verify=False) + Script.parse_string("OP_NOT")
    context = Context(script=nums_to_script(wrong_values) + lock)
    assert context.evaluate()
    assert context.get_stack().size() == 1


def test_empty_state_scripts():
    lock = hash_values([])
    lock.append_pushdata(hash256d(b""))
    lock += Script.parse_string("OP_EQUAL")

    context = Context(script=lock)
    assert context.evaluate()
    assert context.get_stack().size() == 1
