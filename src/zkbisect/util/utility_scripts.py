"""Scripts moving, dropping and pushing stack elements."""

from typing import Callable

from tx_engine import Script, encode_num
from tx_engine.engine.op_codes import (
    OP_0,
    OP_1,
    OP_1NEGATE,
    OP_1SUB,
    OP_2,
    OP_2DROP,
    OP_2DUP,
    OP_2OVER,
    OP_2ROT,
    OP_2SWAP,
    OP_3,
    OP_4,
    OP_5,
    OP_6,
    OP_7,
    OP_8,
    OP_9,
    OP_10,
    OP_11,
    OP_12,
    OP_13,
    OP_14,
    OP_15,
    OP_16,
    OP_ADD,
    OP_DEPTH,
    OP_DROP,
    OP_DUP,
    OP_EQUALVERIFY,
    OP_FROMALTSTACK,
    OP_MOD,
    OP_OVER,
    OP_PICK,
    OP_ROLL,
    OP_ROT,
    OP_SWAP,
    OP_TOALTSTACK,
    OP_TUCK,
)

from zkbisect.types.stack_elements import StackElements

# Single opcodes (or pairs) equivalent to `(position, n_elements)` picks and rolls
PICK_SHORTCUTS = {
    (0, 1): [OP_DUP],
    (1, 1): [OP_OVER],
    (1, 2): [OP_2DUP],
    (3, 2): [OP_2OVER],
    (3, 4): [OP_2OVER, OP_2OVER],
}
ROLL_SHORTCUTS = {
    (1, 1): [OP_SWAP],
    (2, 1): [OP_ROT],
    (2, 2): [OP_ROT, OP_ROT],
    (3, 2): [OP_2SWAP],
    (5, 2): [OP_2ROT],
    (5, 4): [OP_2ROT, OP_2ROT],
}
SMALL_INTEGERS = {
    -1: OP_1NEGATE,
    0: OP_0,
    1: OP_1,
    2: OP_2,
    3: OP_3,
    4: OP_4,
    5: OP_5,
    6: OP_6,
    7: OP_7,
    8: OP_8,
    9: OP_9,
    10: OP_10,
    11: OP_11,
    12: OP_12,
    13: OP_13,
    14: OP_14,
    15: OP_15,
    16: OP_16,
}


def _check_position(position: int, n_elements: int):
    if 0 <= position < n_elements - 1:
        msg = "When positive, position must be at least equal to n_elements - 1: "
        msg += f"position: {position}, n_elements: {n_elements}"
        raise ValueError(msg)


def _depth_index(position: int) -> Script:
    """Push the depth index of the element at `position < 0`, counted from the bottom of the stack (`-1`)."""
    out = Script([OP_DEPTH])
    if position == -1:
        out += Script([OP_1SUB])
    else:
        out += nums_to_script([-position]) + Script.parse_string("OP_SUB")
    return out


def pick(position: int, n_elements: int) -> Script:
    """Copy the `n_elements` elements starting at `position` to the top of the stack.

    Positions count from the top of the stack, starting at `0`. Negative positions count from the bottom, which is
    at position `-1`: the modulus of a chunk is always picked with `pick(-1, 1)`.

    Example:
        >>> pick(2, 2)
        OP_2 OP_PICK OP_2 OP_PICK
        >>> pick(1, 2)
        OP_2DUP
        >>> pick(-1, 1)
        OP_DEPTH OP_1SUB OP_PICK
    """
    _check_position(position, n_elements)
    if (position, n_elements) in PICK_SHORTCUTS:
        return Script(PICK_SHORTCUTS[(position, n_elements)])

    out = Script()
    for i in range(n_elements):
        # Every pick pushes an element, so the index from the bottom moves up
        out += _depth_index(position - i) if position < 0 else nums_to_script([position])
        out += Script([OP_PICK])
    return out


def roll(position: int, n_elements: int) -> Script:
    """Move the `n_elements` elements starting at `position` to the top of the stack.

    Positions are counted as in `pick`.

    Example:
        >>> roll(2, 2)
        OP_ROT OP_ROT
        >>> roll(1, 1)
        OP_SWAP
        >>> roll(-1, 1)
        OP_DEPTH OP_1SUB OP_ROLL
    """
    _check_position(position, n_elements)
    if position == n_elements - 1:
        return Script()
    if (position, n_elements) in ROLL_SHORTCUTS:
        return Script(ROLL_SHORTCUTS[(position, n_elements)])

    out = Script()
    for _ in range(n_elements):
        out += _depth_index(position) if position < 0 else nums_to_script([position])
        out += Script([OP_ROLL])
    return out


def nums_to_script(nums: list[int]) -> Script:
    """Push a list of numbers to the stack, with single opcodes for the integers in `[-1, 16]`.

    Example:
        >>> nums_to_script([-2, -1, 0, 1, 2, 16, 17, 64, 128])
        0x82 OP_1NEGATE OP_0 OP_1 OP_2 OP_16 0x11 0x40 0x8000
    """
    out = Script()
    for n in nums:
        if n in SMALL_INTEGERS:
            out += Script([SMALL_INTEGERS[n]])
        else:
            out.append_pushdata(encode_num(n))
    return out


def mod(is_positive: bool = True, is_constant_reused: bool = True) -> Script:
    """Reduce the second element of the stack modulo the modulus on top of it.

    Stack input:
        - stack:    [..., x, q]
        - altstack: []

    Stack output:
        - stack:    [..., q, x % q] if `is_constant_reused`, else [..., x % q]
        - altstack: []

    Args:
        is_positive (bool): If `True`, the result is the representative in `[0, q)`. Otherwise it has the sign of
            `x`, as `OP_MOD` does. Defaults to `True`.
        is_constant_reused (bool): If `True`, the modulus is left below the result. Defaults to `True`.

    Example:
        With the stack `[-5, 3]`:
            - `mod(is_positive=False, is_constant_reused=False)` leaves `[-2]`
            - `mod(is_positive=True, is_constant_reused=False)` leaves `[1]`
            - `mod(is_positive=True, is_constant_reused=True)` leaves `[3, 1]`
    """
    if not is_positive:
        return Script([OP_TUCK, OP_MOD]) if is_constant_reused else Script([OP_MOD])
    out = Script([OP_TUCK, OP_MOD, OP_OVER, OP_ADD])
    out += Script([OP_OVER, OP_MOD]) if is_constant_reused else Script([OP_SWAP, OP_MOD])
    return out


def verify_bottom_constant(n: int) -> Script:
    """Fail unless the element at the bottom of the stack equals `n`. The stack is left unchanged."""
    return Script([OP_DEPTH, OP_1SUB, OP_PICK]) + nums_to_script([n]) + Script([OP_EQUALVERIFY])


def move(stack_element: StackElements, moving_function: Callable[..., Script]) -> Script:
    """Return the script that brings `stack_element` to the top of the stack with `moving_function`."""
    return moving_function(position=stack_element.position, n_elements=1)


def bool_to_moving_function(is_rolled: bool) -> Callable[..., Script]:
    """Map is_rolled (bool) to corresponding moving function."""
    return roll if is_rolled else pick


def drop(n_elements: int) -> Script:
    """Drop the top `n_elements` elements of the stack.

    Example:
        >>> drop(3)
        OP_2DROP OP_DROP
    """
    return Script([OP_2DROP] * (n_elements // 2) + [OP_DROP] * (n_elements % 2))


def to_altstack(n_elements: int) -> Script:
    """Move the top `n_elements` elements of the stack to the altstack."""
    return Script([OP_TOALTSTACK] * n_elements)


def from_altstack(n_elements: int) -> Script:
    """Move the top `n_elements` elements of the altstack to the stack."""
    return Script([OP_FROMALTSTACK] * n_elements)
