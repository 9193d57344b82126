"""Utility functions."""

from dataclasses import dataclass

from tx_engine import Script

from zkbisect.types.stack_elements import StackElements

# (elements popped, elements pushed) on the main stack, (elements popped, elements pushed) on the altstack
STACK_EFFECTS = {
    "OP_DUP": (1, 2),
    "OP_OVER": (2, 3),
    "OP_2DUP": (2, 4),
    "OP_3DUP": (3, 6),
    "OP_2OVER": (4, 6),
    "OP_SWAP": (2, 2),
    "OP_ROT": (3, 3),
    "OP_2SWAP": (4, 4),
    "OP_2ROT": (6, 6),
    "OP_TUCK": (2, 3),
    "OP_NIP": (2, 1),
    "OP_DROP": (1, 0),
    "OP_2DROP": (2, 0),
    "OP_PICK": (1, 1),
    "OP_ROLL": (1, 0),
    "OP_DEPTH": (0, 1),
    "OP_SIZE": (1, 2),
    "OP_1ADD": (1, 1),
    "OP_1SUB": (1, 1),
    "OP_NEGATE": (1, 1),
    "OP_ABS": (1, 1),
    "OP_NOT": (1, 1),
    "OP_0NOTEQUAL": (1, 1),
    "OP_ADD": (2, 1),
    "OP_SUB": (2, 1),
    "OP_MUL": (2, 1),
    "OP_DIV": (2, 1),
    "OP_MOD": (2, 1),
    "OP_BOOLAND": (2, 1),
    "OP_BOOLOR": (2, 1),
    "OP_NUMEQUAL": (2, 1),
    "OP_NUMEQUALVERIFY": (2, 0),
    "OP_NUMNOTEQUAL": (2, 1),
    "OP_LESSTHAN": (2, 1),
    "OP_GREATERTHAN": (2, 1),
    "OP_EQUAL": (2, 1),
    "OP_EQUALVERIFY": (2, 0),
    "OP_VERIFY": (1, 0),
    "OP_CAT": (2, 1),
    "OP_SPLIT": (2, 2),
    "OP_NUM2BIN": (2, 1),
    "OP_BIN2NUM": (1, 1),
    "OP_HASH256": (1, 1),
    "OP_SHA256": (1, 1),
    "OP_NOP": (0, 0),
}
ALTSTACK_EFFECTS = {
    "OP_TOALTSTACK": (1, 0, 0, 1),
    "OP_FROMALTSTACK": (0, 1, 1, 0),
}
PUSH_OPCODES = frozenset({"OP_0", "OP_FALSE", "OP_TRUE", "OP_1NEGATE", *[f"OP_{n}" for n in range(1, 17)]})


@dataclass(frozen=True)
class StackEffect:
    """Static stack effect of a straight-line script.

    Attributes:
        net (int): The change of the number of elements on the main stack.
        peak (int): The maximum number of elements added on the main stack and the altstack combined, relative to
            the depth at the start of the script.
        altstack (int): The change of the number of elements on the altstack.
    """

    net: int
    peak: int
    altstack: int


def stack_effect(script: Script) -> StackEffect:
    """Compute the stack effect of `script` by walking its opcodes.

    Data pushes and small integer opcodes count as one element. The analysis is exact for the scripts generated by
    this package, whose instruction sequence does not depend on the values on the stack.

    Args:
        script (Script): The script to analyse.

    Returns:
        The net effect and the peak of the combined main and altstack depth.

    Raises:
        ValueError: If the script contains an opcode with an unknown or data-dependent stack effect.
    """
    main, alt, peak = 0, 0, 0
    for token in script.to_string().split():
        if token in PUSH_OPCODES or not token.startswith("OP_"):
            main += 1
        elif token.startswith("OP_PUSHDATA"):
            continue
        elif token in STACK_EFFECTS:
            popped, pushed = STACK_EFFECTS[token]
            main += pushed - popped
        elif token in ALTSTACK_EFFECTS:
            main_popped, main_pushed, alt_popped, alt_pushed = ALTSTACK_EFFECTS[token]
            main += main_pushed - main_popped
            alt += alt_pushed - alt_popped
        else:
            msg = f"Opcode with unknown or data-dependent stack effect: {token}"
            raise ValueError(msg)
        peak = max(peak, main + alt)
    return StackEffect(net=main, peak=peak, altstack=alt)


def optimise_script(script: Script) -> Script:
    """Optimise a script by simplifying certain operations.

    This function simplifies certain operations, such as `OP_TOALTSTACK OP_FROMALTSTACK` and
    `OP_FROMALTSTACK OP_TOALTSTACK`, which cancel each other out and are therefore removed.
    The function iterates over the script until no further operations can be simplified.

    Args:
        script (Script): The script to be optimised.

    Returns:
        The optimised script with redundant operations removed.
    """
    patterns = {
        ("OP_TOALTSTACK", "OP_FROMALTSTACK"): [],
        ("OP_FROMALTSTACK", "OP_TOALTSTACK"): [],
        ("OP_ROT", "OP_ROT", "OP_ROT"): [],
        ("OP_SWAP", "OP_SWAP"): [],
        ("OP_SWAP", "OP_ADD"): ["OP_ADD"],
        ("OP_SWAP", "OP_MUL"): ["OP_MUL"],
        ("OP_SWAP", "OP_NUMEQUAL"): ["OP_NUMEQUAL"],
        ("OP_SWAP", "OP_SUB", "OP_NEGATE"): ["OP_SUB"],
    }

    script_list = script.to_string().split()
    stack = []

    for op in script_list:
        stack.append(op)

        for pattern, replacement in patterns.items():
            pattern_length = len(pattern)

            if len(stack) >= pattern_length:
                last_elements = tuple(stack[-pattern_length:])

                if last_elements == pattern:
                    for _ in range(pattern_length):
                        stack.pop()
                    stack.extend(replacement)
                    break

    return Script.parse_string(" ".join(stack))


def check_order(stack_elements: list[StackElements]) -> ValueError | None:
    """Check that the elements in `stack_elements` do not overlap and are in the right order.

    The function returns `True` if:
        - stack_elements[i].overlaps_on_the_right(stack_elements[i+1]) is `False` for every i
        - stack_elements[i].is_before(stack_elements[i+1]) is `True` for every i

    Args:
        stack_elements (list[StackElements]): The list of stack elements to be checked
    """
    for i in range(len(stack_elements) - 1):
        overlaps, msg = stack_elements[i].overlaps_on_the_right(stack_elements[i + 1])
        if overlaps:
            msg = f"{msg}\nIndex of self: {i}, index of other: {i+1}"
            raise ValueError(msg)
    for i in range(len(stack_elements) - 1):
        if not stack_elements[i].is_before(stack_elements[i + 1]):
            msg = f"Elements {i}: {stack_elements[i]} is not before element {i+1}: {stack_elements[i+1]}"
            raise ValueError(msg)

    return


def bitmask_to_boolean_list(bitmask: int, list_length: int) -> list[bool]:
    """Convert a bitmask to a list of True, False of length list_length.

    Example:
        >>> bitmask_to_boolean_list(1,1)
        [True]
        >>> bitmask_to_boolean_list(1,2)
        [True, False]
        >>> bitmask_to_boolean_list(2,2)
        [False, True]
        >>> bitmask_to_boolean_list(3,2)
        [True, True]
    """
    out = []
    while bitmask > 0:
        out.append(bool(bitmask & 1))
        bitmask = bitmask >> 1
    return [*out, *[False] * (list_length - len(out))]
