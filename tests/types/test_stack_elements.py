import re

import pytest

from zkbisect.types.stack_elements import StackBaseElement, StackLayout, StackNumber, StackWire


@pytest.mark.parametrize(
    ("stack_element_type", "parameters", "msg"),
    [
        (
            [StackNumber, StackNumber],
            [
                {"position": 1, "negate": False},
                {"position": 1, "negate": False},
            ],
            r"Self and other overlap: self\.position: \d+, other\.position: \d+",
        ),
        (
            [StackBaseElement, StackBaseElement],
            [
                {"position": 1},
                {"position": 2},
            ],
            r"Self and other overlap: self\.position: \d+, other\.position: \d+",
        ),
    ],
)
def test_overlaps_on_the_right(stack_element_type, parameters, msg):
    overlaps, msg_returned = stack_element_type[0](**parameters[0]).overlaps_on_the_right(
        stack_element_type[1](**parameters[1])
    )
    assert overlaps
    assert re.match(msg, msg_returned)


def test_shift():
    element = StackWire(position=3, wire=7, negate=True)

    shifted = element.shift(2)

    assert shifted == StackWire(position=5, wire=7, negate=True)
    assert element.position == 3
    assert StackNumber(2, False).shift(-1) == StackNumber(1, False)


@pytest.mark.parametrize(
    ("slots", "wire", "expected"),
    [
        ([0, 1, 2], 2, 0),
        ([0, 1, 2], 0, 2),
        ([5, 3, 5, 4], 5, 3),
    ],
)
def test_layout_position(slots, wire, expected):
    layout = StackLayout(slots)

    assert layout.position(wire) == expected
    assert layout.element(wire) == StackWire(expected, wire)


def test_layout_pick_roll_pop():
    layout = StackLayout([0, 1, 2])

    layout.pick(0)
    assert layout.slots == [0, 1, 2, 0]
    layout.roll(1)
    assert layout.slots == [0, 2, 0, 1]
    # Rolling moves the deepest copy
    layout.roll(0)
    assert layout.slots == [2, 0, 1, 0]
    assert layout.pop(2) == [1, 0]
    assert layout.slots == [2, 0]
    layout.push(9)
    assert len(layout) == 3
    assert 9 in layout


def test_layout_errors():
    layout = StackLayout([0, 1])

    with pytest.raises(ValueError, match=r"Wire 3 is not on the stack: slots: \[0, 1\]"):
        layout.position(3)
    with pytest.raises(ValueError, match=r"Cannot pop 3 slots from a stack of 2"):
        layout.pop(3)
