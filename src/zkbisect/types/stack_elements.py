"""Classes defining types of elements manipulated on the stack."""

from copy import deepcopy
from dataclasses import dataclass
from typing import Self, Union


@dataclass(init=False)
class StackBaseElement:
    """Base element on the stack.

    Attributes:
        position (int): the position of StackBaseElement on the stack, counted from the top (`0`). Negative
            positions are counted from the bottom (`-1`).
    """

    position: int

    def __init__(self, position: int):
        """Initialise StackBaseElement, representing an element on the stack.

        Args:
            position (int): the position of StackBaseElement on the stack.
        """
        self.position = position

    def is_before(self, other) -> bool:
        """Check whether self comes before (is deeper than) other in the stack."""
        return self.position > other.position

    def overlaps_on_the_right(self, other) -> tuple[bool, str]:
        """Check whether the end of self overlaps with the beginning of other."""
        if self.position <= other.position:
            msg = "Self and other overlap: "
            msg += f"self.position: {self.position}, other.position: {other.position}"
            return True, msg
        return False, ""

    def shift(self, n: int) -> Self:
        """Return a copy of self shifted by n in the stack."""
        out = deepcopy(self)
        out.position += n
        return out


@dataclass(init=False)
class StackNumber(StackBaseElement):
    """Number on the stack.

    Attributes:
        position (int): the position of StackNumber on the stack.
        negate (bool): whether the number should be negated when used in a script.
    """

    position: int
    negate: bool

    def __init__(self, position: int, negate: bool):
        """Initialise StackNumber, representing a number (integer) on the stack.

        Args:
            position (int): the position of StackNumber on the stack.
            negate (bool): whether the number should be negated when used in a script.
        """
        super().__init__(position)
        self.negate = negate


@dataclass(init=False)
class StackWire(StackNumber):
    """Value of a circuit wire on the stack.

    Attributes:
        position (int): the position of the value on the stack.
        negate (bool): whether the value should be negated when used in a script.
        wire (int): the id of the wire the value belongs to.
    """

    position: int
    negate: bool
    wire: int

    def __init__(self, position: int, wire: int, negate: bool = False):
        """Initialise StackWire, the value of wire `wire` at position `position` on the stack.

        Args:
            position (int): the position of the value on the stack.
            wire (int): the id of the wire.
            negate (bool): whether the value should be negated when used in a script. Defaults to `False`.
        """
        super().__init__(position, negate)
        self.wire = wire


class StackLayout:
    """Compile-time model of the stack: the wire held by every slot, from bottom to top.

    The modulus `q` sits below the slots and is not part of the layout.

    Attributes:
        slots (list[int]): The wire ids, bottom to top.
    """

    def __init__(self, slots: list[int] | None = None):
        self.slots = list(slots) if slots is not None else []

    def __len__(self):
        return len(self.slots)

    def __contains__(self, wire: int):
        return wire in self.slots

    def position(self, wire: int) -> int:
        """Return the position of `wire` counted from the top of the stack.

        Raises:
            ValueError: If `wire` is not on the stack.
        """
        if wire not in self.slots:
            msg = f"Wire {wire} is not on the stack: slots: {self.slots}"
            raise ValueError(msg)
        return len(self.slots) - 1 - self.slots.index(wire)

    def element(self, wire: int) -> StackWire:
        return StackWire(self.position(wire), wire)

    def push(self, wire: int):
        self.slots.append(wire)

    def pop(self, n: int = 1) -> list[int]:
        """Remove the top `n` slots and return them, bottom to top."""
        if n > len(self.slots):
            msg = f"Cannot pop {n} slots from a stack of {len(self.slots)}"
            raise ValueError(msg)
        out = self.slots[len(self.slots) - n :]
        del self.slots[len(self.slots) - n :]
        return out

    def pick(self, wire: int):
        """Record that a copy of `wire` was pushed on top of the stack."""
        self.position(wire)
        self.slots.append(wire)

    def roll(self, wire: int):
        """Record that `wire` was moved to the top of the stack."""
        self.slots.pop(len(self.slots) - 1 - self.position(wire))
        self.slots.append(wire)


type StackElements = Union[StackBaseElement, StackNumber, StackWire]
