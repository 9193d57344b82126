"""Binding digests of boundary states."""

from dataclasses import dataclass
from typing import Sequence

from tx_engine import hash256d

from zkbisect.errors import CommitmentMismatch


def encoded_length(bit_width: int) -> int:
    """Return the number of bytes used to encode a value of `bit_width` bits.

    One more byte than strictly needed when `bit_width` is a multiple of 8, so that the most significant bit is
    always clear and the encoding is also a valid non-negative script number.
    """
    return bit_width // 8 + 1


def encode_boundary(bit_widths: Sequence[int], values: Sequence[int]) -> bytes:
    """Encode a boundary state.

    Every value is encoded little-endian on `bit_width // 8 + 1` bytes, and the encodings are concatenated in the
    order of `values` (ascending wire id).

    Args:
        bit_widths (Sequence[int]): The bit width of every wire.
        values (Sequence[int]): The value of every wire.

    Returns:
        The fixed-width encoding of the state.

    Raises:
        ValueError: If the lengths differ or a value is out of `[0, 2**bit_width)`.

    Example:
        >>> encode_boundary([1, 8], [1, 255]).hex()
        '01ff00'
    """
    if len(bit_widths) != len(values):
        msg = f"Mismatching lengths: bit_widths: {len(bit_widths)}, values: {len(values)}"
        raise ValueError(msg)
    out = b""
    for bit_width, value in zip(bit_widths, values):
        if not 0 <= value < 1 << bit_width:
            msg = f"Value out of range: value: {value}, bit_width: {bit_width}"
            raise ValueError(msg)
        out += value.to_bytes(encoded_length(bit_width), "little")
    return out


@dataclass(frozen=True)
class BoundaryState:
    """The values of the wires live at a boundary.

    Attributes:
        boundary (int): The boundary index.
        wires (tuple[int, ...]): The live wires, ascending.
        bit_widths (tuple[int, ...]): The bit width of every live wire.
        values (tuple[int, ...]): The value of every live wire.
    """

    boundary: int
    wires: tuple[int, ...]
    bit_widths: tuple[int, ...]
    values: tuple[int, ...]

    def __post_init__(self):
        if not len(self.wires) == len(self.bit_widths) == len(self.values):
            msg = f"Mismatching lengths: wires: {len(self.wires)}, bit_widths: {len(self.bit_widths)}, "
            msg += f"values: {len(self.values)}"
            raise ValueError(msg)
        if list(self.wires) != sorted(set(self.wires)):
            msg = f"Wires must be distinct and ascending: {self.wires}"
            raise ValueError(msg)

    def as_dict(self) -> dict[int, int]:
        return dict(zip(self.wires, self.values))

    def encode(self) -> bytes:
        return encode_boundary(self.bit_widths, self.values)

    def replace(self, wire: int, value: int) -> "BoundaryState":
        """Return a copy of the state where `wire` holds `value`."""
        if wire not in self.wires:
            msg = f"Wire {wire} is not live at boundary {self.boundary}"
            raise ValueError(msg)
        values = tuple(value if w == wire else v for w, v in zip(self.wires, self.values))
        return BoundaryState(self.boundary, self.wires, self.bit_widths, values)


def commit(state: BoundaryState) -> bytes:
    """Return the digest `hash256d(encode_boundary(state))` of a boundary state."""
    return hash256d(state.encode())


def verify_opening(digest: bytes, state: BoundaryState) -> bool:
    """Check whether `state` opens `digest`.

    States whose values do not fit their bit widths open nothing.
    """
    try:
        return commit(state) == digest
    except ValueError:
        return False


def check_opening(digest: bytes, state: BoundaryState):
    """Check that `state` opens `digest`.

    Raises:
        CommitmentMismatch: If it does not.
    """
    try:
        actual = commit(state)
    except ValueError:
        actual = b""
    if actual != digest:
        raise CommitmentMismatch(state.boundary, digest, actual)
