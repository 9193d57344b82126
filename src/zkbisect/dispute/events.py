"""Messages exchanged by the parties of a dispute."""

from dataclasses import dataclass
from enum import Enum

from zkbisect.commitment.commitment import BoundaryState


class Role(Enum):
    PROVER = "prover"
    CHALLENGER = "challenger"

    def opponent(self) -> "Role":
        return Role.CHALLENGER if self is Role.PROVER else Role.PROVER


@dataclass(frozen=True)
class Event:
    """A message observed on the chain at `height`."""

    height: int

    # The role allowed to send the message, `None` for messages anybody can observe
    role = None


@dataclass(frozen=True)
class Commit(Event):
    """The prover publishes the digest of every boundary and their Merkle root."""

    digests: tuple[bytes, ...]
    root: bytes

    role = Role.PROVER


@dataclass(frozen=True)
class Challenge(Event):
    """The challenger disputes the final state."""

    role = Role.CHALLENGER


@dataclass(frozen=True)
class Reveal(Event):
    """The prover opens the states of some boundaries."""

    states: tuple[BoundaryState, ...]

    role = Role.PROVER

    def boundaries(self) -> tuple[int, ...]:
        return tuple(state.boundary for state in self.states)


@dataclass(frozen=True)
class Narrow(Event):
    """The challenger states whether it agrees with the state revealed at the midpoint of the bracket."""

    agree: bool

    role = Role.CHALLENGER


@dataclass(frozen=True)
class Concede(Event):
    """The challenger gives up."""

    role = Role.CHALLENGER


@dataclass(frozen=True)
class Tick(Event):
    """The chain reached `height`. Used to observe deadlines when nobody moves."""
