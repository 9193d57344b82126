"""Chain and protocol parameters threaded through the compiler, the packer and the dispute engine."""

from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path

import yaml


class MidpointRule(Enum):
    """Rounding of the bisection midpoint of a bracket [lower, upper]."""

    FLOOR = "floor"
    CEIL = "ceil"

    def midpoint(self, lower: int, upper: int) -> int:
        """Return the midpoint of `[lower, upper]`, strictly between the two ends when `upper - lower >= 2`."""
        if self is MidpointRule.FLOOR:
            return (lower + upper) // 2
        return (lower + upper + 1) // 2


@dataclass(frozen=True)
class ChainParameters:
    """Ceilings of the chain's script engine.

    Attributes:
        max_script_size (int): The maximum serialized size (in bytes) of a chunk program.
        max_stack_depth (int): The maximum number of elements on the main and alt stack combined.
        check_constant (bool): If `True`, every chunk verifies the modulus pushed at the bottom of the stack.
    """

    max_script_size: int = 10_000
    max_stack_depth: int = 1_000
    check_constant: bool = True

    def __post_init__(self):
        if self.max_script_size <= 0:
            msg = f"The maximum script size must be a positive integer: max_script_size: {self.max_script_size}"
            raise ValueError(msg)
        if self.max_stack_depth <= 1:
            msg = f"The maximum stack depth must be at least 2: max_stack_depth: {self.max_stack_depth}"
            raise ValueError(msg)


@dataclass(frozen=True)
class ProtocolParameters:
    """Timing and amounts of the dispute protocol.

    Windows are expressed in blocks and enforced by relative time-locks in the transaction graph.

    Attributes:
        challenge_window (int): Blocks during which a challenger may dispute a commitment.
        response_window (int): Blocks the prover has to reveal a boundary.
        narrow_window (int): Blocks the challenger has to narrow the bracket.
        midpoint_rule (MidpointRule): How the bisection midpoint is rounded.
        deposit_amount (int): Satoshis pegged in.
        fee_amount (int): Satoshis reserved for fees on every template.
        challenge_amount (int): Satoshis a challenger pays to open a dispute.
        reward_amount (int): Satoshis paid to a successful challenger.
    """

    challenge_window: int = 144
    response_window: int = 72
    narrow_window: int = 72
    midpoint_rule: MidpointRule = MidpointRule.FLOOR
    deposit_amount: int = 100_000
    fee_amount: int = 1_000
    challenge_amount: int = 10_000
    reward_amount: int = 20_000

    def __post_init__(self):
        for name in ("challenge_window", "response_window", "narrow_window"):
            if getattr(self, name) <= 0:
                msg = f"Response windows must be positive: {name}: {getattr(self, name)}"
                raise ValueError(msg)
        if self.reward_amount + self.fee_amount > self.deposit_amount:
            msg = "The reward and the fee must be covered by the deposit: "
            msg += f"reward_amount: {self.reward_amount}, fee_amount: {self.fee_amount}, "
            msg += f"deposit_amount: {self.deposit_amount}"
            raise ValueError(msg)


def load_parameters(path: Path | str) -> tuple[ChainParameters, ProtocolParameters]:
    """Load chain and protocol parameters from a YAML file.

    The file may contain a `chain` mapping and a `protocol` mapping; missing keys keep their defaults.

    Example:
        >>> # parameters.yaml
        >>> # chain:
        >>> #   max_script_size: 4000
        >>> # protocol:
        >>> #   midpoint_rule: ceil
    """
    with Path(path).open() as f:
        config = yaml.safe_load(f) or {}

    chain = config.get("chain") or {}
    protocol = dict(config.get("protocol") or {})

    unknown = set(chain) - {f.name for f in fields(ChainParameters)}
    unknown |= set(protocol) - {f.name for f in fields(ProtocolParameters)}
    if unknown:
        msg = f"Unknown parameters in {path}: {sorted(unknown)}"
        raise ValueError(msg)

    if "midpoint_rule" in protocol:
        protocol["midpoint_rule"] = MidpointRule(protocol["midpoint_rule"])

    return ChainParameters(**chain), ProtocolParameters(**protocol)
