"""Reference arithmetic in F_q."""

from zkbisect.errors import CircuitEvaluationError, InverseOfZeroError


class PrimeField:
    """Arithmetic in F_q on canonical integer representatives in `[0, q)`.

    The class is one of the two backends of the arithmetic layer: every function of `zkbisect.arithmetic` only
    calls the methods below, so it can equally run on integers (this class) or on circuit wires
    (`zkbisect.circuit.builder.CircuitBuilder`).

    Attributes:
        MODULUS (int): The characteristic of the field F_q.
        EXTENSION_DEGREE (int): The extension degree over F_q, always `1`.
    """

    EXTENSION_DEGREE = 1

    def __init__(self, q: int):
        """Initialise F_q.

        Args:
            q (int): The characteristic of the field.
        """
        if q < 2:  # noqa: PLR2004
            msg = f"The modulus must be at least 2: q: {q}"
            raise ValueError(msg)
        self.MODULUS = q

    @property
    def prime_field(self):
        return self

    def zero(self) -> int:
        return 0

    def one(self) -> int:
        return 1

    def constant(self, value: int) -> int:
        """Embed the integer `value` in F_q."""
        return value % self.MODULUS

    def add(self, x: int, y: int) -> int:
        return (x + y) % self.MODULUS

    def sub(self, x: int, y: int) -> int:
        return (x - y) % self.MODULUS

    def neg(self, x: int) -> int:
        return -x % self.MODULUS

    def double(self, x: int) -> int:
        return 2 * x % self.MODULUS

    def mul(self, x: int, y: int) -> int:
        return x * y % self.MODULUS

    def square(self, x: int) -> int:
        return x * x % self.MODULUS

    def inverse(self, x: int) -> int:
        """Compute `x^-1 = x^(q-2)`.

        Raises:
            InverseOfZeroError: If `x == 0`.
        """
        if x % self.MODULUS == 0:
            msg = "Inverse of zero in F_q"
            raise InverseOfZeroError(msg)
        return pow(x, self.MODULUS - 2, self.MODULUS)

    def is_zero(self, x: int) -> int:
        """Return `1` if `x == 0` else `0`."""
        return int(x % self.MODULUS == 0)

    def equal(self, x: int, y: int) -> int:
        """Return `1` if `x == y` else `0`."""
        return int((x - y) % self.MODULUS == 0)

    def select(self, bit: int, x: int, y: int) -> int:
        """Return `x` if `bit == 1`, `y` if `bit == 0`.

        Raises:
            CircuitEvaluationError: If `bit` is not a boolean.
        """
        if bit not in {0, 1}:
            msg = f"Selection bit must be 0 or 1: bit: {bit}"
            raise CircuitEvaluationError(msg)
        return x if bit else y

    def power(self, x: int, exponent: int) -> int:
        if exponent < 0:
            return pow(self.inverse(x), -exponent, self.MODULUS)
        return pow(x, exponent, self.MODULUS)

    def to_list(self, x: int) -> list[int]:
        """Return the coordinates of `x` over F_q."""
        return [x]
