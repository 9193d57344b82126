"""Generic quadratic and cubic extensions over any field backend."""

from typing import Callable


class _ExtensionField:
    """Operations shared by quadratic and cubic extensions.

    An element is a tuple of `DEGREE` elements of `base`. Every method only calls `base`, so the extension runs on
    any backend implementing the prime field interface (reference integers or circuit wires).
    """

    DEGREE = 0

    def __init__(self, base, mul_by_non_residue: Callable):
        """Initialise the extension `base[t] / (t^DEGREE - NON_RESIDUE)`.

        Args:
            base: The base field backend.
            mul_by_non_residue (Callable): Function `x -> NON_RESIDUE * x` for `x` in `base`.
        """
        self.base = base
        self.mul_by_non_residue = mul_by_non_residue
        self.EXTENSION_DEGREE = base.EXTENSION_DEGREE * self.DEGREE

    @property
    def prime_field(self):
        """The prime field at the bottom of the tower."""
        return self.base.prime_field

    def zero(self) -> tuple:
        return tuple(self.base.zero() for _ in range(self.DEGREE))

    def one(self) -> tuple:
        return (self.base.one(), *[self.base.zero() for _ in range(self.DEGREE - 1)])

    def constant(self, value) -> tuple:
        """Embed a compile-time constant.

        Args:
            value (int | list[int]): Either an integer, embedded in the prime field, or the list of the
                `EXTENSION_DEGREE` coordinates of the constant over the prime field.
        """
        if isinstance(value, int):
            return (self.base.constant(value), *[self.base.zero() for _ in range(self.DEGREE - 1)])
        if len(value) != self.EXTENSION_DEGREE:
            msg = "The number of coordinates does not match the extension degree: "
            msg += f"len(value): {len(value)}, extension_degree: {self.EXTENSION_DEGREE}"
            raise ValueError(msg)
        step = self.base.EXTENSION_DEGREE
        return tuple(
            self.base.constant(value[i * step] if step == 1 else value[i * step : (i + 1) * step])
            for i in range(self.DEGREE)
        )

    def add(self, x: tuple, y: tuple) -> tuple:
        return tuple(self.base.add(a, b) for a, b in zip(x, y, strict=True))

    def sub(self, x: tuple, y: tuple) -> tuple:
        return tuple(self.base.sub(a, b) for a, b in zip(x, y, strict=True))

    def neg(self, x: tuple) -> tuple:
        return tuple(self.base.neg(a) for a in x)

    def double(self, x: tuple) -> tuple:
        return tuple(self.base.double(a) for a in x)

    def scale(self, x: tuple, s) -> tuple:
        """Multiply every coordinate of `x` by the base field element `s`."""
        return tuple(self.base.mul(a, s) for a in x)

    def select(self, bit, x: tuple, y: tuple) -> tuple:
        """Return `x` if `bit == 1`, `y` if `bit == 0`, coordinate by coordinate."""
        return tuple(self.base.select(bit, a, b) for a, b in zip(x, y, strict=True))

    def is_zero(self, x: tuple):
        """Return the prime field bit `1` if `x == 0` else `0`."""
        out = self.base.is_zero(x[0])
        for a in x[1:]:
            out = self.prime_field.mul(out, self.base.is_zero(a))
        return out

    def equal(self, x: tuple, y: tuple):
        """Return the prime field bit `1` if `x == y` else `0`."""
        return self.is_zero(self.sub(x, y))

    def power(self, x: tuple, exponent: int) -> tuple:
        """Compute `x^exponent` by square-and-multiply over the bits of the constant `exponent`."""
        if exponent < 0:
            return self.power(self.inverse(x), -exponent)
        if exponent == 0:
            return self.one()
        out = x
        for digit in bin(exponent)[3:]:
            out = self.square(out)
            if digit == "1":
                out = self.mul(out, x)
        return out

    def to_list(self, x: tuple) -> list:
        """Return the coordinates of `x` over the prime field."""
        return [coordinate for a in x for coordinate in self.base.to_list(a)]


class QuadraticExtension(_ExtensionField):
    """Arithmetic in `base[t] / (t^2 - NON_RESIDUE)`.

    Elements are couples `(x0, x1)` representing `x0 + x1 * t`.
    """

    DEGREE = 2

    def mul(self, x: tuple, y: tuple) -> tuple:
        """Karatsuba multiplication, three multiplications in `base`."""
        base = self.base
        v0 = base.mul(x[0], y[0])
        v1 = base.mul(x[1], y[1])
        c0 = base.add(v0, self.mul_by_non_residue(v1))
        c1 = base.sub(base.sub(base.mul(base.add(x[0], x[1]), base.add(y[0], y[1])), v0), v1)
        return (c0, c1)

    def square(self, x: tuple) -> tuple:
        """Complex squaring, two multiplications in `base`."""
        base = self.base
        v = base.mul(x[0], x[1])
        c0 = base.mul(base.add(x[0], x[1]), base.add(x[0], self.mul_by_non_residue(x[1])))
        c0 = base.sub(base.sub(c0, v), self.mul_by_non_residue(v))
        return (c0, base.double(v))

    def inverse(self, x: tuple) -> tuple:
        """Compute `x^-1 = conjugate(x) / norm(x)`.

        Raises:
            InverseOfZeroError: If `x == 0` (raised by the base field).
        """
        base = self.base
        norm = base.sub(base.square(x[0]), self.mul_by_non_residue(base.square(x[1])))
        norm_inverse = base.inverse(norm)
        return (base.mul(x[0], norm_inverse), base.neg(base.mul(x[1], norm_inverse)))

    def conjugate(self, x: tuple) -> tuple:
        return (x[0], self.base.neg(x[1]))

    def mul_by_generator(self, x: tuple) -> tuple:
        """Compute `x * t`."""
        return (self.mul_by_non_residue(x[1]), x[0])


class CubicExtension(_ExtensionField):
    """Arithmetic in `base[t] / (t^3 - NON_RESIDUE)`.

    Elements are triplets `(x0, x1, x2)` representing `x0 + x1 * t + x2 * t^2`.
    """

    DEGREE = 3

    def mul(self, x: tuple, y: tuple) -> tuple:
        """Karatsuba multiplication, six multiplications in `base`."""
        base = self.base
        nr = self.mul_by_non_residue
        v0 = base.mul(x[0], y[0])
        v1 = base.mul(x[1], y[1])
        v2 = base.mul(x[2], y[2])
        c0 = base.mul(base.add(x[1], x[2]), base.add(y[1], y[2]))
        c0 = base.add(v0, nr(base.sub(base.sub(c0, v1), v2)))
        c1 = base.mul(base.add(x[0], x[1]), base.add(y[0], y[1]))
        c1 = base.add(base.sub(base.sub(c1, v0), v1), nr(v2))
        c2 = base.mul(base.add(x[0], x[2]), base.add(y[0], y[2]))
        c2 = base.add(base.sub(base.sub(c2, v0), v2), v1)
        return (c0, c1, c2)

    def square(self, x: tuple) -> tuple:
        """Chung-Hasan squaring (SQR2)."""
        base = self.base
        nr = self.mul_by_non_residue
        s0 = base.square(x[0])
        s1 = base.double(base.mul(x[0], x[1]))
        s2 = base.square(base.add(base.sub(x[0], x[1]), x[2]))
        s3 = base.double(base.mul(x[1], x[2]))
        s4 = base.square(x[2])
        c0 = base.add(s0, nr(s3))
        c1 = base.add(s1, nr(s4))
        c2 = base.sub(base.sub(base.add(base.add(s1, s2), s3), s0), s4)
        return (c0, c1, c2)

    def inverse(self, x: tuple) -> tuple:
        """Compute `x^-1` through the adjugate of the multiplication matrix of `x`.

        Raises:
            InverseOfZeroError: If `x == 0` (raised by the base field).
        """
        base = self.base
        nr = self.mul_by_non_residue
        a = base.sub(base.square(x[0]), nr(base.mul(x[1], x[2])))
        b = base.sub(nr(base.square(x[2])), base.mul(x[0], x[1]))
        c = base.sub(base.square(x[1]), base.mul(x[0], x[2]))
        norm = base.add(base.mul(x[2], b), base.mul(x[1], c))
        norm = base.add(base.mul(x[0], a), nr(norm))
        norm_inverse = base.inverse(norm)
        return (base.mul(a, norm_inverse), base.mul(b, norm_inverse), base.mul(c, norm_inverse))

    def mul_by_generator(self, x: tuple) -> tuple:
        """Compute `x * t`."""
        return (self.mul_by_non_residue(x[2]), x[0], x[1])
