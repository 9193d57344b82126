"""Affine arithmetic on short Weierstrass curves `y^2 = x^3 + a*x + b`."""


class ShortWeierstrassCurve:
    """Affine point arithmetic over any field backend.

    Points are couples `(x, y)` of field elements. The point at infinity has no affine representation: formulas
    are incomplete, so adding a point to its opposite, adding a point to itself with `add` or doubling a point of
    order two divides by zero and raises `InverseOfZeroError`.

    Attributes:
        field: The backend the coordinates live in.
        CURVE_A: The coefficient `a`, as a compile-time constant.
        CURVE_B: The coefficient `b`, as a compile-time constant.
    """

    def __init__(self, field, a, b):
        """Initialise the curve.

        Args:
            field: The backend the coordinates live in.
            a (int | list[int]): The coefficient `a`, in the format accepted by `field.constant`.
            b (int | list[int]): The coefficient `b`, in the format accepted by `field.constant`.
        """
        self.field = field
        self.CURVE_A = a
        self.CURVE_B = b
        self.is_a_zero = a == 0 or (not isinstance(a, int) and not any(a))

    def curve_equation(self, point: tuple):
        """Return `x^3 + a*x + b - y^2`."""
        field = self.field
        x, y = point
        out = field.mul(field.square(x), x)
        if not self.is_a_zero:
            out = field.add(out, field.mul(field.constant(self.CURVE_A), x))
        out = field.add(out, field.constant(self.CURVE_B))
        return field.sub(out, field.square(y))

    def is_on_curve(self, point: tuple):
        """Return the prime field bit `1` if `point` satisfies the curve equation else `0`."""
        return self.field.is_zero(self.curve_equation(point))

    def negate(self, point: tuple) -> tuple:
        return (point[0], self.field.neg(point[1]))

    def chord_gradient(self, p: tuple, q: tuple):
        """Return the gradient `(y_q - y_p) / (x_q - x_p)` of the line through `p` and `q`."""
        field = self.field
        return field.mul(field.sub(q[1], p[1]), field.inverse(field.sub(q[0], p[0])))

    def tangent_gradient(self, p: tuple):
        """Return the gradient `(3 * x_p^2 + a) / (2 * y_p)` of the tangent at `p`."""
        field = self.field
        x_squared = field.square(p[0])
        numerator = field.add(field.double(x_squared), x_squared)
        if not self.is_a_zero:
            numerator = field.add(numerator, field.constant(self.CURVE_A))
        return field.mul(numerator, field.inverse(field.double(p[1])))

    def add_with_gradient(self, p: tuple, q: tuple, gradient) -> tuple:
        """Compute `p + q` given the gradient of the line through them (`q == p` for doubling).

        Returns:
            The couple `(x, y)` with `x = gradient^2 - x_p - x_q` and `y = gradient * (x_p - x) - y_p`.
        """
        field = self.field
        x = field.sub(field.sub(field.square(gradient), p[0]), q[0])
        y = field.sub(field.mul(gradient, field.sub(p[0], x)), p[1])
        return (x, y)

    def add(self, p: tuple, q: tuple) -> tuple:
        """Compute `p + q` for `p != ±q`."""
        return self.add_with_gradient(p, q, self.chord_gradient(p, q))

    def double(self, p: tuple) -> tuple:
        """Compute `2p` for `p` not of order two."""
        return self.add_with_gradient(p, p, self.tangent_gradient(p))

    def scalar_mul(self, p: tuple, scalar: int) -> tuple:
        """Compute `scalar * p` by double-and-add over the bits of the compile-time constant `scalar`.

        The sequence of field operations only depends on `scalar`, never on the coordinates of `p`.

        Raises:
            ValueError: If `scalar == 0`, whose result is the point at infinity.
        """
        if scalar == 0:
            msg = "Scalar multiplication by zero gives the point at infinity, which is not representable"
            raise ValueError(msg)
        if scalar < 0:
            return self.negate(self.scalar_mul(p, -scalar))
        out = p
        for digit in bin(scalar)[3:]:
            out = self.double(out)
            if digit == "1":
                out = self.add(out, p)
        return out
