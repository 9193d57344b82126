"""Optimal ate pairing on BN254."""

from zkbisect.arithmetic.bn254.fields import Bn254Tower
from zkbisect.arithmetic.bn254.parameters import (
    HARD_EXPONENT,
    ate_loop_count,
    curve_a,
    curve_b,
    q,
    twisted_a,
    twisted_b,
)
from zkbisect.arithmetic.elliptic_curve import ShortWeierstrassCurve
from zkbisect.arithmetic.prime_field import PrimeField


class Bn254Pairing(Bn254Tower):
    """Optimal ate pairing `e: G1 x G2 -> GT` over any prime field backend.

    `G1` lives on `y^2 = x^3 + 3` over Fq, `G2` on the D-type twist `y^2 = x^3 + 3 / xi` over Fq2. A point
    `(x, y)` of the twist is mapped to the curve over Fq12 by `(x, y) -> (x * w^2, y * w^3)`.

    Attributes:
        g1 (ShortWeierstrassCurve): The curve over Fq.
        g2 (ShortWeierstrassCurve): The twisted curve over Fq2.
    """

    def __init__(self, fq):
        super().__init__(fq)
        self.g1 = ShortWeierstrassCurve(self.fq, a=curve_a, b=curve_b)
        self.g2 = ShortWeierstrassCurve(self.fq2, a=twisted_a, b=twisted_b)

    def frobenius_g2(self, point: tuple, n: int) -> tuple:
        """Compute the image of the twisted point `point` under the `n`-th power of the Frobenius endomorphism."""
        x, y = point
        for _ in range(n % 2):
            x, y = self.fq2.conjugate(x), self.fq2.conjugate(y)
        return (self.mul_by_gamma(x, n, 2), self.mul_by_gamma(y, n, 3))

    def line_evaluation(self, gradient: tuple, t: tuple, p: tuple) -> tuple:
        """Evaluate at `p` the line of gradient `gradient` through the twisted point `t`.

        The untwisted line is `y_p - gradient * x_p * w + (gradient * x_t - y_t) * w^3`, a sparse element of Fq12.

        Args:
            gradient (tuple): The gradient of the line, in Fq2.
            t (tuple): A point of the twisted curve the line goes through.
            p (tuple): A point of G1.

        Returns:
            The evaluation, as an element of Fq12.
        """
        fq2 = self.fq2
        c0 = ((p[1], self.fq.zero()), fq2.zero(), fq2.zero())
        c1 = (
            fq2.neg(fq2.scale(gradient, p[0])),
            fq2.sub(fq2.mul(gradient, t[0]), t[1]),
            fq2.zero(),
        )
        return (c0, c1)

    def doubling_step(self, t: tuple, p: tuple) -> tuple[tuple, tuple]:
        """Compute `2t` and the evaluation at `p` of the tangent at `t`."""
        gradient = self.g2.tangent_gradient(t)
        return self.g2.add_with_gradient(t, t, gradient), self.line_evaluation(gradient, t, p)

    def addition_step(self, t: tuple, q: tuple, p: tuple) -> tuple[tuple, tuple]:
        """Compute `t + q` and the evaluation at `p` of the line through `t` and `q`."""
        gradient = self.g2.chord_gradient(t, q)
        return self.g2.add_with_gradient(t, q, gradient), self.line_evaluation(gradient, t, p)

    def miller_loop(self, p: tuple, q: tuple) -> tuple:
        """Compute the Miller function `f_{6x+2,Q}(P)` times the two final Frobenius lines.

        Args:
            p (tuple): A point of G1.
            q (tuple): A point of G2, in twisted coordinates.

        Returns:
            The output of the Miller loop, in Fq12.
        """
        fq12 = self.fq12
        f = fq12.one()
        t = q
        for digit in bin(ate_loop_count)[3:]:
            t, line = self.doubling_step(t, p)
            f = fq12.mul(fq12.square(f), line)
            if digit == "1":
                t, line = self.addition_step(t, q, p)
                f = fq12.mul(f, line)

        q1 = self.frobenius_g2(q, 1)
        minus_q2 = self.g2.negate(self.frobenius_g2(q, 2))

        t, line = self.addition_step(t, q1, p)
        f = fq12.mul(f, line)
        f = fq12.mul(f, self.line_evaluation(self.g2.chord_gradient(t, minus_q2), t, p))
        return f

    def easy_exponentiation(self, f: tuple) -> tuple:
        """Compute `f^((q^6 - 1) * (q^2 + 1))`."""
        fq12 = self.fq12
        f = fq12.mul(fq12.conjugate(f), fq12.inverse(f))
        return fq12.mul(self.frobenius_fq12(f, 2), f)

    def hard_exponentiation(self, f: tuple) -> tuple:
        """Compute `f^((q^4 - q^2 + 1) / r)`."""
        return self.fq12.power(f, HARD_EXPONENT)

    def final_exponentiation(self, f: tuple) -> tuple:
        return self.hard_exponentiation(self.easy_exponentiation(f))

    def pairing(self, p: tuple, q: tuple) -> tuple:
        """Compute the optimal ate pairing `e(p, q)`."""
        return self.final_exponentiation(self.miller_loop(p, q))


bn254 = Bn254Pairing(PrimeField(q))
