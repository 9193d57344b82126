"""Tower of extension fields of BN254: Fq2, Fq6 and Fq12, with their Frobenius maps."""

from zkbisect.arithmetic.bn254.parameters import GAMMAS
from zkbisect.arithmetic.extension_fields import CubicExtension, QuadraticExtension


class Bn254Tower:
    """The field tower `Fq12 = Fq6[w] / (w^2 - v)`, `Fq6 = Fq2[v] / (v^3 - xi)`, `Fq2 = Fq[u] / (u^2 + 1)`.

    `xi = 9 + u`. Elements of Fq12 are couples of elements of Fq6, so `f = c0 + c1 * w` and the coefficient of
    `w^k` (`k = 0, .., 5`) is `c0[k // 2]` for even `k` and `c1[k // 2]` for odd `k`.

    Attributes:
        fq: The prime field backend.
        fq2 (QuadraticExtension): Fq2 built over `fq`.
        fq6 (CubicExtension): Fq6 built over `fq2`.
        fq12 (QuadraticExtension): Fq12 built over `fq6`.
    """

    def __init__(self, fq):
        """Initialise the tower over the backend `fq`.

        Args:
            fq: A prime field backend for the BN254 base field.
        """
        self.fq = fq
        self.fq2 = QuadraticExtension(fq, mul_by_non_residue=fq.neg)
        self.fq6 = CubicExtension(self.fq2, mul_by_non_residue=self.mul_by_xi)
        self.fq12 = QuadraticExtension(self.fq6, mul_by_non_residue=self.fq6.mul_by_generator)

    def mul_by_xi(self, x: tuple) -> tuple:
        """Compute `x * (9 + u)` for `x` in Fq2."""
        fq = self.fq
        nine = fq.constant(9)
        return (fq.sub(fq.mul(x[0], nine), x[1]), fq.add(x[0], fq.mul(x[1], nine)))

    def mul_by_gamma(self, x: tuple, n: int, k: int) -> tuple:
        """Multiply `x` in Fq2 by the Frobenius constant `xi^(k * (q^n - 1) / 6)`."""
        if k == 0:
            return x
        return self.fq2.mul(x, self.fq2.constant(GAMMAS[n - 1][k]))

    def frobenius_fq12(self, f: tuple, n: int) -> tuple:
        """Compute `f^(q^n)` for `f` in Fq12 and `n` in `{1, 2, 3}`.

        Raises:
            ValueError: If `n` is not 1, 2 or 3.
        """
        if n not in {1, 2, 3}:
            msg = f"Frobenius power must be 1, 2 or 3: n: {n}"
            raise ValueError(msg)

        coefficients = []
        for k in range(6):
            coefficient = f[k % 2][k // 2]
            if n % 2 == 1:
                coefficient = self.fq2.conjugate(coefficient)
            coefficients.append(self.mul_by_gamma(coefficient, n, k))

        return (
            (coefficients[0], coefficients[2], coefficients[4]),
            (coefficients[1], coefficients[3], coefficients[5]),
        )
