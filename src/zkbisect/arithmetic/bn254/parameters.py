"""Parameters of the BN254 (alt_bn128) pairing-friendly curve."""

from zkbisect.arithmetic.extension_fields import QuadraticExtension
from zkbisect.arithmetic.prime_field import PrimeField

# Characteristic of the base field
q = 0x30644E72E131A029B85045B68181585D97816A916871CA8D3C208C16D87CFD47
# Order of G1, G2 and GT
r = 0x30644E72E131A029B85045B68181585D2833E84879B9709143E1F593F0000001
# BN parameter: q = 36x^4 + 36x^3 + 24x^2 + 6x + 1
x = 4965661367192848881
# The optimal ate pairing iterates over the bits of 6x + 2
ate_loop_count = 6 * x + 2
# Non residue used to build Fq6 over Fq2: xi = 9 + u
NON_RESIDUE_FQ2 = [9, 1]
# Curve coefficients: y^2 = x^3 + 3 over Fq, y^2 = x^3 + 3 / xi over Fq2
curve_a = 0
curve_b = 3
twisted_a = [0, 0]

_fq = PrimeField(q)
_fq2 = QuadraticExtension(_fq, mul_by_non_residue=_fq.neg)
_xi = _fq2.constant(NON_RESIDUE_FQ2)

twisted_b = _fq2.to_list(_fq2.mul(_fq2.constant(curve_b), _fq2.inverse(_xi)))

# GAMMAS[n-1][k] = xi^(k * (q^n - 1) / 6), the coefficients of the n-th Frobenius on w^k
GAMMAS = [[_fq2.to_list(_fq2.power(_xi, k * (q**n - 1) // 6)) for k in range(6)] for n in range(1, 4)]

G1_GENERATOR = (1, 2)
G2_GENERATOR = (
    [
        10857046999023057135944570762232829481370756359578518086990519993285655852781,
        11559732032986387107991004021392285783925812861821192530917403151452391805634,
    ],
    [
        8495653923123431417604973247489272438418190587263600148770280649306958101930,
        4082367875863433681332203403145435568316851327593401208105741076214120093531,
    ],
)

# Exponent of the hard part of the final exponentiation
HARD_EXPONENT = (q**4 - q**2 + 1) // r
