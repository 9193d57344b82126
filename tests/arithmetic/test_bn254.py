from dataclasses import dataclass

import pytest
from py_ecc import bn128

from zkbisect.arithmetic.bn254.pairing import bn254
from zkbisect.arithmetic.bn254.parameters import G1_GENERATOR, G2_GENERATOR, q, r
from zkbisect.arithmetic.prime_field import PrimeField
from zkbisect.errors import CircuitEvaluationError, InverseOfZeroError

# Fq12 elements of py_ecc are polynomials in w with w^6 = 9 + u, the same w as the tower, so the coefficient
# a + b * u of w^k is (a - 9b) * w^k + b * w^(k + 6)


def to_py_ecc_fq12(f: tuple) -> bn128.FQ12:
    coefficients = [0] * 12
    for k in range(6):
        a, b = f[k % 2][k // 2]
        coefficients[k] = (a - 9 * b) % q
        coefficients[k + 6] = b
    return bn128.FQ12(coefficients)


def from_py_ecc_fq2(x: bn128.FQ2) -> tuple:
    return tuple(c.n for c in x.coeffs)


def g2_generator() -> tuple:
    return tuple(bn254.fq2.constant(coordinate) for coordinate in G2_GENERATOR)


@dataclass
class Bn254:
    fq12_elements = [
        tuple(tuple(bn254.fq2.constant([3 * k + 1, 5 * k + 2]) for k in range(i, i + 3)) for i in (0, 3)),
        tuple(tuple(bn254.fq2.constant([q - 7 * k - 1, 11 * k]) for k in range(i, i + 3)) for i in (0, 3)),
    ]

    test_data = {
        "test_scalar_mul": [2, 3, 5, 1234567, r - 1],
        "test_fq2": [
            {"x": [1, 2], "y": [3, 4]},
            {"x": [q - 1, 0], "y": [9, 1]},
            {"x": [123456789, 987654321], "y": [q - 5, q - 6]},
        ],
    }


@pytest.mark.parametrize(("x", "y"), [(test_case["x"], test_case["y"]) for test_case in Bn254.test_data["test_fq2"]])
def test_fq2_against_py_ecc(x, y):
    fq2 = bn254.fq2
    expected_mul = bn128.FQ2(x) * bn128.FQ2(y)
    expected_inverse = bn128.FQ2.one() / bn128.FQ2(x)

    assert fq2.mul(fq2.constant(x), fq2.constant(y)) == from_py_ecc_fq2(expected_mul)
    assert fq2.square(fq2.constant(x)) == from_py_ecc_fq2(bn128.FQ2(x) * bn128.FQ2(x))
    assert fq2.inverse(fq2.constant(x)) == from_py_ecc_fq2(expected_inverse)


def test_fq12_against_py_ecc():
    fq12 = bn254.fq12
    f, g = Bn254.fq12_elements

    assert to_py_ecc_fq12(fq12.mul(f, g)) == to_py_ecc_fq12(f) * to_py_ecc_fq12(g)
    assert to_py_ecc_fq12(fq12.square(f)) == to_py_ecc_fq12(f) * to_py_ecc_fq12(f)
    assert to_py_ecc_fq12(fq12.inverse(g)) == bn128.FQ12.one() / to_py_ecc_fq12(g)


@pytest.mark.parametrize("n", [1, 2, 3])
def test_frobenius_fq12(n):
    f = Bn254.fq12_elements[0]

    assert to_py_ecc_fq12(bn254.frobenius_fq12(f, n)) == to_py_ecc_fq12(f) ** (q**n)


def test_frobenius_power_out_of_range():
    with pytest.raises(ValueError, match=r"Frobenius power must be 1, 2 or 3: n: 4"):
        bn254.frobenius_fq12(Bn254.fq12_elements[0], 4)


@pytest.mark.parametrize("scalar", Bn254.test_data["test_scalar_mul"])
def test_g1_scalar_mul(scalar):
    expected = bn128.multiply(bn128.G1, scalar)

    assert bn254.g1.scalar_mul(G1_GENERATOR, scalar) == (expected[0].n, expected[1].n)


@pytest.mark.parametrize("scalar", Bn254.test_data["test_scalar_mul"][:3])
def test_g2_scalar_mul(scalar):
    expected = bn128.multiply(bn128.G2, scalar)

    assert bn254.g2.scalar_mul(g2_generator(), scalar) == tuple(from_py_ecc_fq2(c) for c in expected)


def test_generators_are_on_curve():
    assert bn254.g1.is_on_curve(G1_GENERATOR) == 1
    assert bn254.g1.is_on_curve((1, 3)) == 0
    assert bn254.g2.is_on_curve(g2_generator()) == 1
    assert g2_generator() == tuple(from_py_ecc_fq2(c) for c in bn128.G2)


def test_incomplete_formulas():
    minus_g = bn254.g1.negate(G1_GENERATOR)

    with pytest.raises(InverseOfZeroError):
        bn254.g1.add(G1_GENERATOR, minus_g)
    with pytest.raises(ValueError, match=r"Scalar multiplication by zero"):
        bn254.g1.scalar_mul(G1_GENERATOR, 0)
    assert bn254.g1.scalar_mul(G1_GENERATOR, -1) == minus_g


def test_pairing_against_py_ecc():
    p = bn254.g1.scalar_mul(G1_GENERATOR, 5)
    q_point = bn254.g2.scalar_mul(g2_generator(), 7)

    expected = bn128.pairing(bn128.multiply(bn128.G2, 7), bn128.multiply(bn128.G1, 5))

    assert to_py_ecc_fq12(bn254.pairing(p, q_point)) == expected


def test_pairing_is_bilinear_and_non_degenerate():
    fq12 = bn254.fq12
    p, q_point = G1_GENERATOR, g2_generator()

    e = bn254.pairing(p, q_point)

    assert e != fq12.one()
    assert fq12.power(e, r) == fq12.one()
    assert bn254.pairing(bn254.g1.double(p), q_point) == fq12.square(e)
    assert bn254.pairing(p, bn254.g2.double(q_point)) == fq12.square(e)


@dataclass
class PrimeField19:
    field = PrimeField(19)
    test_data = {
        "test_operations": [
            ("add", [5, 17], 3),
            ("sub", [5, 17], 7),
            ("neg", [0], 0),
            ("mul", [7, 8], 18),
            ("square", [7], 11),
            ("inverse", [2], 10),
            ("power", [2, -1], 10),
            ("is_zero", [0], 1),
            ("equal", [4, 5], 0),
            ("select", [0, 4, 9], 9),
        ],
    }


@pytest.mark.parametrize(("operation", "args", "expected"), PrimeField19.test_data["test_operations"])
def test_prime_field(operation, args, expected):
    assert getattr(PrimeField19.field, operation)(*args) == expected


def test_prime_field_errors():
    with pytest.raises(InverseOfZeroError, match=r"Inverse of zero in F_q"):
        PrimeField19.field.inverse(0)
    with pytest.raises(CircuitEvaluationError, match=r"Selection bit must be 0 or 1: bit: 2"):
        PrimeField19.field.select(2, 4, 9)
    with pytest.raises(ValueError, match=r"The modulus must be at least 2: q: 1"):
        PrimeField(1)


def test_extension_constant_errors():
    with pytest.raises(ValueError, match=r"The number of coordinates does not match the extension degree"):
        bn254.fq6.constant([1, 2, 3])
