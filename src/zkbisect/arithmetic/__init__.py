"""arithmetic package.

This package provides the reference arithmetic the circuits are built from. Every class runs on a prime field
backend: on `PrimeField` it computes integers, on `zkbisect.circuit.builder.CircuitBuilder` it records a circuit.

Modules:
    - prime_field: Contains the PrimeField class, arithmetic in F_q on canonical representatives.
    - extension_fields: Contains the QuadraticExtension and CubicExtension classes.
    - elliptic_curve: Contains the ShortWeierstrassCurve class, affine point arithmetic.
    - bn254: The BN254 field tower and its optimal ate pairing.
"""
