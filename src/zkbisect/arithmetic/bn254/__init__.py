"""bn254 package.

Modules:
    - parameters: Constants of the curve (q, r, x, generators, Frobenius coefficients).
    - fields: Implements the class Bn254Tower, the tower Fq2 / Fq6 / Fq12 and its Frobenius maps.
    - pairing: Implements the class Bn254Pairing which has methods:
        - miller_loop: Computes the Miller loop of the optimal ate pairing.
        - final_exponentiation: Raises to the power (q^12 - 1) / r.
        - pairing: Computes e(P, Q).
"""
