"""fields package.

This package provides modules for constructing Bitcoin scripts that perform arithmetic operations in finite fields.

Modules:
    - fq: Contains the Fq class for arithmetic in F_q.

Usage example:
    >>> from zkbisect.fields.fq import Fq
    >>>
    >>> fq = Fq(q=19)
    >>> lock = fq.mul(take_modulo=True, check_constant=True)
"""
