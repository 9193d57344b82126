"""circuit package.

This package provides arithmetic circuits over F_q in single static assignment form.

Modules:
    - circuit: Contains the Wire, Operation and Circuit classes, validation and reference evaluation.
    - builder: Contains the CircuitBuilder class, a prime field backend recording operations on wires.

Usage example:
    >>> from zkbisect.circuit.builder import CircuitBuilder
    >>>
    >>> builder = CircuitBuilder(19)
    >>> x = builder.public_input("x")
    >>> builder.mark_output(builder.inverse(x))
    >>> builder.build().evaluate({x: 2})
    {0: 2, 1: 10}
"""
