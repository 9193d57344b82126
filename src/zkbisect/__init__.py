"""zkbisect: Optimistic verification of large Bitcoin Script computations by bisection.

The `zkbisect` package compiles a verification computation (for instance a BN254 pairing check) into an arithmetic
circuit, partitions the circuit into chunks that fit the ceilings of the script engine, commits to the boundary
states of an execution, and resolves disputes about the execution with a bisection game whose outcome can be
enforced by a pre-signed transaction graph.

Usage example:
    Compile a circuit, commit to an execution and play an honest dispute:

    >>> from zkbisect.circuit.builder import CircuitBuilder
    >>> from zkbisect.commitment.trace import ExecutionTrace
    >>> from zkbisect.compiler.packer import Packer
    >>> from zkbisect.dispute.engine import EventLog
    >>> from zkbisect.dispute.events import Role
    >>> from zkbisect.dispute.participant import Participant, play
    >>> from zkbisect.dispute.state import DisputeSetup
    >>> from zkbisect.parameters import ChainParameters
    >>>
    >>> builder = CircuitBuilder(19)
    >>> x = builder.public_input("x")
    >>> builder.mark_output(builder.mul(builder.square(x), x))
    >>> program = Packer(ChainParameters(max_script_size=500)).pack(builder.build())
    >>> trace = ExecutionTrace.from_inputs(program, {x: 3})
    >>>
    >>> setup = DisputeSetup(instance_id="example", program=program, public_inputs={x: 3})
    >>> prover = Participant(Role.PROVER, setup, trace)
    >>> challenger = Participant(Role.CHALLENGER, setup, trace)
    >>> play(EventLog(setup), prover, challenger).winner
    <Role.PROVER: 'prover'>
"""
