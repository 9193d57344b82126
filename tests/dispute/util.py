from tests.circuit.util import UNBOUNDED, chain_circuit, single_operation_parameters, three_mul_circuit
from zkbisect.circuit.builder import CircuitBuilder
from zkbisect.commitment.trace import ExecutionTrace, TraceCommitment
from zkbisect.compiler.packer import Packer
from zkbisect.dispute.events import Challenge, Commit, Narrow, Role
from zkbisect.dispute.participant import Participant
from zkbisect.dispute.state import DisputeSetup, Phase
from zkbisect.parameters import MidpointRule, ProtocolParameters


def make_setup(circuit_factory=three_mul_circuit, midpoint_rule=MidpointRule.FLOOR, instance_id="instance"):
    """Pack `circuit_factory()` one operation per chunk and return the setup and the honest trace."""
    circuit, inputs = circuit_factory()
    program = Packer(single_operation_parameters(circuit)).pack(circuit)
    setup = DisputeSetup(
        instance_id=instance_id,
        program=program,
        public_inputs={wire: inputs[wire] for wire in circuit.public_inputs},
        parameters=ProtocolParameters(midpoint_rule=midpoint_rule),
    )
    return setup, ExecutionTrace.from_inputs(program, inputs)


def nine_chunks_setup(midpoint_rule=MidpointRule.FLOOR):
    return make_setup(lambda: chain_circuit(9), midpoint_rule)


def zero_inverse_setup():
    """Return the setup of `inverse(y) * x` in one chunk, the honest trace, and a trace committing to `y = 0`.

    The faulty trace claims `0` for the output, which is what the chunk program computes when `y = 0`.
    """
    builder = CircuitBuilder(19)
    x = builder.public_input("x")
    y = builder.private_input("y")
    builder.mark_output(builder.mul(builder.inverse(y), x))
    circuit = builder.build()
    program = Packer(UNBOUNDED).pack(circuit)
    setup = DisputeSetup(instance_id="instance", program=program, public_inputs={x: 3})

    executor = setup.executor
    faulty = ExecutionTrace(
        program=program,
        states=(executor.state(0, {x: 3, y: 0}), executor.state(1, {circuit.outputs[0]: 0})),
    )
    return setup, ExecutionTrace.from_inputs(program, {x: 3, y: 5}), faulty


def commit_event(trace: ExecutionTrace, height: int = 0) -> Commit:
    commitment = TraceCommitment.from_trace(trace)
    return Commit(height=height, digests=commitment.digests, root=commitment.root)


class StubbornChallenger(Participant):
    """Challenges every commitment and rejects every revealed state."""

    def __init__(self, setup: DisputeSetup):
        super().__init__(Role.CHALLENGER, setup)

    def challenger_move(self, state, height):
        if state.phase is Phase.COMMITTED:
            return Challenge(height=height)
        return Narrow(height=height, agree=False)
